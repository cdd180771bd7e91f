import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock

from devinsights.services.exceptions import AnalyticsApiError
from devinsights.services.readiness.coalescer import RequestCoalescer
from devinsights.services.readiness.policy import ReadinessPolicy
from devinsights.services.readiness.workflow import ReadinessWorkflow


class TestRequestCoalescer(unittest.IsolatedAsyncioTestCase):

    async def test_concurrent_calls_share_one_result(self):
        coalescer = RequestCoalescer()
        calls = 0

        async def fetch():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.02)
            return {"value": calls}

        first, second = await asyncio.gather(
            coalescer.run("key", fetch), coalescer.run("key", fetch)
        )

        self.assertEqual(calls, 1)
        self.assertIs(first, second)
        self.assertFalse(coalescer.in_flight("key"))

    async def test_concurrent_calls_share_one_rejection(self):
        coalescer = RequestCoalescer()
        error = RuntimeError("backend down")
        factory = AsyncMock(side_effect=error)

        results = await asyncio.gather(
            coalescer.run("key", factory),
            coalescer.run("key", factory),
            return_exceptions=True,
        )

        factory.assert_awaited_once()
        self.assertIs(results[0], error)
        self.assertIs(results[1], error)

    async def test_key_released_after_settling(self):
        coalescer = RequestCoalescer()
        factory = AsyncMock(return_value="ok")

        await coalescer.run("key", factory)
        await coalescer.run("key", factory)

        self.assertEqual(factory.await_count, 2)

    async def test_different_keys_are_independent(self):
        coalescer = RequestCoalescer()
        factory = AsyncMock(return_value="ok")

        await asyncio.gather(coalescer.run("a", factory), coalescer.run("b", factory))

        self.assertEqual(factory.await_count, 2)

    async def test_cancelled_waiter_does_not_cancel_shared_call(self):
        coalescer = RequestCoalescer()

        async def fetch():
            await asyncio.sleep(0.05)
            return "done"

        waiter = asyncio.ensure_future(coalescer.run("key", fetch))
        await asyncio.sleep(0)
        other = asyncio.ensure_future(coalescer.run("key", fetch))
        await asyncio.sleep(0)
        waiter.cancel()

        self.assertEqual(await other, "done")


class TestIngestionCoalescing(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.client = MagicMock()
        self.workflow = ReadinessWorkflow(self.client, ReadinessPolicy(poll_interval=0.01))

    async def test_identical_requests_make_one_network_call(self):
        async def slow_fetch(repo, branch, limit):
            await asyncio.sleep(0.02)
            return {"commits": [{"sha": "a"}, {"sha": "b"}]}

        self.client.fetch_commits = AsyncMock(side_effect=slow_fetch)

        first, second = await asyncio.gather(
            self.workflow.request_ingestion("octocat/hello"),
            self.workflow.request_ingestion("octocat/hello", "main", 100),
        )

        self.client.fetch_commits.assert_awaited_once_with("octocat/hello", "main", 100)
        self.assertIs(first, second)
        self.assertEqual(first.commit_count, 2)

    async def test_different_limits_are_not_coalesced(self):
        self.client.fetch_commits = AsyncMock(return_value={"commits": []})

        await asyncio.gather(
            self.workflow.request_ingestion("octocat/hello", "main", 100),
            self.workflow.request_ingestion("octocat/hello", "main", 50),
        )

        self.assertEqual(self.client.fetch_commits.await_count, 2)

    async def test_identical_requests_share_rejection(self):
        error = AnalyticsApiError("GET /commits returned 500", status_code=500)

        async def failing_fetch(repo, branch, limit):
            await asyncio.sleep(0.01)
            raise error

        self.client.fetch_commits = AsyncMock(side_effect=failing_fetch)

        results = await asyncio.gather(
            self.workflow.request_ingestion("octocat/hello"),
            self.workflow.request_ingestion("octocat/hello"),
            return_exceptions=True,
        )

        self.client.fetch_commits.assert_awaited_once()
        self.assertIs(results[0], error)
        self.assertIs(results[1], error)


if __name__ == "__main__":
    unittest.main()
