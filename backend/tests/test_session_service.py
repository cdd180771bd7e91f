import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock

from devinsights.dtos.auth import SessionUser
from devinsights.dtos.repository import RepositorySelection
from devinsights.services.exceptions import (
    AnalyticsApiError,
    AuthenticationError,
    LoginInProgressError,
)
from devinsights.services.session_service import SessionService
from devinsights.services.state_store import ClientStateStore, MemoryKeyValueStore

USER = {"id": 1, "login": "octocat", "name": "The Octocat", "avatarUrl": "https://a/1.png"}


class TestSessionService(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.state = ClientStateStore(MemoryKeyValueStore())
        self.client = MagicMock()
        self.client.exchange_code = AsyncMock(return_value={"token": "tok-1", "user": USER})
        self.client.validate_token = AsyncMock(return_value={"is_valid": True, "user": USER})
        self.service = SessionService(self.client, self.state)

    async def test_login_stores_token_and_user(self):
        session = await self.service.login("code-abcdef123456")

        self.assertTrue(session.authenticated)
        self.assertEqual(session.user.login, "octocat")
        self.assertEqual(session.user.avatar_url, "https://a/1.png")
        self.assertEqual(await self.state.get_token(), "tok-1")
        self.assertEqual((await self.state.get_user()).login, "octocat")
        self.client.exchange_code.assert_awaited_once_with("code-abcdef123456")

    async def test_login_when_authenticated_skips_exchange(self):
        await self.state.set_token("tok-0")
        await self.state.set_user(SessionUser(id=1, login="octocat"))

        session = await self.service.login("another-code")

        self.assertTrue(session.authenticated)
        self.client.exchange_code.assert_not_awaited()

    async def test_login_without_user_in_response_fails(self):
        self.client.exchange_code.return_value = {"token": "tok-1"}

        with self.assertRaises(AuthenticationError):
            await self.service.login("code")

        self.assertFalse((await self.service.current()).authenticated)

    async def test_concurrent_login_is_rejected(self):
        async def slow_exchange(code):
            await asyncio.sleep(0.05)
            return {"token": "tok-1", "user": USER}

        self.client.exchange_code.side_effect = slow_exchange

        first = asyncio.ensure_future(self.service.login("code-1"))
        await asyncio.sleep(0)
        with self.assertRaises(LoginInProgressError):
            await self.service.login("code-2")

        self.assertTrue((await first).authenticated)

    async def test_exchange_of_same_code_is_shared(self):
        async def slow_exchange(code):
            await asyncio.sleep(0.02)
            return {"token": "tok-1", "user": USER}

        self.client.exchange_code.side_effect = slow_exchange

        first, second = await asyncio.gather(
            self.service.exchange_code("same-code-xyz"),
            self.service.exchange_code("same-code-xyz"),
        )

        self.client.exchange_code.assert_awaited_once()
        self.assertIs(first, second)

    async def test_existing_valid_token_is_reused(self):
        await self.state.set_token("tok-0")

        data = await self.service.exchange_code("code")

        self.assertEqual(data["token"], "tok-0")
        self.client.exchange_code.assert_not_awaited()

    async def test_invalid_existing_token_is_replaced(self):
        await self.state.set_token("stale")
        self.client.validate_token.side_effect = AnalyticsApiError("invalid", status_code=401)

        data = await self.service.exchange_code("code")

        self.assertEqual(data["token"], "tok-1")
        self.assertEqual(await self.state.get_token(), "tok-1")

    async def test_conflict_recovers_token_stored_meanwhile(self):
        async def conflicting_exchange(code):
            await self.state.set_token("tok-other")
            raise AnalyticsApiError("code already used", status_code=409)

        self.client.exchange_code.side_effect = conflicting_exchange

        data = await self.service.exchange_code("code")

        self.assertEqual(data["token"], "tok-other")
        self.assertEqual(data["user"], USER)

    async def test_conflict_without_token_propagates(self):
        self.client.exchange_code.side_effect = AnalyticsApiError("used", status_code=409)

        with self.assertRaises(AnalyticsApiError) as ctx:
            await self.service.exchange_code("code")

        self.assertEqual(ctx.exception.status_code, 409)

    async def test_restore_drops_rejected_token(self):
        await self.state.set_token("tok-0")
        await self.state.set_user(SessionUser(id=1, login="octocat"))
        self.client.validate_token.side_effect = AnalyticsApiError("expired", status_code=401)

        session = await self.service.restore()

        self.assertFalse(session.authenticated)
        self.assertIsNone(await self.state.get_token())
        self.assertIsNone(await self.state.get_user())

    async def test_restore_refreshes_user(self):
        await self.state.set_token("tok-0")

        session = await self.service.restore()

        self.assertTrue(session.authenticated)
        self.assertEqual((await self.state.get_user()).name, "The Octocat")

    async def test_validate_without_token(self):
        self.assertEqual(await self.service.validate(), {"is_valid": False})
        self.client.validate_token.assert_not_awaited()

    async def test_logout_clears_session_and_selection(self):
        await self.service.login("code")
        await self.state.set_selection(RepositorySelection(repo_id="42", repo_full_name="octocat/hello"))

        await self.service.logout()

        self.assertIsNone(await self.state.get_token())
        self.assertIsNone(await self.state.get_selection())
        self.assertFalse((await self.service.current()).authenticated)


if __name__ == "__main__":
    unittest.main()
