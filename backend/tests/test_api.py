import time
import unittest

import httpx
from fastapi.testclient import TestClient

from devinsights.config import Settings
from devinsights.main import create_app
from devinsights.services.readiness.policy import ReadinessPolicy
from devinsights.services.state_store import MemoryKeyValueStore

USER = {"id": 1, "login": "octocat", "name": "The Octocat"}


class FakeAnalyticsApi:
    """In-process stand-in for the analytics API behind httpx.MockTransport."""

    def __init__(self):
        self.commit_requests = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        authorized = request.headers.get("Authorization") == "Bearer tok-123"

        if path == "/auth/github/callback":
            return httpx.Response(200, json={"token": "tok-123", "user": USER})
        if path == "/auth/validate":
            if not authorized:
                return httpx.Response(401, json={"detail": "invalid token"})
            return httpx.Response(200, json={"is_valid": True, "user": USER})
        if path == "/user/repositories":
            if not authorized:
                return httpx.Response(401, json={"detail": "not authenticated"})
            return httpx.Response(
                200,
                json=[
                    {
                        "id": 42,
                        "name": "hello",
                        "full_name": "octocat/hello",
                        "owner": {"login": "octocat"},
                    }
                ],
            )
        if path == "/api/debug/repo/octocat/hello":
            ingested = self.commit_requests > 0
            return httpx.Response(
                200,
                json={
                    "repository_exists": ingested,
                    "file_count": 12 if ingested else 0,
                    "commit_count": 3 if ingested else 0,
                    "developer_count": 2 if ingested else 0,
                },
            )
        if path == "/commits":
            self.commit_requests += 1
            return httpx.Response(200, json={"commits": [{"sha": "a"}, {"sha": "b"}, {"sha": "c"}]})
        if path == "/boom":
            return httpx.Response(500, json={"detail": "boom"})
        return httpx.Response(404, json={"detail": "not found"})


class TestCompanionApi(unittest.TestCase):

    def setUp(self):
        self.backend = FakeAnalyticsApi()
        self.app = create_app(
            cfg=Settings(STATE_BACKEND="memory", SSE_HEARTBEAT_SECONDS=1.0),
            store=MemoryKeyValueStore(),
            transport=httpx.MockTransport(self.backend),
            policy=ReadinessPolicy(poll_interval=0.01, progress_tick=0.01),
        )

    def wait_for_terminal(self, client: TestClient, path: str) -> dict:
        body = {}
        for _ in range(200):
            body = client.get(path).json()
            if body["phase"] in ("succeeded", "failed", "cancelled"):
                return body
            time.sleep(0.01)
        self.fail(f"job did not finish: {body}")

    def test_health_echoes_request_id(self):
        with TestClient(self.app) as client:
            response = client.get("/api/health", headers={"X-Request-ID": "req-1"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")
        self.assertEqual(response.headers["X-Request-ID"], "req-1")

    def test_login_session_and_logout(self):
        with TestClient(self.app) as client:
            self.assertFalse(client.get("/api/auth/session").json()["authenticated"])

            login = client.post("/api/auth/login", json={"code": "gh-code-123"})
            self.assertEqual(login.status_code, 200)
            self.assertEqual(login.json()["user"]["login"], "octocat")

            session = client.get("/api/auth/session").json()
            self.assertTrue(session["authenticated"])

            self.assertEqual(client.post("/api/auth/logout").status_code, 204)
            self.assertFalse(client.get("/api/auth/session").json()["authenticated"])

    def test_upstream_unauthorized_passes_through(self):
        with TestClient(self.app) as client:
            response = client.get("/api/repos")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "UNAUTHORIZED")

    def test_repository_list_and_selection(self):
        with TestClient(self.app) as client:
            client.post("/api/auth/login", json={"code": "gh-code-123"})

            repos = client.get("/api/repos").json()
            self.assertEqual(repos["total"], 1)
            self.assertEqual(repos["items"][0]["id"], "42")

            selected = client.put(
                "/api/repos/selection",
                json={"repo_id": "42", "repo_full_name": "octocat/hello"},
            )
            self.assertEqual(selected.json()["selection"]["repo_full_name"], "octocat/hello")

            invalid = client.put("/api/repos/selection", json={"repo_id": "42"})
            self.assertEqual(invalid.status_code, 400)
            self.assertEqual(invalid.json()["error"], "BAD_REQUEST")

            self.assertEqual(client.delete("/api/repos/selection").status_code, 204)
            self.assertIsNone(client.get("/api/repos/selection").json()["selection"])

    def test_status_and_gate_before_processing(self):
        with TestClient(self.app) as client:
            status = client.get("/api/repos/octocat/hello/status").json()
            gate = client.get(
                "/api/repos/octocat/hello/gate", params={"path": "/reports/risk"}
            ).json()

        self.assertFalse(status["is_processed"])
        self.assertTrue(gate["needs_processing"])
        self.assertEqual(gate["processing_path"], "/process-repository/octocat%2Fhello")
        self.assertEqual(gate["requested_path"], "/reports/risk")

    def test_readiness_job_runs_to_success(self):
        with TestClient(self.app) as client:
            client.post("/api/auth/login", json={"code": "gh-code-123"})
            client.get("/api/repos")

            started = client.post(
                "/api/readiness/octocat/hello/jobs", json={"requested_path": "/reports/risk"}
            )
            self.assertEqual(started.status_code, 202)
            self.assertEqual(started.json()["repo_full_name"], "octocat/hello")

            job = self.wait_for_terminal(client, "/api/readiness/octocat/hello/jobs")
            self.assertEqual(job["phase"], "succeeded")
            self.assertEqual(job["progress"], 100.0)
            self.assertEqual(job["redirect_path"], "/reports/risk")
            self.assertEqual(self.backend.commit_requests, 1)

            selection = client.get("/api/repos/selection").json()["selection"]
            self.assertEqual(selection["repo_id"], "42")

            stream = client.get("/api/sse/readiness/octocat/hello")
            self.assertEqual(stream.status_code, 200)
            self.assertIn("event: complete", stream.text)
            self.assertIn('"phase": "succeeded"', stream.text)

            cancelled = client.delete("/api/readiness/octocat/hello/jobs")
            self.assertEqual(cancelled.json()["phase"], "succeeded")

    def test_stream_for_unknown_job_is_not_found(self):
        with TestClient(self.app) as client:
            response = client.get("/api/sse/readiness/octocat/hello")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "JOB_NOT_FOUND")

    def test_stream_follows_running_job(self):
        with TestClient(self.app) as client:
            client.post("/api/readiness/octocat/hello/jobs")

            with client.stream("GET", "/api/sse/readiness/octocat/hello") as response:
                self.assertTrue(response.headers["content-type"].startswith("text/event-stream"))
                body = "".join(response.iter_text())

        self.assertIn('"type": "connected"', body)
        self.assertIn("event: complete", body)

    def test_unknown_job_is_not_found(self):
        with TestClient(self.app) as client:
            response = client.get("/api/readiness/octocat/unknown/jobs")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "JOB_NOT_FOUND")


if __name__ == "__main__":
    unittest.main()
