"""HTTP client for the remote DevInsights analytics API.

Every request carries ``Authorization: Bearer <token>`` when a session token
is stored; without one the request goes out unauthenticated and the backend
decides. Transport problems raise :class:`AnalyticsTransportError`, non-2xx
answers and unreadable bodies raise :class:`AnalyticsApiError`.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from devinsights.config import settings
from devinsights.core.tracing import TracingContext
from devinsights.services.exceptions import AnalyticsApiError, AnalyticsTransportError

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[Optional[str]]]


async def _no_token() -> Optional[str]:
    return None


class AnalyticsApiClient:
    def __init__(
        self,
        base_url: str | None = None,
        token_provider: TokenProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        default_timeout: float | None = None,
    ):
        self.base_url = (base_url or settings.ANALYTICS_API_URL).rstrip("/")
        self._token_provider = token_provider or _no_token
        self._transport = transport
        self._default_timeout = default_timeout or settings.API_TIMEOUT

    async def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        try:
            token = await self._token_provider()
        except Exception as exc:
            raise AnalyticsTransportError(
                f"Session token lookup failed: {exc.__class__.__name__}: {exc}"
            ) from exc
        if token:
            headers["Authorization"] = f"Bearer {token}"
        corr_id = TracingContext.get_correlation_id()
        if corr_id:
            headers["X-Request-ID"] = corr_id
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        timeout: float | None = None,
    ) -> Any:
        headers = await self._headers()
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=timeout or self._default_timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method, path, params=params, json=json, headers=headers
                )
        except httpx.RequestError as exc:
            raise AnalyticsTransportError(
                f"{method} {path} failed: {exc.__class__.__name__}: {exc}"
            ) from exc

        if response.is_error:
            payload: Any
            try:
                payload = response.json()
            except ValueError:
                payload = response.text
            raise AnalyticsApiError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                payload=payload,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise AnalyticsApiError(
                f"{method} {path} returned a non-JSON body",
                status_code=response.status_code,
                payload=response.text,
            ) from exc

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """Exchange a GitHub OAuth code for an analytics API token."""
        return await self._request(
            "POST",
            "/auth/github/callback",
            json={"code": code},
            timeout=settings.AUTH_EXCHANGE_TIMEOUT,
        )

    async def validate_token(self) -> Dict[str, Any]:
        return await self._request(
            "GET", "/auth/validate", timeout=settings.AUTH_VALIDATE_TIMEOUT
        )

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    async def list_repositories(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/user/repositories")
        if not isinstance(data, list):
            raise AnalyticsApiError(
                "GET /user/repositories did not return a list", payload=data
            )
        return data

    async def get_repository_debug(self, owner: str, repo: str) -> Dict[str, Any]:
        """Ingestion counters for a repository (``/api/debug/repo/{owner}/{repo}``)."""
        return await self._request(
            "GET",
            f"/api/debug/repo/{owner}/{repo}",
            timeout=settings.STATUS_CHECK_TIMEOUT,
        )

    async def fetch_commits(self, repo_full_name: str, branch: str, limit: int) -> Dict[str, Any]:
        """
        Trigger ingestion of a repository.

        The backend fetches the commit history as a side effect, which can
        take minutes on large repositories.
        """
        return await self._request(
            "GET",
            "/commits",
            params={"repo": repo_full_name, "branch": branch, "limit": limit},
            timeout=settings.INGESTION_TIMEOUT,
        )
