"""
Session state: login through the analytics API, validation, logout.

The session token and user profile live in the ClientStateStore so they
survive restarts. Logging out also drops the repository selection.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from devinsights.dtos.auth import SessionResponse, SessionUser
from devinsights.services.analytics.client import AnalyticsApiClient
from devinsights.services.exceptions import (
    AnalyticsApiError,
    AuthenticationError,
    LoginInProgressError,
)
from devinsights.services.readiness.coalescer import RequestCoalescer
from devinsights.services.state_store import ClientStateStore

logger = logging.getLogger(__name__)

# Codes are keyed on their first characters only
EXCHANGE_KEY_PREFIX_LENGTH = 10


def _parse_user(data: Any) -> Optional[SessionUser]:
    if not isinstance(data, dict) or not data.get("user"):
        return None
    try:
        return SessionUser.model_validate(data["user"])
    except ValidationError as exc:
        logger.warning(f"Unreadable user profile from auth API: {exc}")
        return None


class SessionService:
    def __init__(self, client: AnalyticsApiClient, state: ClientStateStore):
        self._client = client
        self._state = state
        self._exchanges = RequestCoalescer()
        self._login_in_progress = False

    async def current(self) -> SessionResponse:
        """Session as currently stored, without asking the backend."""
        token = await self._state.get_token()
        user = await self._state.get_user() if token else None
        return SessionResponse(authenticated=bool(token and user), user=user)

    async def restore(self) -> SessionResponse:
        """
        Validate a stored token and refresh the stored user.

        A token the backend rejects (or cannot confirm) is removed.
        """
        token = await self._state.get_token()
        if not token:
            return SessionResponse(authenticated=False)

        try:
            data = await self._client.validate_token()
        except AnalyticsApiError as exc:
            logger.warning(f"Token validation failed, dropping session: {exc}")
            await self._state.clear_session()
            return SessionResponse(authenticated=False)

        user = _parse_user(data)
        if user is None:
            await self._state.clear_session()
            return SessionResponse(authenticated=False)

        await self._state.set_user(user)
        return SessionResponse(authenticated=True, user=user)

    async def validate(self) -> Dict[str, Any]:
        """Raw validation answer; ``{"is_valid": False}`` when no token is stored."""
        if not await self._state.get_token():
            return {"is_valid": False}
        return await self._client.validate_token()

    async def login(self, code: str) -> SessionResponse:
        if self._login_in_progress:
            raise LoginInProgressError("Login already in progress")

        self._login_in_progress = True
        try:
            current = await self.current()
            if current.authenticated:
                logger.info("Already authenticated, skipping login")
                return current

            data = await self.exchange_code(code)
            token = data.get("token") if isinstance(data, dict) else None
            user = _parse_user(data)
            if not token or user is None:
                raise AuthenticationError("Invalid response from authentication server")

            await self._state.set_user(user)
            return SessionResponse(authenticated=True, user=user)
        finally:
            self._login_in_progress = False

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """Exchange an OAuth code; concurrent exchanges of the same code share one call."""
        if not code:
            raise AuthenticationError("Missing authorization code")
        key = f"exchange_{code[:EXCHANGE_KEY_PREFIX_LENGTH]}"
        return await self._exchanges.run(key, lambda: self._exchange(code))

    async def _exchange(self, code: str) -> Dict[str, Any]:
        existing = await self._reuse_existing_token()
        if existing is not None:
            return existing

        logger.info(f"Exchanging code {code[:EXCHANGE_KEY_PREFIX_LENGTH]}...")
        try:
            data = await self._client.exchange_code(code)
        except AnalyticsApiError as exc:
            if exc.status_code == 409:
                logger.info("Code already used, checking for existing token")
                existing = await self._reuse_existing_token()
                if existing is not None:
                    return existing
            logger.error(f"Token exchange failed: {exc}")
            raise

        token = data.get("token") if isinstance(data, dict) else None
        if token:
            await self._state.set_token(token)
        else:
            logger.warning("No token received in exchange response")
        return data

    async def _reuse_existing_token(self) -> Optional[Dict[str, Any]]:
        token = await self._state.get_token()
        if not token:
            return None
        try:
            data = await self._client.validate_token()
        except AnalyticsApiError as exc:
            logger.info(f"Existing token invalid, continuing with exchange: {exc}")
            await self._state.clear_token()
            return None
        logger.info("Existing token validated")
        return {"token": token, "user": data.get("user") if isinstance(data, dict) else None}

    async def logout(self) -> None:
        await self._state.clear_session()
        await self._state.clear_selection()
        logger.info("Session cleared")
