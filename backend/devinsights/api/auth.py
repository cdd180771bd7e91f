from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from devinsights.api.deps import get_session_service
from devinsights.dtos.auth import LoginRequest, SessionResponse
from devinsights.services.session_service import SessionService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=SessionResponse)
async def login(
    payload: LoginRequest,
    sessions: SessionService = Depends(get_session_service),
):
    """Exchange a GitHub OAuth code for a session with the analytics API."""
    return await sessions.login(payload.code)


@router.get("/session", response_model=SessionResponse)
async def get_session(sessions: SessionService = Depends(get_session_service)):
    """Validate the stored token and return the session it belongs to."""
    return await sessions.restore()


@router.get("/validate")
async def validate_token(
    sessions: SessionService = Depends(get_session_service),
) -> Dict[str, Any]:
    return await sessions.validate()


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(sessions: SessionService = Depends(get_session_service)):
    """Drop the session token, the user profile and the repository selection."""
    await sessions.logout()
