"""Authentication DTOs"""

from typing import Optional, Union

from pydantic import AliasChoices, BaseModel, Field


class SessionUser(BaseModel):
    id: Optional[Union[int, str]] = None
    name: Optional[str] = None
    login: Optional[str] = None
    avatar_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("avatar_url", "avatarUrl")
    )
    email: Optional[str] = None


class LoginRequest(BaseModel):
    code: str = Field(..., min_length=1, description="GitHub OAuth authorization code")


class SessionResponse(BaseModel):
    authenticated: bool
    user: Optional[SessionUser] = None
