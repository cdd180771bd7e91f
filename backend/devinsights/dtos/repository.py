"""Repository DTOs"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class RepositorySelection(BaseModel):
    repo_id: str
    repo_full_name: str


class SelectionRequest(BaseModel):
    repo_id: str = ""
    repo_full_name: str = ""


class SelectionResponse(BaseModel):
    selection: Optional[RepositorySelection] = None


class RepositorySummary(BaseModel):
    id: str
    name: str
    full_name: str
    owner_name: Optional[str] = None
    repo_name: Optional[str] = None
    description: Optional[str] = None
    language: Optional[str] = None
    private: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        if value is None or value == "":
            raise ValueError("repository id is required")
        return str(value)

    @classmethod
    def from_api(cls, doc: Dict[str, Any]) -> "RepositorySummary":
        """Map a repository from ``GET /user/repositories``."""
        owner = doc.get("owner") or {}
        name = doc.get("name") or ""
        owner_login = owner.get("login") if isinstance(owner, dict) else None
        full_name = doc.get("full_name") or doc.get("fullName")
        if not full_name and owner_login and name:
            full_name = f"{owner_login}/{name}"
        return cls(
            id=doc.get("id"),
            name=name,
            full_name=full_name or "",
            owner_name=owner_login,
            repo_name=name,
            description=doc.get("description"),
            language=doc.get("language"),
            private=bool(doc.get("private", doc.get("isPrivate", False))),
        )


class RepositoryListResponse(BaseModel):
    items: List[RepositorySummary] = Field(default_factory=list)
    total: int = 0
    selection: Optional[RepositorySelection] = None
