"""Repository readiness DTOs"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, computed_field


class JobPhase(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"
    REQUESTING = "requesting"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobPhase.SUCCEEDED, JobPhase.FAILED, JobPhase.CANCELLED)


class RepositoryReadinessStatus(BaseModel):
    """Result of a status check; recomputed on every check, never stored."""

    exists: bool = False
    file_count: int = 0
    commit_count: int = 0
    developer_count: int = 0

    @computed_field
    @property
    def is_processed(self) -> bool:
        return self.exists and self.file_count > 0 and self.commit_count > 0

    @classmethod
    def unknown(cls) -> "RepositoryReadinessStatus":
        """Status used when the backend could not be asked (treated as not ready)."""
        return cls()

    @classmethod
    def from_payload(cls, data: Any) -> "RepositoryReadinessStatus":
        """Build from a ``/api/debug/repo/{owner}/{repo}`` response body."""
        if not isinstance(data, dict):
            return cls.unknown()
        return cls(
            exists=bool(data.get("repository_exists")),
            file_count=_as_int(data.get("file_count")),
            commit_count=_as_int(data.get("commit_count")),
            developer_count=_as_int(data.get("developer_count")),
        )


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class IngestionResult(BaseModel):
    repo_full_name: str
    branch: str
    limit: int
    commit_count: int = 0


class StartJobRequest(BaseModel):
    requested_path: Optional[str] = Field(
        default=None, description="Front-end path to return to once the repository is ready"
    )


class JobSnapshot(BaseModel):
    job_id: str
    repo_full_name: str
    phase: JobPhase
    progress: float = 0.0
    message: str = ""
    attempts_made: int = 0
    commits_ingested: Optional[int] = None
    status: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    redirect_path: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class GateResponse(BaseModel):
    repo_full_name: str
    needs_processing: bool
    status: Dict[str, Any]
    processing_path: Optional[str] = None
    requested_path: Optional[str] = None
