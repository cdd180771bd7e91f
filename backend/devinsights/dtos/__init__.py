from .auth import LoginRequest, SessionResponse, SessionUser
from .readiness import (
    GateResponse,
    IngestionResult,
    JobPhase,
    JobSnapshot,
    RepositoryReadinessStatus,
    StartJobRequest,
)
from .repository import (
    RepositoryListResponse,
    RepositorySelection,
    RepositorySummary,
    SelectionRequest,
    SelectionResponse,
)

__all__ = [
    "GateResponse",
    "IngestionResult",
    "JobPhase",
    "JobSnapshot",
    "LoginRequest",
    "RepositoryListResponse",
    "RepositoryReadinessStatus",
    "RepositorySelection",
    "RepositorySummary",
    "SelectionRequest",
    "SelectionResponse",
    "SessionResponse",
    "SessionUser",
    "StartJobRequest",
]
