from .cancellation import CancellationToken
from .coalescer import RequestCoalescer
from .job import TRANSITIONS, ReadinessJob
from .policy import ReadinessPolicy
from .redirect import PendingRedirect, processing_path, resolve_redirect_path
from .status import check_repository_status, split_full_name
from .workflow import ReadinessWorkflow

__all__ = [
    "CancellationToken",
    "PendingRedirect",
    "ReadinessJob",
    "ReadinessPolicy",
    "ReadinessWorkflow",
    "RequestCoalescer",
    "TRANSITIONS",
    "check_repository_status",
    "processing_path",
    "resolve_redirect_path",
    "split_full_name",
]
