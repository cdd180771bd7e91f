"""Where the front end goes once a readiness job ends."""

from typing import Optional
from urllib.parse import quote

from devinsights.services.readiness.policy import ReadinessPolicy

# Values the front end used to leave behind for "no path"
_EMPTY_PATHS = frozenset({"", "null", "undefined"})


def normalize_requested_path(path: Optional[str]) -> Optional[str]:
    """Return an in-app absolute path, or None for anything else."""
    if path is None:
        return None
    path = path.strip()
    if path in _EMPTY_PATHS:
        return None
    if not path.startswith("/") or path.startswith("//"):
        return None
    return path


class PendingRedirect:
    """Requested path captured at job start; can be taken exactly once."""

    def __init__(self, path: Optional[str] = None):
        self._path = normalize_requested_path(path)

    @property
    def path(self) -> Optional[str]:
        return self._path

    def take(self) -> Optional[str]:
        path, self._path = self._path, None
        return path


def resolve_redirect_path(
    succeeded: bool, pending: PendingRedirect, policy: ReadinessPolicy
) -> str:
    """Consume the requested path and pick the destination for a finished job."""
    requested = pending.take()
    if succeeded:
        return requested or policy.default_redirect_path
    return policy.manage_repositories_path


def processing_path(repo_full_name: str, policy: ReadinessPolicy) -> str:
    return f"{policy.processing_path_prefix}/{quote(repo_full_name, safe='')}"
