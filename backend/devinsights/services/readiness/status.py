"""Repository status checks against the analytics API."""

import logging
from typing import Tuple

from devinsights.dtos.readiness import RepositoryReadinessStatus
from devinsights.services.analytics.client import AnalyticsApiClient
from devinsights.services.exceptions import AnalyticsApiError, InvalidRepositoryNameError

logger = logging.getLogger(__name__)


def split_full_name(repo_full_name: str) -> Tuple[str, str]:
    """Split ``owner/repo`` into its parts."""
    if not isinstance(repo_full_name, str):
        raise InvalidRepositoryNameError(repo_full_name)
    parts = repo_full_name.strip().split("/")
    if len(parts) != 2 or not all(parts):
        raise InvalidRepositoryNameError(repo_full_name)
    return parts[0], parts[1]


async def check_repository_status(
    client: AnalyticsApiClient, repo_full_name: str
) -> RepositoryReadinessStatus:
    """
    Ask the backend how far ingestion of a repository has come.

    Any failure to get an answer resolves to "does not exist, not processed":
    callers cannot tell an absent repository from an unreachable status
    service. The backend contract offers no separate "unknown" state.
    """
    owner, repo = split_full_name(repo_full_name)
    try:
        data = await client.get_repository_debug(owner, repo)
    except AnalyticsApiError as exc:
        logger.warning(f"Status check for {repo_full_name} failed, assuming not processed: {exc}")
        return RepositoryReadinessStatus.unknown()

    status = RepositoryReadinessStatus.from_payload(data)
    logger.debug(
        f"Repository {repo_full_name} status: exists={status.exists} "
        f"processed={status.is_processed} files={status.file_count} "
        f"commits={status.commit_count} developers={status.developer_count}"
    )
    return status
