"""Readiness job endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, status

from devinsights.api.deps import get_selection_service, get_workflow
from devinsights.dtos.readiness import JobSnapshot, StartJobRequest
from devinsights.services.readiness.workflow import ReadinessWorkflow
from devinsights.services.selection_service import RepositorySelectionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/readiness", tags=["Readiness"])


def _log_completion(repo_full_name: str):
    def on_complete(success: bool, error: Optional[BaseException]) -> None:
        if success:
            logger.info(f"Repository {repo_full_name} is ready")
        else:
            logger.warning(f"Repository {repo_full_name} could not be processed: {error}")

    return on_complete


@router.post(
    "/{owner}/{repo}/jobs",
    response_model=JobSnapshot,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_job(
    owner: str,
    repo: str,
    payload: Optional[StartJobRequest] = Body(default=None),
    selection: RepositorySelectionService = Depends(get_selection_service),
    workflow: ReadinessWorkflow = Depends(get_workflow),
):
    """
    Start processing a repository, or join the job already running for it.

    Progress can be followed with GET on the same path or through
    ``/api/sse/readiness/{owner}/{repo}``.
    """
    payload = payload or StartJobRequest()
    repo_full_name = await selection.resolve_for_processing(f"{owner}/{repo}")
    job = workflow.run_readiness_job(
        repo_full_name,
        on_complete=_log_completion(repo_full_name),
        requested_path=payload.requested_path,
    )
    return job.snapshot()


@router.get("/{owner}/{repo}/jobs", response_model=JobSnapshot)
async def get_job(
    owner: str,
    repo: str,
    workflow: ReadinessWorkflow = Depends(get_workflow),
):
    return workflow.require_job(f"{owner}/{repo}").snapshot()


@router.delete("/{owner}/{repo}/jobs", response_model=JobSnapshot)
async def cancel_job(
    owner: str,
    repo: str,
    workflow: ReadinessWorkflow = Depends(get_workflow),
):
    """Cancel processing. Cancelling a finished job changes nothing."""
    repo_full_name = f"{owner}/{repo}"
    if not workflow.cancel_job(repo_full_name):
        logger.info(f"Readiness job for {repo_full_name} already finished, nothing to cancel")
    return workflow.require_job(repo_full_name).snapshot()
