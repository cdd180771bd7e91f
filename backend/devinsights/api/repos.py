"""Repository list, selection and status endpoints."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from devinsights.api.deps import get_selection_service, get_workflow
from devinsights.dtos.readiness import GateResponse
from devinsights.dtos.repository import (
    RepositoryListResponse,
    SelectionRequest,
    SelectionResponse,
)
from devinsights.services.readiness.workflow import ReadinessWorkflow
from devinsights.services.selection_service import RepositorySelectionService

router = APIRouter(prefix="/repos", tags=["Repositories"])


@router.get("", response_model=RepositoryListResponse)
async def list_repositories(
    selection: RepositorySelectionService = Depends(get_selection_service),
):
    """Reload the user's repositories; a selection that disappeared is cleared."""
    items = await selection.refresh()
    return RepositoryListResponse(
        items=items, total=len(items), selection=await selection.selection()
    )


@router.get("/selection", response_model=SelectionResponse)
async def get_selection(
    selection: RepositorySelectionService = Depends(get_selection_service),
):
    return SelectionResponse(selection=await selection.selection())


@router.put("/selection", response_model=SelectionResponse)
async def select_repository(
    payload: SelectionRequest,
    selection: RepositorySelectionService = Depends(get_selection_service),
):
    selected = await selection.select(payload.repo_id, payload.repo_full_name)
    return SelectionResponse(selection=selected)


@router.delete("/selection", status_code=status.HTTP_204_NO_CONTENT)
async def clear_selection(
    selection: RepositorySelectionService = Depends(get_selection_service),
):
    await selection.clear()


@router.get("/{owner}/{repo}/status")
async def repository_status(
    owner: str,
    repo: str,
    workflow: ReadinessWorkflow = Depends(get_workflow),
) -> Dict[str, Any]:
    """Ingestion status; an unreachable backend reads as not processed."""
    status_result = await workflow.check_status(f"{owner}/{repo}")
    return status_result.model_dump()


@router.get("/{owner}/{repo}/gate", response_model=GateResponse)
async def repository_gate(
    owner: str,
    repo: str,
    path: Optional[str] = Query(default=None, description="Path of the view being opened"),
    workflow: ReadinessWorkflow = Depends(get_workflow),
):
    """Whether a view can render now or the repository must be processed first."""
    return await workflow.gate(f"{owner}/{repo}", current_path=path)
