"""
Health check endpoints
"""

from fastapi import APIRouter, Depends

from devinsights.api.deps import get_workflow
from devinsights.services.readiness.workflow import ReadinessWorkflow
from devinsights.utils.datetime import utc_now

router = APIRouter()


@router.get("/health")
async def health_check(workflow: ReadinessWorkflow = Depends(get_workflow)):
    """Simple API health check."""
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": "DevInsights companion API",
        "active_jobs": len(workflow.active_jobs()),
    }
