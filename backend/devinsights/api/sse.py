"""
SSE (Server-Sent Events) API for readiness job progress.

Event types:
- connected: Initial connection confirmation
- progress: Phase, progress or message changed
- complete: Job reached a terminal phase (stream closes afterwards)
- heartbeat: Keep-alive signal
"""

import asyncio
import json
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from devinsights.api.deps import AppServices, get_services
from devinsights.services.readiness.job import ReadinessJob

logger = logging.getLogger(__name__)

router = APIRouter(tags=["SSE"])


def format_sse(data: dict, event: str | None = None) -> str:
    """Format data as SSE message."""
    lines = []
    if event:
        lines.append(f"event: {event}")
    lines.append(f"data: {json.dumps(data)}")
    lines.append("")  # Empty line to end message
    return "\n".join(lines) + "\n"


async def sse_readiness_generator(
    job: ReadinessJob,
    request: Request,
    heartbeat_seconds: float,
) -> AsyncGenerator[str, None]:
    """Stream snapshots of a readiness job until it is terminal."""
    logger.info(f"SSE readiness stream connected for {job.repo_full_name} (job {job.job_id})")

    yield format_sse(
        {
            "type": "connected",
            "job_id": job.job_id,
            "message": "Connected to repository processing stream",
        }
    )

    queue = job.subscribe()
    try:
        while True:
            if await request.is_disconnected():
                break

            try:
                snapshot = await asyncio.wait_for(queue.get(), timeout=heartbeat_seconds)
            except asyncio.TimeoutError:
                yield format_sse({"type": "heartbeat"})
                continue

            event_type = "complete" if snapshot.phase.is_terminal else "progress"
            yield format_sse(
                {"type": event_type, **snapshot.model_dump(mode="json")}, event_type
            )
            if snapshot.phase.is_terminal:
                break
    finally:
        job.unsubscribe(queue)
        logger.info(f"SSE readiness stream closed for {job.repo_full_name}")


@router.get("/sse/readiness/{owner}/{repo}")
async def sse_readiness(
    owner: str,
    repo: str,
    request: Request,
    services: AppServices = Depends(get_services),
):
    """SSE endpoint for the readiness job of a repository."""
    job = services.workflow.require_job(f"{owner}/{repo}")
    return StreamingResponse(
        sse_readiness_generator(job, request, services.settings.SSE_HEARTBEAT_SECONDS),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
