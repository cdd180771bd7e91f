"""
Tracing Context - context management for request and job tracing.

Uses Python's contextvars so every asyncio task (request handler, readiness
job, poll loop) carries its own values.

Usage:
    # Set context at the start of a job
    TracingContext.set(
        correlation_id="abc-123",
        repo_full_name="octocat/hello-world",
        job_id="f00d",
    )

    # Get context (automatically added to JSONFormatter logs)
    ctx = TracingContext.get()

    # Clear context at the end
    TracingContext.clear()
"""

import uuid
from contextvars import ContextVar
from typing import Dict

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")
_repo_full_name: ContextVar[str] = ContextVar("repo_full_name", default="")
_job_id: ContextVar[str] = ContextVar("job_id", default="")
_task_name: ContextVar[str] = ContextVar("task_name", default="")


class TracingContext:
    """Tracing context for the current task."""

    @staticmethod
    def set(
        correlation_id: str = "",
        repo_full_name: str = "",
        job_id: str = "",
        task_name: str = "",
    ) -> None:
        """Set tracing context for current execution."""
        if correlation_id:
            _correlation_id.set(correlation_id)
        if repo_full_name:
            _repo_full_name.set(repo_full_name)
        if job_id:
            _job_id.set(job_id)
        if task_name:
            _task_name.set(task_name)

    @staticmethod
    def get() -> Dict[str, str]:
        """Get current tracing context as dict."""
        return {
            "correlation_id": _correlation_id.get(),
            "repo_full_name": _repo_full_name.get(),
            "job_id": _job_id.get(),
            "task_name": _task_name.get(),
        }

    @staticmethod
    def get_correlation_id() -> str:
        return _correlation_id.get()

    @staticmethod
    def get_or_create_correlation_id() -> str:
        """Get current correlation ID or create a new one."""
        corr_id = _correlation_id.get()
        if not corr_id:
            corr_id = str(uuid.uuid4())
            _correlation_id.set(corr_id)
        return corr_id

    @staticmethod
    def clear() -> None:
        """Clear all tracing context."""
        _correlation_id.set("")
        _repo_full_name.set("")
        _job_id.set("")
        _task_name.set("")
