"""Readiness workflow: status checks, ingestion requests and readiness jobs."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

from devinsights.dtos.readiness import (
    GateResponse,
    IngestionResult,
    RepositoryReadinessStatus,
)
from devinsights.services.analytics.client import AnalyticsApiClient
from devinsights.services.exceptions import AnalyticsApiError, JobNotFoundError
from devinsights.services.readiness.coalescer import RequestCoalescer
from devinsights.services.readiness.job import (
    CompletionCallback,
    ProgressCallback,
    ReadinessJob,
)
from devinsights.services.readiness.policy import ReadinessPolicy
from devinsights.services.readiness.redirect import normalize_requested_path, processing_path
from devinsights.services.readiness.status import check_repository_status, split_full_name

logger = logging.getLogger(__name__)


class ReadinessWorkflow:
    """
    Entry point for everything that decides whether a repository is ready.

    Holds at most one active job per repository. Asking for a job while one
    is active hands back the active job: the first caller wins and later
    callers wait on the same outcome.
    """

    def __init__(self, client: AnalyticsApiClient, policy: Optional[ReadinessPolicy] = None):
        self._client = client
        self.policy = policy or ReadinessPolicy.from_settings()
        self._ingestions = RequestCoalescer()
        self._jobs: Dict[str, ReadinessJob] = {}

    async def check_status(self, repo_full_name: str) -> RepositoryReadinessStatus:
        return await check_repository_status(self._client, repo_full_name)

    async def request_ingestion(
        self,
        repo_full_name: str,
        branch: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> IngestionResult:
        """
        Ask the backend to ingest a repository.

        Identical concurrent requests (same name, branch and limit) share a
        single call. Errors propagate to every caller unchanged.
        """
        split_full_name(repo_full_name)
        branch = branch or self.policy.ingestion_branch
        limit = limit or self.policy.ingestion_limit
        key = (repo_full_name, branch, limit)
        return await self._ingestions.run(
            key, lambda: self._trigger_ingestion(repo_full_name, branch, limit)
        )

    async def _trigger_ingestion(
        self, repo_full_name: str, branch: str, limit: int
    ) -> IngestionResult:
        logger.info(f"Fetching commits for {repo_full_name} (branch={branch}, limit={limit})")
        try:
            data = await self._client.fetch_commits(repo_full_name, branch, limit)
        except AnalyticsApiError as exc:
            logger.error(
                f"Error fetching repository commits for {repo_full_name}: {exc} "
                f"(status={exc.status_code})"
            )
            raise

        commits = data.get("commits") if isinstance(data, dict) else None
        commit_count = len(commits) if isinstance(commits, list) else 0
        if commit_count:
            logger.info(f"Received {commit_count} commits for {repo_full_name}")
        else:
            logger.warning(f"Ingestion request for {repo_full_name} returned no commits")
        return IngestionResult(
            repo_full_name=repo_full_name,
            branch=branch,
            limit=limit,
            commit_count=commit_count,
        )

    def run_readiness_job(
        self,
        repo_full_name: str,
        *,
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[CompletionCallback] = None,
        requested_path: Optional[str] = None,
    ) -> ReadinessJob:
        """Start (or join) the readiness job for a repository. Must run inside the event loop."""
        split_full_name(repo_full_name)
        existing = self._jobs.get(repo_full_name)
        if existing is not None and existing.is_active:
            logger.info(
                f"Readiness job {existing.job_id} for {repo_full_name} already running, "
                "joining it"
            )
            return existing

        job = ReadinessJob(
            repo_full_name,
            check_status=self.check_status,
            request_ingestion=self.request_ingestion,
            policy=self.policy,
            on_progress=on_progress,
            on_complete=on_complete,
            requested_path=requested_path,
        )
        self._jobs[repo_full_name] = job
        logger.info(f"Starting readiness job {job.job_id} for {repo_full_name}")
        return job.start()

    def get_job(self, repo_full_name: str) -> Optional[ReadinessJob]:
        """Latest job for a repository, active or finished."""
        return self._jobs.get(repo_full_name)

    def require_job(self, repo_full_name: str) -> ReadinessJob:
        job = self.get_job(repo_full_name)
        if job is None:
            raise JobNotFoundError(repo_full_name)
        return job

    def cancel_job(self, repo_full_name: str) -> bool:
        return self.require_job(repo_full_name).cancel()

    def active_jobs(self) -> List[ReadinessJob]:
        return [job for job in self._jobs.values() if job.is_active]

    async def gate(
        self, repo_full_name: str, current_path: Optional[str] = None
    ) -> GateResponse:
        """
        Decide whether a view may render for a repository.

        When the repository still needs processing the answer carries the
        processing page path and the path to come back to afterwards.
        """
        status = await self.check_status(repo_full_name)
        needs_processing = not status.is_processed
        return GateResponse(
            repo_full_name=repo_full_name,
            needs_processing=needs_processing,
            status=status.model_dump(),
            processing_path=processing_path(repo_full_name, self.policy)
            if needs_processing
            else None,
            requested_path=normalize_requested_path(current_path) if needs_processing else None,
        )

    async def shutdown(self) -> None:
        jobs = self.active_jobs()
        if jobs:
            logger.info(f"Cancelling {len(jobs)} active readiness job(s)")
        await asyncio.gather(*(job.close() for job in jobs), return_exceptions=True)
