"""
Repository readiness job.

A job answers one question for one repository: is the backend done
ingesting it? It checks the status once, requests ingestion when needed and
polls the status until the repository is ready, the ingestion request fails,
a polling bound is hit or the job is cancelled.

Phases and the transitions between them:

    idle -> checking -> requesting -> polling -> succeeded | failed
                |            |
                +-> succeeded +-> succeeded | failed
    any non-terminal phase -> cancelled

Status ticks start as soon as ingestion is requested, so a backend that
finishes before the trigger call returns is still noticed. Polling bounds
only count ticks made after the trigger call returned. A terminal phase
has no outgoing transitions; that is what makes the completion callback fire
exactly once even when a poll tick and a late ingestion failure race.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Awaitable, Callable, Dict, FrozenSet, List, Optional

from devinsights.core.tracing import TracingContext
from devinsights.dtos.readiness import (
    IngestionResult,
    JobPhase,
    JobSnapshot,
    RepositoryReadinessStatus,
)
from devinsights.services.exceptions import ReadinessTimeoutError
from devinsights.services.readiness.cancellation import CancellationToken
from devinsights.services.readiness.policy import ReadinessPolicy
from devinsights.services.readiness.redirect import PendingRedirect, resolve_redirect_path
from devinsights.utils.datetime import utc_now

logger = logging.getLogger(__name__)

StatusCheck = Callable[[str], Awaitable[RepositoryReadinessStatus]]
IngestionRequest = Callable[[str], Awaitable[IngestionResult]]
ProgressCallback = Callable[[JobSnapshot], None]
CompletionCallback = Callable[[bool, Optional[BaseException]], None]

TRANSITIONS: Dict[JobPhase, FrozenSet[JobPhase]] = {
    JobPhase.IDLE: frozenset({JobPhase.CHECKING, JobPhase.CANCELLED}),
    JobPhase.CHECKING: frozenset(
        {JobPhase.REQUESTING, JobPhase.SUCCEEDED, JobPhase.CANCELLED}
    ),
    JobPhase.REQUESTING: frozenset(
        {JobPhase.POLLING, JobPhase.SUCCEEDED, JobPhase.FAILED, JobPhase.CANCELLED}
    ),
    JobPhase.POLLING: frozenset(
        {JobPhase.SUCCEEDED, JobPhase.FAILED, JobPhase.CANCELLED}
    ),
    JobPhase.SUCCEEDED: frozenset(),
    JobPhase.FAILED: frozenset(),
    JobPhase.CANCELLED: frozenset(),
}

PROGRESS_REQUESTED = 10.0
PROGRESS_ACCEPTED = 50.0
PROGRESS_DONE = 100.0


class ReadinessJob:
    def __init__(
        self,
        repo_full_name: str,
        *,
        check_status: StatusCheck,
        request_ingestion: IngestionRequest,
        policy: Optional[ReadinessPolicy] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[CompletionCallback] = None,
        requested_path: Optional[str] = None,
    ):
        self.job_id = uuid.uuid4().hex
        self.repo_full_name = repo_full_name
        self.policy = policy or ReadinessPolicy()

        self.phase = JobPhase.IDLE
        self.attempts_made = 0
        self.last_error: Optional[BaseException] = None
        self.last_status: Optional[RepositoryReadinessStatus] = None
        self.progress = 0.0
        self.message = "Initializing repository processing..."
        self.commits_ingested: Optional[int] = None
        self.redirect_path: Optional[str] = None
        self.started_at = None
        self.finished_at = None

        self._check_status = check_status
        self._request_ingestion = request_ingestion
        self._on_progress = on_progress
        self._on_complete = on_complete
        self._redirect = PendingRedirect(requested_path)
        self._token = CancellationToken()
        self._done = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._poller: Optional[asyncio.Task] = None
        self._ticker: Optional[asyncio.Task] = None
        self._polling_started: Optional[float] = None
        self._subscribers: List[asyncio.Queue] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return not self.phase.is_terminal

    @property
    def requested_path(self) -> Optional[str]:
        """Requested path not yet consumed by a redirect."""
        return self._redirect.path

    def start(self) -> "ReadinessJob":
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(
                self._run_guarded(), name=f"readiness:{self.repo_full_name}"
            )
        return self

    async def wait(self) -> JobSnapshot:
        """Wait until the job reaches a terminal phase."""
        await self._done.wait()
        return self.snapshot()

    def cancel(self) -> bool:
        """
        Stop the job without invoking the completion callback.

        Returns False when the job already reached a terminal phase.
        """
        if not self._transition(JobPhase.CANCELLED):
            return False
        self._stop()
        self._redirect.take()
        self.redirect_path = self.policy.manage_repositories_path
        self.message = "Processing cancelled"
        logger.info(f"Readiness job for {self.repo_full_name} cancelled")
        self._settle()
        return True

    async def close(self) -> None:
        """Cancel the job and tear down its tasks (service shutdown)."""
        self.cancel()
        tasks = [t for t in (self._task, self._poller, self._ticker) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def subscribe(self) -> asyncio.Queue:
        """Queue receiving a snapshot on every progress update."""
        queue: asyncio.Queue = asyncio.Queue()
        queue.put_nowait(self.snapshot())
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def snapshot(self) -> JobSnapshot:
        return JobSnapshot(
            job_id=self.job_id,
            repo_full_name=self.repo_full_name,
            phase=self.phase,
            progress=self.progress,
            message=self.message,
            attempts_made=self.attempts_made,
            commits_ingested=self.commits_ingested,
            status=self.last_status.model_dump() if self.last_status else None,
            error=str(self.last_error) if self.last_error else None,
            redirect_path=self.redirect_path,
            started_at=self.started_at,
            finished_at=self.finished_at,
        )

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _transition(self, target: JobPhase) -> bool:
        if target not in TRANSITIONS[self.phase]:
            logger.debug(
                f"Ignoring transition {self.phase.value} -> {target.value} "
                f"for {self.repo_full_name}"
            )
            return False
        self.phase = target
        return True

    def _succeed(self, status: RepositoryReadinessStatus) -> None:
        if not self._transition(JobPhase.SUCCEEDED):
            return
        self._stop()
        self.last_status = status
        self.progress = PROGRESS_DONE
        self.message = "Repository processing completed successfully!"
        self.redirect_path = resolve_redirect_path(True, self._redirect, self.policy)
        logger.info(
            f"Repository {self.repo_full_name} is processed, redirecting to {self.redirect_path}"
        )
        self._settle()
        self._notify_complete(True, None)

    def _fail(self, error: BaseException) -> None:
        if not self._transition(JobPhase.FAILED):
            return
        self._stop()
        self.last_error = error
        self.message = f"Processing failed: {error or 'Unknown error'}"
        self.redirect_path = resolve_redirect_path(False, self._redirect, self.policy)
        logger.error(f"Readiness job for {self.repo_full_name} failed: {error}")
        self._settle()
        self._notify_complete(False, error)

    def _stop(self) -> None:
        # Stop every timer before anybody is notified
        self._token.cancel()
        if self._ticker is not None and not self._ticker.done():
            self._ticker.cancel()

    def _settle(self) -> None:
        self.finished_at = utc_now()
        self._done.set()
        self._publish()

    def _notify_complete(self, success: bool, error: Optional[BaseException]) -> None:
        if self._on_complete is None:
            return
        try:
            self._on_complete(success, error)
        except Exception:
            logger.exception(f"Completion callback for {self.repo_full_name} raised")

    def _publish(self) -> None:
        snapshot = self.snapshot()
        for queue in list(self._subscribers):
            queue.put_nowait(snapshot)
        if self._on_progress is None:
            return
        try:
            self._on_progress(snapshot)
        except Exception:
            logger.exception(f"Progress callback for {self.repo_full_name} raised")

    def _update(self, progress: Optional[float] = None, message: Optional[str] = None) -> None:
        if progress is not None:
            self.progress = max(self.progress, progress)
        if message is not None:
            self.message = message
        self._publish()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _run_guarded(self) -> None:
        TracingContext.set(
            repo_full_name=self.repo_full_name,
            job_id=self.job_id,
            task_name="readiness_job",
        )
        try:
            await self._run()
        except asyncio.CancelledError:
            self.cancel()
            raise
        except Exception as exc:
            logger.exception(f"Readiness job for {self.repo_full_name} crashed")
            self._fail(exc)
        finally:
            if self._poller is not None and not self._poller.done():
                self._poller.cancel()
            if self._ticker is not None and not self._ticker.done():
                self._ticker.cancel()

    async def _run(self) -> None:
        self.started_at = utc_now()
        if not self._transition(JobPhase.CHECKING):
            return
        self._update(message="Checking repository status...")

        status = await self._safe_check()
        if self._token.cancelled:
            return
        if status is not None:
            self.last_status = status
            if status.is_processed:
                logger.info(f"Repository {self.repo_full_name} already processed")
                self._succeed(status)
                return

        if not self._transition(JobPhase.REQUESTING):
            return
        self._update(PROGRESS_REQUESTED, "Fetching repository commit data...")
        loop = asyncio.get_running_loop()
        self._ticker = loop.create_task(self._tick_progress())
        self._poller = loop.create_task(self._poll())

        try:
            result = await self._request_ingestion(self.repo_full_name)
        except Exception as exc:
            if self._token.cancelled:
                logger.info(
                    f"Discarding ingestion failure for {self.repo_full_name}, "
                    f"job already {self.phase.value}: {exc}"
                )
            else:
                self._fail(exc)
        else:
            if not self._token.cancelled and self._transition(JobPhase.POLLING):
                self._polling_started = loop.time()
                self.commits_ingested = result.commit_count
                self._update(
                    PROGRESS_ACCEPTED,
                    "Repository processing in progress. This may take a minute or two...",
                )

        await self._poller

    async def _safe_check(self) -> Optional[RepositoryReadinessStatus]:
        try:
            return await self._check_status(self.repo_full_name)
        except Exception as exc:
            logger.warning(f"Status check for {self.repo_full_name} failed: {exc}")
            return None

    async def _poll(self) -> None:
        # Bounds apply once the backend accepted the ingestion request
        loop = asyncio.get_running_loop()
        while not self._token.cancelled:
            status = await self._safe_check()
            if self._token.cancelled:
                return
            polling = self.phase is JobPhase.POLLING
            if polling:
                self.attempts_made += 1
            if status is not None:
                self.last_status = status
                if status.is_processed:
                    self._succeed(status)
                    return

            elapsed = loop.time() - self._polling_started if polling else 0.0
            if polling and self.policy.polling_exhausted(self.attempts_made, elapsed):
                self._fail(
                    ReadinessTimeoutError(self.repo_full_name, self.attempts_made, elapsed)
                )
                return

            if await self._token.sleep(self.policy.poll_interval):
                return

    async def _tick_progress(self) -> None:
        # Cosmetic: creep towards the ceiling while the backend works
        while not await self._token.sleep(self.policy.progress_tick):
            if self.progress < self.policy.progress_ceiling:
                self.progress = min(
                    self.progress + self.policy.progress_step, self.policy.progress_ceiling
                )
                self._publish()
