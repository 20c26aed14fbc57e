"""
Completion Poller

Checks a video job until it completes, fails, or exhausts its attempt budget.
Healthy polls are spaced by a fixed interval. Transient status-check errors
back off by ``interval * factor ** (attempt - 1)``, capped.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional

import structlog

from neuro_core.core.errors import (
    AuthenticationError,
    AuthorizationError,
    CompanionError,
    ConfigurationError,
    JobFailedError,
    JobTimedOutError,
    ValidationError,
)
from neuro_core.storage.journal import SessionJournal
from neuro_core.video.base import (
    JobHandle,
    PipelineJob,
    TerminalResult,
    VideoBackend,
    VideoJobStatus,
)

logger = structlog.get_logger(__name__)

# Status-check errors that retrying cannot fix
PERMANENT_ERRORS = (ConfigurationError, AuthenticationError, AuthorizationError, ValidationError)

UpdateCallback = Callable[[JobHandle], Any]
Sleep = Callable[[float], Awaitable[Any]]


class CompletionPoller:
    """Polls a video backend until a job reaches a terminal state."""

    def __init__(
        self,
        backend: VideoBackend,
        journal: SessionJournal,
        interval: float = 10.0,
        max_attempts: int = 60,
        backoff_factor: float = 1.2,
        backoff_cap: float = 30.0,
        sleep: Optional[Sleep] = None,
    ):
        self.backend = backend
        self.journal = journal
        self.interval = interval
        self.max_attempts = max_attempts
        self.backoff_factor = backoff_factor
        self.backoff_cap = backoff_cap
        self._sleep = sleep or asyncio.sleep
        self.logger = logger.bind(component="completion_poller", backend=backend.name)

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retrying after a failed status check on ``attempt``."""
        return min(self.interval * self.backoff_factor ** max(attempt - 1, 0), self.backoff_cap)

    async def poll_until_done(
        self,
        handle: JobHandle,
        on_update: Optional[UpdateCallback] = None,
        max_attempts: Optional[int] = None,
    ) -> TerminalResult:
        """
        Resolve with the finished video or raise.

        Raises JobFailedError when the backend reports failure, JobTimedOutError
        when the attempt budget runs out, and permanent CompanionErrors
        (credential or configuration problems) immediately.
        """
        budget = max_attempts if max_attempts is not None else self.max_attempts
        job = PipelineJob(handle=handle)

        if handle.is_terminal:
            return await self._finish(job, handle)

        last_error: Optional[CompanionError] = None

        while job.attempts < budget:
            attempt = job.record_attempt()
            try:
                snapshot = await self.backend.get_status(job.job_id)
            except PERMANENT_ERRORS as e:
                job.status = VideoJobStatus.FAILED
                job.failure_reason = e.message
                await self.journal.fail_by_job_id(job.job_id, e.message)
                raise
            except CompanionError as e:
                last_error = e
                if attempt >= budget:
                    break
                delay = self.backoff_delay(attempt)
                self.logger.warning(
                    "video_poll_error",
                    job_id=job.job_id,
                    attempt=attempt,
                    max_attempts=budget,
                    retry_in=delay,
                    error=str(e),
                )
                await self._sleep(delay)
                continue

            last_error = None
            self.logger.debug(
                "video_poll_attempt",
                job_id=job.job_id,
                attempt=attempt,
                status=snapshot.status.value,
                vendor_status=snapshot.vendor_status,
            )
            await self._notify(on_update, snapshot)

            if snapshot.is_terminal:
                return await self._finish(job, snapshot)

            if attempt < budget:
                await self._sleep(self.interval)

        job.status = VideoJobStatus.TIMED_OUT
        minutes = budget * self.interval / 60
        message = (
            f"Video generation timed out after {budget} attempts "
            f"(about {minutes:.0f} minutes)"
        )
        job.failure_reason = message
        self.logger.warning("video_poll_timed_out", job_id=job.job_id, attempts=job.attempts)
        await self.journal.fail_by_job_id(job.job_id, message)
        raise JobTimedOutError(
            message,
            details={"job_id": job.job_id, "attempts": job.attempts},
        ) from last_error

    async def _finish(self, job: PipelineJob, snapshot: JobHandle) -> TerminalResult:
        job.apply(snapshot)

        if job.status == VideoJobStatus.FAILED:
            self.logger.warning("video_job_failed", job_id=job.job_id, reason=job.failure_reason)
            await self.journal.fail_by_job_id(job.job_id, job.failure_reason)
            raise JobFailedError(
                job.failure_reason,
                provider=self.backend.name,
                details={"job_id": job.job_id, "attempts": job.attempts},
            )

        record = await self.journal.complete_by_job_id(
            job.job_id,
            artifact_url=job.result_url,
            duration_seconds=snapshot.duration_seconds,
            size_bytes=snapshot.size_bytes,
        )
        self.logger.info(
            "video_job_completed",
            job_id=job.job_id,
            attempts=job.attempts,
            elapsed_seconds=round(job.elapsed, 1),
        )
        return TerminalResult(
            job_id=job.job_id,
            url=job.result_url,
            duration_seconds=snapshot.duration_seconds,
            size_bytes=snapshot.size_bytes,
            attempts=job.attempts,
            record_id=record.id if record else job.handle.record_id,
        )

    async def _notify(self, on_update: Optional[UpdateCallback], snapshot: JobHandle) -> None:
        if on_update is None:
            return
        try:
            result = on_update(snapshot)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self.logger.warning("video_poll_callback_failed", error=str(e))
