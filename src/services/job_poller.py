"""Submit-then-poll driver for asynchronous provider jobs.

Every provider with a job queue (KIE, fal.ai, Google Veo) goes through
``JobPoller``: submit once, then poll at a fixed interval until the job is
done, has failed, or the attempt budget runs out.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import httpx

from models.script import GenerationJob
from services.errors import (
    GenerationCancelled,
    GenerationFailed,
    GenerationTimeout,
    MalformedResponse,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollPolicy:
    """Fixed-interval polling budget."""

    interval_seconds: float
    max_attempts: int

    @property
    def ceiling_seconds(self) -> float:
        return self.interval_seconds * self.max_attempts


# Defaults; utils.config can override each of these
VIDEO_POLL_POLICY = PollPolicy(interval_seconds=5, max_attempts=120)
STITCH_POLL_POLICY = PollPolicy(interval_seconds=2, max_attempts=300)
MIX_POLL_POLICY = PollPolicy(interval_seconds=2, max_attempts=300)
GOOGLE_VEO_POLL_POLICY = PollPolicy(interval_seconds=10, max_attempts=60)


class PollStatus(str, Enum):
    """Outcome of a single status check."""

    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PollResult:
    """Result of one ``poll_once`` call."""

    status: PollStatus
    result: Any = None
    reason: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def pending(cls, message: Optional[str] = None) -> "PollResult":
        return cls(status=PollStatus.PENDING, message=message)

    @classmethod
    def done(cls, result: Any) -> "PollResult":
        return cls(status=PollStatus.DONE, result=result)

    @classmethod
    def failed(cls, reason: str) -> "PollResult":
        return cls(status=PollStatus.FAILED, reason=reason or "Unknown error")


@dataclass
class SubmitResult:
    """What a submission produced: a finished result, a job id, or both."""

    immediate_result: Any = None
    job_id: Optional[str] = None


@dataclass
class PollOutcome:
    """Final result of a job together with the id it ran under."""

    result: Any
    job_id: Optional[str]


SubmitFn = Callable[[], Awaitable[SubmitResult]]
PollFn = Callable[[str], Awaitable[PollResult]]
ProgressFn = Callable[[str, float], None]

# Errors that mean "could not learn anything this tick", not "the job failed"
TRANSIENT_ERRORS = (httpx.HTTPError, MalformedResponse, json.JSONDecodeError)


class JobPoller:
    """Drives a provider job from submission to a terminal state.

    Example usage:
        poller = JobPoller("kie", VIDEO_POLL_POLICY, progress=report)
        outcome = await poller.run(submit, poll_once, on_job_id=persist_task_id)
        video_url = outcome.result
    """

    def __init__(
        self,
        provider: str,
        policy: PollPolicy,
        progress: Optional[ProgressFn] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        """Initialize job poller.

        Args:
            provider: Provider name used in errors and logs
            policy: Interval and attempt budget
            progress: Optional callback receiving (status message, elapsed seconds)
            cancel_event: Optional event; when set, polling stops within one interval
        """
        self.provider = provider
        self.policy = policy
        self.progress = progress
        self.cancel_event = cancel_event

    async def run(
        self,
        submit: SubmitFn,
        poll_once: PollFn,
        on_job_id: Optional[Callable[[str], None]] = None,
    ) -> PollOutcome:
        """Submit a job and wait for its result.

        Args:
            submit: Coroutine function performing the submission
            poll_once: Coroutine function checking the job once
            on_job_id: Called with the job id as soon as it is known

        Returns:
            PollOutcome with the provider result and job id

        Raises:
            GenerationFailed: If the provider reports a terminal failure
            GenerationTimeout: If the attempt budget is exhausted
            GenerationCancelled: If the cancel event is set
        """
        self._check_cancelled(None)
        submitted = await submit()

        if submitted.immediate_result is not None:
            logger.info(f"{self.provider} returned an immediate result")
            return PollOutcome(result=submitted.immediate_result, job_id=submitted.job_id)

        if not submitted.job_id:
            raise MalformedResponse(
                f"{self.provider} submission returned neither a result nor a job id",
                provider=self.provider,
            )

        if on_job_id is not None:
            on_job_id(submitted.job_id)

        result = await self.resume(submitted.job_id, poll_once)
        return PollOutcome(result=result, job_id=submitted.job_id)

    async def resume(self, job_id: str, poll_once: PollFn) -> Any:
        """Poll an already-submitted job until it reaches a terminal state."""
        job = GenerationJob(
            provider=self.provider,
            job_id=job_id,
            poll_interval=self.policy.interval_seconds,
            max_attempts=self.policy.max_attempts,
        )
        logger.info(
            f"Polling {self.provider} job {job_id} "
            f"(every {job.poll_interval}s, max {job.max_attempts} attempts)"
        )

        while job.attempts < job.max_attempts:
            await self._wait(job)
            job.attempts += 1

            try:
                polled = await poll_once(job_id)
            except TRANSIENT_ERRORS as e:
                logger.warning(
                    f"{self.provider} poll {job.attempts}/{job.max_attempts} for {job_id} failed: {e}"
                )
                job.last_status = "poll_error"
                self._report(job, "Waiting for provider...")
                continue

            if polled.status == PollStatus.DONE:
                job.last_status = PollStatus.DONE.value
                logger.info(
                    f"{self.provider} job {job_id} completed after {job.attempts} polls "
                    f"({job.elapsed_seconds:.0f}s)"
                )
                self._report(job, "Completed")
                return polled.result

            if polled.status == PollStatus.FAILED:
                job.last_status = PollStatus.FAILED.value
                logger.error(f"{self.provider} job {job_id} failed: {polled.reason}")
                raise GenerationFailed(polled.reason, provider=self.provider, job_id=job_id)

            job.last_status = PollStatus.PENDING.value
            self._report(job, polled.message or "Processing...")

        raise GenerationTimeout(self.provider, job_id, job.attempts)

    async def _wait(self, job: GenerationJob) -> None:
        self._check_cancelled(job.job_id)
        if self.cancel_event is None:
            await asyncio.sleep(job.poll_interval)
            return
        try:
            await asyncio.wait_for(self.cancel_event.wait(), timeout=job.poll_interval)
        except asyncio.TimeoutError:
            return
        self._check_cancelled(job.job_id)

    def _check_cancelled(self, job_id: Optional[str]) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            logger.info(f"Stopped polling {self.provider} job {job_id}")
            raise GenerationCancelled(
                f"Polling of {self.provider} job {job_id or '(not submitted)'} was cancelled",
                provider=self.provider,
            )

    def _report(self, job: GenerationJob, message: str) -> None:
        if self.progress is None:
            return
        try:
            self.progress(f"{message} ({job.elapsed_seconds:.0f}s)", job.elapsed_seconds)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
