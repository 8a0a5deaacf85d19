"""Unit tests for the submit-then-poll driver."""

import asyncio

import httpx
import pytest

from services.errors import (
    AuthExpired,
    GenerationCancelled,
    GenerationFailed,
    GenerationTimeout,
    MalformedResponse,
)
from services.job_poller import JobPoller, PollPolicy, PollResult, SubmitResult


def scripted_poll(results):
    """poll_once that returns (or raises) the given results in order."""
    calls = []

    async def poll_once(job_id):
        calls.append(job_id)
        result = results[len(calls) - 1]
        if isinstance(result, Exception):
            raise result
        return result

    return poll_once, calls


def submit_returning(result: SubmitResult):
    async def submit():
        return result

    return submit


@pytest.mark.unit
@pytest.mark.asyncio
async def test_immediate_result_never_polls():
    poll_once, calls = scripted_poll([])
    poller = JobPoller("test", PollPolicy(0, 3))

    outcome = await poller.run(
        submit_returning(SubmitResult(immediate_result="https://cdn.example/v.mp4", job_id="immediate")),
        poll_once,
    )

    assert outcome.result == "https://cdn.example/v.mp4"
    assert outcome.job_id == "immediate"
    assert calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_polls_until_done():
    poll_once, calls = scripted_poll(
        [PollResult.pending(), PollResult.pending(), PollResult.done("https://cdn.example/v.mp4")]
    )
    progress = []
    poller = JobPoller("test", PollPolicy(0, 10), progress=lambda m, e: progress.append(m))

    outcome = await poller.run(submit_returning(SubmitResult(job_id="job-1")), poll_once)

    assert outcome.result == "https://cdn.example/v.mp4"
    assert outcome.job_id == "job-1"
    assert calls == ["job-1", "job-1", "job-1"]
    assert len(progress) == 3
    assert progress[-1].startswith("Completed")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_job_id_reported_before_first_poll():
    events = []

    async def poll_once(job_id):
        events.append("poll")
        return PollResult.done("https://cdn.example/v.mp4")

    poller = JobPoller("test", PollPolicy(0, 3))
    await poller.run(
        submit_returning(SubmitResult(job_id="job-7")),
        poll_once,
        on_job_id=lambda job_id: events.append(f"id:{job_id}"),
    )

    assert events == ["id:job-7", "poll"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_submission_without_result_or_id():
    poll_once, calls = scripted_poll([])
    poller = JobPoller("test", PollPolicy(0, 3))

    with pytest.raises(MalformedResponse):
        await poller.run(submit_returning(SubmitResult()), poll_once)
    assert calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failure_is_terminal():
    poll_once, calls = scripted_poll([PollResult.pending(), PollResult.failed("content policy")])
    poller = JobPoller("test", PollPolicy(0, 10))

    with pytest.raises(GenerationFailed) as exc_info:
        await poller.resume("job-1", poll_once)

    assert exc_info.value.reason == "content policy"
    assert exc_info.value.job_id == "job-1"
    assert len(calls) == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_timeout_after_exactly_max_attempts():
    poll_once, calls = scripted_poll([PollResult.pending()] * 4)
    poller = JobPoller("test", PollPolicy(0, 4))

    with pytest.raises(GenerationTimeout) as exc_info:
        await poller.resume("job-1", poll_once)

    assert len(calls) == 4
    assert exc_info.value.attempts == 4
    assert exc_info.value.job_id == "job-1"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_transient_errors_count_as_pending():
    poll_once, calls = scripted_poll(
        [
            httpx.ConnectError("connection reset"),
            MalformedResponse("bad json"),
            PollResult.done("https://cdn.example/v.mp4"),
        ]
    )
    poller = JobPoller("test", PollPolicy(0, 3))

    assert await poller.resume("job-1", poll_once) == "https://cdn.example/v.mp4"
    assert len(calls) == 3


@pytest.mark.unit
@pytest.mark.asyncio
async def test_transient_errors_consume_attempts():
    poll_once, calls = scripted_poll([httpx.ReadTimeout("slow")] * 2)
    poller = JobPoller("test", PollPolicy(0, 2))

    with pytest.raises(GenerationTimeout):
        await poller.resume("job-1", poll_once)
    assert len(calls) == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_auth_error_propagates():
    poll_once, calls = scripted_poll([AuthExpired("kie")])
    poller = JobPoller("test", PollPolicy(0, 5))

    with pytest.raises(AuthExpired):
        await poller.resume("job-1", poll_once)
    assert len(calls) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cancel_before_submit():
    cancel = asyncio.Event()
    cancel.set()
    submitted = []

    async def submit():
        submitted.append(True)
        return SubmitResult(job_id="job-1")

    poll_once, _ = scripted_poll([])
    poller = JobPoller("test", PollPolicy(0, 5), cancel_event=cancel)

    with pytest.raises(GenerationCancelled):
        await poller.run(submit, poll_once)
    assert submitted == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cancel_stops_polling():
    cancel = asyncio.Event()
    calls = []

    async def poll_once(job_id):
        calls.append(job_id)
        cancel.set()
        return PollResult.pending()

    poller = JobPoller("test", PollPolicy(0.01, 100), cancel_event=cancel)

    with pytest.raises(GenerationCancelled):
        await poller.resume("job-1", poll_once)
    assert len(calls) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_progress_callback_errors_are_ignored():
    poll_once, _ = scripted_poll([PollResult.pending(), PollResult.done("https://cdn.example/v.mp4")])

    def broken_progress(message, elapsed):
        raise RuntimeError("ui went away")

    poller = JobPoller("test", PollPolicy(0, 5), progress=broken_progress)
    assert await poller.resume("job-1", poll_once) == "https://cdn.example/v.mp4"


@pytest.mark.unit
def test_policy_ceiling():
    assert PollPolicy(5, 120).ceiling_seconds == 600
