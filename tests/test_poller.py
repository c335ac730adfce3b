from __future__ import annotations

import asyncio

import pytest

from core.domain.errors import AsyncTaskTimeout, OperationCancelled
from core.domain.models import AsyncJob, JobStatus, TaskSnapshot
from core.services.poller import JobPoller


def _scripted(*statuses: JobStatus):
    calls: list[int] = []

    async def poll_fn() -> TaskSnapshot:
        calls.append(1)
        status = statuses[min(len(calls), len(statuses)) - 1]
        url = "https://img.example.com/x.png" if status is JobStatus.SUCCEEDED else None
        return TaskSnapshot(status=status, image_url=url)

    return poll_fn, calls


async def test_returns_first_terminal_snapshot_and_tracks_job_status():
    poll_fn, calls = _scripted(JobStatus.PENDING, JobStatus.RUNNING, JobStatus.SUCCEEDED)
    job = AsyncJob(job_id="t-1", poll_url="https://x/tasks/t-1")

    snapshot = await JobPoller(interval=0, max_attempts=10).poll(
        poll_fn, lambda s: s.status.is_terminal, job=job
    )

    assert len(calls) == 3
    assert snapshot.image_url == "https://img.example.com/x.png"
    assert job.status is JobStatus.SUCCEEDED


async def test_times_out_after_exactly_max_attempts():
    poll_fn, calls = _scripted(JobStatus.RUNNING)
    job = AsyncJob(job_id="t-2", poll_url="https://x/tasks/t-2")

    with pytest.raises(AsyncTaskTimeout) as excinfo:
        await JobPoller(interval=0, max_attempts=4).poll(poll_fn, lambda s: s.status.is_terminal, job=job)

    assert len(calls) == 4
    assert excinfo.value.attempts == 4
    assert excinfo.value.job_id == "t-2"
    assert job.status is JobStatus.TIMED_OUT


async def test_call_arguments_override_instance_defaults():
    poll_fn, calls = _scripted(JobStatus.RUNNING)

    with pytest.raises(AsyncTaskTimeout):
        await JobPoller(interval=5, max_attempts=60).poll(
            poll_fn, lambda s: s.status.is_terminal, interval=0, max_attempts=2
        )

    assert len(calls) == 2


async def test_cancel_before_first_poll_makes_no_calls():
    poll_fn, calls = _scripted(JobStatus.RUNNING)
    cancel = asyncio.Event()
    cancel.set()

    with pytest.raises(OperationCancelled):
        await JobPoller(interval=0, max_attempts=5).poll(
            poll_fn, lambda s: s.status.is_terminal, cancel_event=cancel
        )

    assert calls == []


async def test_cancel_between_polls_stops_further_calls():
    cancel = asyncio.Event()
    calls: list[int] = []

    async def poll_fn() -> TaskSnapshot:
        calls.append(1)
        cancel.set()
        return TaskSnapshot(status=JobStatus.RUNNING)

    with pytest.raises(OperationCancelled) as excinfo:
        await JobPoller(interval=0.01, max_attempts=5).poll(
            poll_fn, lambda s: s.status.is_terminal, cancel_event=cancel
        )

    assert len(calls) == 1
    assert excinfo.value.error_kind == "cancelled"


async def test_unset_cancel_event_waits_the_interval():
    poll_fn, calls = _scripted(JobStatus.SUCCEEDED)

    snapshot = await JobPoller(interval=0.01, max_attempts=3).poll(
        poll_fn, lambda s: s.status.is_terminal, cancel_event=asyncio.Event()
    )

    assert snapshot.status is JobStatus.SUCCEEDED
    assert len(calls) == 1
