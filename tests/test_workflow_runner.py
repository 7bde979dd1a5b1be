import asyncio

import pytest

from app.core.context import get_workflow_id
from app.core.exceptions import ConcurrencyViolation
from app.services.workflow_runner import WorkflowJob, WorkflowRunner


@pytest.mark.asyncio
async def test_jobs_run_detached_and_join_waits() -> None:
    runner = WorkflowRunner(workers=2)
    await runner.start()
    seen: list[str] = []

    def _job(record_id: str) -> WorkflowJob:
        async def _run() -> None:
            await asyncio.sleep(0)
            seen.append(record_id)

        return WorkflowJob(kind="test", record_id=record_id, run=_run)

    for index in range(5):
        await runner.submit(_job(f"R{index}"))
    await runner.join()

    assert sorted(seen) == [f"R{index}" for index in range(5)]
    await runner.stop()
    assert runner.running is False


@pytest.mark.asyncio
async def test_duplicate_in_flight_job_is_rejected() -> None:
    runner = WorkflowRunner(workers=1)
    await runner.start()
    release = asyncio.Event()

    async def _blocked() -> None:
        await release.wait()

    await runner.submit(WorkflowJob(kind="test", record_id="R1", run=_blocked))
    with pytest.raises(ConcurrencyViolation):
        await runner.submit(WorkflowJob(kind="test", record_id="R1", run=_blocked))

    release.set()
    await runner.join()
    # Once finished the same record may be scheduled again.
    await runner.submit(WorkflowJob(kind="test", record_id="R1", run=_blocked))
    await runner.stop()


@pytest.mark.asyncio
async def test_failing_job_does_not_stop_the_worker(caplog) -> None:
    runner = WorkflowRunner(workers=1)
    await runner.start()
    finished: list[str] = []

    async def _boom() -> None:
        raise RuntimeError("exploded")

    async def _ok() -> None:
        finished.append(get_workflow_id())

    job = WorkflowJob(kind="test", record_id="R2", run=_ok)
    await runner.submit(WorkflowJob(kind="test", record_id="R1", run=_boom))
    await runner.submit(job)
    await runner.join()

    assert finished == [job.job_id]
    assert "exploded" in caplog.text
    await runner.stop()


@pytest.mark.asyncio
async def test_submit_requires_started_runner() -> None:
    runner = WorkflowRunner(workers=1)

    async def _noop() -> None:
        return None

    with pytest.raises(RuntimeError):
        await runner.submit(WorkflowJob(kind="test", record_id="R1", run=_noop))


@pytest.mark.asyncio
async def test_stop_drains_queued_jobs() -> None:
    runner = WorkflowRunner(workers=1)
    await runner.start()
    done: list[int] = []

    def _job(index: int) -> WorkflowJob:
        async def _run() -> None:
            await asyncio.sleep(0.01)
            done.append(index)

        return WorkflowJob(kind="test", record_id=str(index), run=_run)

    for index in range(3):
        await runner.submit(_job(index))
    await runner.stop(drain=True)

    assert done == [0, 1, 2]
    assert runner.pending == 0


def test_runner_needs_at_least_one_worker() -> None:
    with pytest.raises(ValueError):
        WorkflowRunner(workers=0)
