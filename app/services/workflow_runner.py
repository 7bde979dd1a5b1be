from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable
from uuid import uuid4

from app.core.context import set_workflow_id
from app.core.exceptions import ConcurrencyViolation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowJob:
    kind: str
    record_id: str
    run: Callable[[], Awaitable[None]]
    job_id: str = field(default_factory=lambda: uuid4().hex[:12])

    @property
    def key(self) -> tuple[str, str]:
        return self.kind, self.record_id


class WorkflowRunner:
    """Queue of detached workflow jobs consumed by a fixed pool of workers.

    A record can only have one job queued or running at a time; submitting a
    second one for the same ``(kind, record_id)`` is a programming error.
    """

    def __init__(self, workers: int = 4, max_queue_size: int = 0) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.workers = workers
        self._queue: asyncio.Queue[WorkflowJob] = asyncio.Queue(maxsize=max_queue_size)
        self._tasks: list[asyncio.Task] = []
        self._in_flight: set[tuple[str, str]] = set()
        self._accepting = False

    @property
    def accepting(self) -> bool:
        return self._accepting

    @property
    def running(self) -> bool:
        return self._accepting and any(not task.done() for task in self._tasks)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        if self._tasks:
            return
        self._accepting = True
        self._tasks = [
            asyncio.create_task(self._worker(index), name=f"workflow-worker-{index}")
            for index in range(self.workers)
        ]
        logger.info("Workflow runner started with %d worker(s)", self.workers)

    async def submit(self, job: WorkflowJob) -> None:
        if not self._accepting:
            raise RuntimeError("Workflow runner is not accepting jobs")
        if job.key in self._in_flight:
            raise ConcurrencyViolation(f"{job.kind} already scheduled for {job.record_id}")
        self._in_flight.add(job.key)
        try:
            await self._queue.put(job)
        except BaseException:
            self._in_flight.discard(job.key)
            raise
        logger.info("Queued %s job %s for %s", job.kind, job.job_id, job.record_id)

    async def join(self) -> None:
        """Wait until every queued job has finished."""
        await self._queue.join()

    async def stop(self, *, drain: bool = True) -> None:
        self._accepting = False
        if drain and self._tasks:
            await self._queue.join()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Workflow runner stopped (drained=%s)", drain)

    async def _worker(self, index: int) -> None:
        while True:
            job = await self._queue.get()
            set_workflow_id(job.job_id)
            try:
                await job.run()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Workflow %s job %s for %s failed", job.kind, job.job_id, job.record_id)
            finally:
                self._in_flight.discard(job.key)
                self._queue.task_done()
                set_workflow_id("-")
