"""Background execution of pipeline runs.

Submissions return as soon as the application row is committed; the run is
handed to a small pool of workers sharing one ``asyncio.Queue``. Runs for
different applications execute concurrently, each with its own session.
Outcomes live in the database; ``on_complete`` is only a notification hook.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from underwriter.services.pipeline import PipelineOrchestrator, PipelineOutcome

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[str, PipelineOutcome], None]


class PipelineQueue:
    def __init__(
        self,
        orchestrator: PipelineOrchestrator,
        *,
        workers: int = 4,
        on_complete: CompletionCallback | None = None,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.orchestrator = orchestrator
        self.worker_count = workers
        self.on_complete = on_complete
        self._queue: asyncio.Queue[str] | None = None
        self._workers: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._workers)

    def start(self) -> None:
        if self._workers:
            return
        self._queue = asyncio.Queue()
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"pipeline-worker-{index}")
            for index in range(self.worker_count)
        ]
        logger.info("Started %d pipeline workers", self.worker_count)

    async def enqueue(self, application_id: str) -> None:
        if self._queue is None:
            raise RuntimeError("Pipeline queue is not started")
        await self._queue.put(application_id)
        logger.debug("Queued application %s", application_id)

    async def join(self) -> None:
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        for task in self._workers:
            task.cancel()
        if self._workers:
            await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._queue = None
        logger.info("Stopped pipeline workers")

    async def _worker(self, index: int) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            application_id = await queue.get()
            try:
                outcome = await self.orchestrator.run(application_id)
                if self.on_complete is not None:
                    self.on_complete(application_id, outcome)
            except Exception:
                logger.exception(
                    "Worker %d could not run pipeline for application %s", index, application_id
                )
            finally:
                queue.task_done()
