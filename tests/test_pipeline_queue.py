import asyncio
import logging

import pytest

from underwriter.models.loan_application import LoanApplication
from underwriter.services.pipeline_queue import PipelineQueue


class _RecordingOrchestrator:
    def __init__(self, *, fail_for: set[str] | None = None, delay: float = 0.01):
        self.fail_for = fail_for or set()
        self.delay = delay
        self.active = 0
        self.max_active = 0
        self.seen: list[str] = []

    async def run(self, application_id: str) -> str:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            self.seen.append(application_id)
            if application_id in self.fail_for:
                raise RuntimeError(f"cannot process {application_id}")
            return f"done:{application_id}"
        finally:
            self.active -= 1


@pytest.mark.asyncio
async def test_workers_process_applications_concurrently():
    orchestrator = _RecordingOrchestrator()
    completed: list[tuple[str, str]] = []
    queue = PipelineQueue(
        orchestrator, workers=3, on_complete=lambda app_id, outcome: completed.append((app_id, outcome))
    )
    queue.start()
    try:
        for index in range(6):
            await queue.enqueue(f"app-{index}")
        await queue.join()
    finally:
        await queue.stop()

    assert sorted(orchestrator.seen) == [f"app-{index}" for index in range(6)]
    assert len(set(orchestrator.seen)) == 6
    assert orchestrator.max_active > 1
    assert ("app-0", "done:app-0") in completed
    assert len(completed) == 6


@pytest.mark.asyncio
async def test_task_errors_are_logged_and_workers_keep_running(caplog):
    orchestrator = _RecordingOrchestrator(fail_for={"bad"})
    completed: list[str] = []
    queue = PipelineQueue(
        orchestrator, workers=1, on_complete=lambda app_id, outcome: completed.append(outcome)
    )
    queue.start()
    try:
        with caplog.at_level(logging.ERROR, logger="underwriter.services.pipeline_queue"):
            await queue.enqueue("bad")
            await queue.enqueue("good")
            await queue.join()
        assert queue.running
    finally:
        await queue.stop()

    failures = [
        record
        for record in caplog.records
        if record.name == "underwriter.services.pipeline_queue" and record.levelno == logging.ERROR
    ]
    assert len(failures) == 1
    assert "bad" in failures[0].getMessage()
    assert isinstance(failures[0].exc_info[1], RuntimeError)
    assert completed == ["done:good"]
    assert not queue.running


@pytest.mark.asyncio
async def test_queue_keeps_no_per_application_results():
    orchestrator = _RecordingOrchestrator(fail_for={f"bad-{index}" for index in range(20)}, delay=0)
    queue = PipelineQueue(orchestrator, workers=2)
    queue.start()
    try:
        for index in range(20):
            await queue.enqueue(f"good-{index}")
            await queue.enqueue(f"bad-{index}")
        await queue.join()
    finally:
        await queue.stop()

    assert len(orchestrator.seen) == 40
    assert not hasattr(queue, "outcomes")
    assert not hasattr(queue, "errors")


@pytest.mark.asyncio
async def test_enqueue_requires_started_queue():
    queue = PipelineQueue(_RecordingOrchestrator())
    with pytest.raises(RuntimeError):
        await queue.enqueue("app-1")


def test_worker_count_must_be_positive():
    with pytest.raises(ValueError):
        PipelineQueue(_RecordingOrchestrator(), workers=0)


@pytest.mark.asyncio
async def test_queue_drives_real_pipeline(pipeline_queue, make_application, session_factory):
    application = await make_application()
    await pipeline_queue.enqueue(application.id)
    await pipeline_queue.join()

    async with session_factory() as session:
        stored = await session.get(LoanApplication, application.id)
    assert stored.status == "approved"
    assert stored.final_decision == "approved"
