import logging

from fastapi import FastAPI

from underwriter.core.settings import settings
from underwriter.db.init_db import init_db
from underwriter.services.pipeline import PipelineOrchestrator
from underwriter.services.pipeline_queue import PipelineQueue

logger = logging.getLogger(__name__)


def register_event_handlers(app: FastAPI) -> None:
    @app.on_event("startup")
    async def on_startup() -> None:
        logger.info("Application startup")
        await init_db()
        queue = PipelineQueue(PipelineOrchestrator(), workers=settings.pipeline_workers)
        queue.start()
        app.state.pipeline_queue = queue

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        logger.info("Application shutdown")
        queue = getattr(app.state, "pipeline_queue", None)
        if queue is not None:
            await queue.stop()
