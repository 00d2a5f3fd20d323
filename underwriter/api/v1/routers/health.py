from fastapi import APIRouter, Request

from underwriter.core.health import live_payload, ready_payload, status_summary_payload
from underwriter.core.limiter import limiter

router = APIRouter(tags=["health"])


@router.get("/health/live", summary="Service liveness check")
@limiter.exempt
async def health_live(request: Request) -> dict:
    return await live_payload()


@router.get("/health/ready", summary="Service readiness check")
@limiter.exempt
async def health_ready(request: Request) -> dict:
    return await ready_payload(getattr(request.app.state, "pipeline_queue", None))


@router.get("/status/summary", tags=["status"], summary="Service status summary")
@limiter.exempt
async def status_summary(request: Request) -> dict:
    return await status_summary_payload(getattr(request.app.state, "pipeline_queue", None))
