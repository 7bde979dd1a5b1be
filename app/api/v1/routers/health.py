from fastapi import APIRouter, Request

from app.core.limiter import limiter
from app.core.health import live_payload, ready_payload

router = APIRouter(tags=["health"])


@router.get("/health/live", summary="Service liveness check")
@limiter.exempt
async def health_live() -> dict:
    return await live_payload()


@router.get("/health/ready", summary="Service readiness check")
@limiter.exempt
async def health_ready(request: Request) -> dict:
    return await ready_payload(getattr(request.app.state, "container", None))
