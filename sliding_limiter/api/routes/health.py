from __future__ import annotations

from fastapi import APIRouter, Request

from sliding_limiter.core.store import ping_store

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check.

    Answers without touching Redis so a store outage never marks the process
    itself as dead.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(request: Request) -> dict:
    """Readiness check: the store answers PING.

    Raises:
        StoreUnavailableError: Rendered as 503 by the global handlers.
    """

    await ping_store(request.app.state.store)
    return {"status": "ok", "store": "ok"}
