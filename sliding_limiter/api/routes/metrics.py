from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["Metrics"])


@router.get("/metrics", response_class=PlainTextResponse)
def metrics(request: Request) -> PlainTextResponse:
    """Expose rate limiter outcome counters in Prometheus text format."""

    return PlainTextResponse(
        request.app.state.recorder.format_prometheus(),
        media_type="text/plain; version=0.0.4",
    )
