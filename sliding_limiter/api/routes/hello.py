from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["Hello"])


@router.get("/", response_class=PlainTextResponse)
def hello_world() -> str:
    """Sample endpoint protected by the rate limiter."""

    return "Hello, World!\n"
