from __future__ import annotations

from sliding_limiter.api.routes.health import router as health_router
from sliding_limiter.api.routes.hello import router as hello_router
from sliding_limiter.api.routes.metrics import router as metrics_router

__all__ = ["health_router", "hello_router", "metrics_router"]
