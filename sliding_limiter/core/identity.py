"""Client identity extraction for rate limit keys."""

from __future__ import annotations

from starlette.datastructures import Headers
from starlette.types import Scope

UNKNOWN_CLIENT = "unknown"


def client_identity(scope: Scope, *, trust_forwarded_for: bool = False) -> str:
    """Return the identity a request is rate limited under.

    When ``trust_forwarded_for`` is set (the service runs behind a proxy that
    appends the header), the first ``X-Forwarded-For`` entry wins. Otherwise
    the socket peer address is used.
    """
    if trust_forwarded_for:
        forwarded = Headers(scope=scope).get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first

    client = scope.get("client")
    if client and client[0]:
        return client[0]
    return UNKNOWN_CLIENT


def build_rate_limit_key(identity: str, prefix: str = "limit:") -> str:
    """Namespace an identity into a rate limit key, e.g. ``limit:10.0.0.1``."""
    return f"{prefix}{identity}"
