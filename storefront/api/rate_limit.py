"""Per-client request limits (slowapi).

Every route gets ``RATE_LIMIT_DEFAULT`` through ``SlowAPIMiddleware``; checkout
is additionally capped by ``RATE_LIMIT_CHECKOUT``. Counters live in Redis when
one is configured so that all workers share them.
"""
from __future__ import annotations

import os

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

DEFAULT_RATE_LIMIT = os.getenv("RATE_LIMIT_DEFAULT", "100/minute")
CHECKOUT_RATE_LIMIT = os.getenv("RATE_LIMIT_CHECKOUT", "10/minute")


def client_address(request: Request) -> str:
    """First hop of ``X-Forwarded-For``, then ``X-Real-IP``, then the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    first_hop = next((hop.strip() for hop in forwarded.split(",") if hop.strip()), None)
    if first_hop:
        return first_hop
    real_ip = (request.headers.get("X-Real-IP") or "").strip()
    return real_ip or get_remote_address(request)


def build_limiter(
    default_limit: str | None = None,
    enabled: bool | None = None,
    storage_uri: str | None = None,
) -> Limiter:
    if enabled is None:
        enabled = os.getenv("RATE_LIMIT_DISABLED", "").strip().lower() not in {"1", "true", "yes"}
    storage_uri = (
        storage_uri or os.getenv("RATE_LIMIT_REDIS_URL") or os.getenv("REDIS_URL") or "memory://"
    )
    return Limiter(
        key_func=client_address,
        default_limits=[default_limit or DEFAULT_RATE_LIMIT],
        storage_uri=storage_uri,
        enabled=enabled,
    )


limiter = build_limiter()
