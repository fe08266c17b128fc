"""Simple in-memory rate limiter dependency."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone

from fastapi import HTTPException, Request, status

from quizforge.config import get_settings

_request_counters: dict[str, int] = defaultdict(int)


def rate_limit_dependency(request: Request) -> None:
    """Apply per-IP/minute limits to generation endpoints.

    Counters live in process memory, so limits are per worker.
    """

    settings = get_settings()
    now = datetime.now(timezone.utc)
    bucket = now.strftime("%Y%m%d%H%M")
    client_ip = request.client.host if request.client else "unknown"
    key = f"{client_ip}:{bucket}"

    _request_counters[key] += 1
    if _request_counters[key] > settings.rate_limit_per_minute:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Muitas solicitações. Aguarde alguns minutos antes de tentar novamente.",
        )

    for stale_key in [k for k in _request_counters if not k.endswith(bucket)]:
        _request_counters.pop(stale_key, None)


def reset_rate_limits() -> None:
    _request_counters.clear()
