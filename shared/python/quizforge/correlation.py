"""Correlation-id context, FastAPI middleware and per-run binding."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Read current correlation id from context var."""

    return correlation_id_var.get()


@contextmanager
def bind_correlation_id(corr_id: str | None = None) -> Iterator[str]:
    """Reuse the active correlation id, or bind a fresh one for the block."""

    current = correlation_id_var.get()
    if current and corr_id is None:
        yield current
        return
    value = corr_id or str(uuid4())
    token = correlation_id_var.set(value)
    try:
        yield value
    finally:
        correlation_id_var.reset(token)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach or generate correlation id for each request."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        corr_id = request.headers.get("x-correlation-id", str(uuid4()))
        with bind_correlation_id(corr_id):
            response = await call_next(request)
            response.headers["x-correlation-id"] = corr_id
            return response
