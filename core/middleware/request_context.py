# core/middleware/request_context.py
"""
Middleware de contexto por request – Taller

✔ request_id único (header X-Request-ID, se respeta el entrante)
✔ disponible vía request.state.request_id y current_request_id()
✔ una línea de log por request (método, ruta, status, duración)
"""

from __future__ import annotations

import time
import uuid
from contextvars import ContextVar

from fastapi import Request
from starlette.responses import Response

from core.logging_config import logger


_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


def current_request_id() -> str | None:
    return _request_id.get()


async def request_context_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    token = _request_id.set(request_id)

    start = time.perf_counter()
    try:
        response = await call_next(request)
    finally:
        _request_id.reset(token)
    elapsed_ms = (time.perf_counter() - start) * 1000

    response.headers["X-Request-ID"] = request_id
    logger.info(
        "[HTTP] %s %s status=%s elapsed_ms=%.2f request_id=%s",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        request_id,
    )
    return response
