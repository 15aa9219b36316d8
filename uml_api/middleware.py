"""Request tracking middleware."""

import time
import uuid

from fastapi import Request
from loguru import logger


async def add_request_id(request: Request, call_next):
    """Tag each request with an id and log how long it took.

    The id comes from the ``X-Request-ID`` header when the caller sends one and
    is bound to every log record emitted while the request is handled.

    Returns:
        Response carrying ``X-Request-ID``.
    """
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id
    started = time.perf_counter()

    with logger.contextualize(request_id=request_id):
        logger.debug(f"{request.method} {request.url.path} started")
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)"
        )
        return response
