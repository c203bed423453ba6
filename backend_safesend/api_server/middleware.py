"""
HTTP middleware — CORS, cache headers, request logging.

Responsibilities:
- Permit any origin for GET and preflight OPTIONS, without credentials.
- Mark every response non-cacheable (assessments reflect live chain state).
- Log method, path, status and timing per request.
"""

from __future__ import annotations

import time
from typing import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from backend_safesend.safesend_logging import clear_request, get_logger

logger = get_logger(__name__)

CACHE_CONTROL = "no-store"
ALLOWED_METHODS = ["GET", "OPTIONS"]


async def no_store_and_log(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    clear_request()
    start = time.perf_counter()
    response = await call_next(request)
    response.headers["Cache-Control"] = CACHE_CONTROL
    logger.info(
        "http_request",
        method=request.method,
        path=request.url.path,
        status=response.status_code,
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
    )
    return response


def install_middleware(app: FastAPI) -> None:
    """Add CORS, then the cache/logging middleware so it also wraps preflight responses."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=ALLOWED_METHODS,
        allow_headers=["*"],
        allow_credentials=False,
        max_age=600,
    )
    app.middleware("http")(no_store_and_log)
