"""FastAPI middleware for request correlation, error handling, and CORS.

Middleware stack (outermost first):
    1. RequestContextMiddleware — builds the RequestContext, echoes
       X-Correlation-ID and X-Request-ID, logs request start/finish
    2. ErrorHandlerMiddleware — turns anything a route raises into an
       ErrorEnvelope (see api/errors.py)
    3. CORSMiddleware — handles browser clients
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from aid_escrow.api.errors import ErrorHandlerMiddleware, register_exception_handlers
from aid_escrow.context import CORRELATION_ID_HEADER, REQUEST_ID_HEADER, RequestContext
from aid_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI, Request, Response

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# 1. Request Context Middleware
# ---------------------------------------------------------------------------
class RequestContextMiddleware(BaseHTTPMiddleware):
    """Attach a RequestContext to every request for log correlation."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        ctx = RequestContext.from_headers(request.headers, request.url.path, request.method)
        request.state.ctx = ctx
        log = logger.bind(**ctx.log_fields())

        started = time.perf_counter()
        log.debug("request.started")
        response = await call_next(request)
        latency_ms = round((time.perf_counter() - started) * 1000, 2)

        response.headers[CORRELATION_ID_HEADER] = ctx.correlation_id
        response.headers[REQUEST_ID_HEADER] = ctx.correlation_id
        log.info("request.completed", status_code=response.status_code, latency_ms=latency_ms)
        return response


# ---------------------------------------------------------------------------
# Setup function
# ---------------------------------------------------------------------------
def setup_middleware(app: FastAPI) -> None:
    """Register middleware and exception handlers on the application.

    Order matters — middleware is applied bottom-up, so the last added
    middleware runs first.
    """
    # CORS (innermost)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[CORRELATION_ID_HEADER, REQUEST_ID_HEADER],
    )

    # Error handling
    app.add_middleware(ErrorHandlerMiddleware)

    # Request context (outermost)
    app.add_middleware(RequestContextMiddleware)

    register_exception_handlers(app)
