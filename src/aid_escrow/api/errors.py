"""Error normalization — every failure leaves the API as one ErrorEnvelope.

``normalize`` classifies a failure (first match wins):
    1. DatabaseError from the data-access boundary -> per-kind status/message
    2. HTTPException or domain AidEscrowError       -> explicit or kind-mapped status
    3. RequestValidationError                       -> 422 with a FieldViolation tree
    4. Anything else                                -> 500

Domain code never chooses an HTTP status; STATUS_BY_KIND below is the only
place an ErrorKind becomes one.

Plumbing:
    - ErrorHandlerMiddleware catches whatever a route raises.
    - register_exception_handlers routes FastAPI's own HTTPException and
      RequestValidationError handling into the same normalizer.
"""

from __future__ import annotations

import contextlib
import traceback
from collections.abc import Mapping
from datetime import UTC, datetime
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from aid_escrow.context import RequestContext
from aid_escrow.domain.enums import DatabaseErrorKind, ErrorKind
from aid_escrow.domain.exceptions import AidEscrowError, DatabaseError
from aid_escrow.logging_config import get_logger
from aid_escrow.schemas.errors import ErrorEnvelope, FieldViolation

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fastapi import FastAPI, Request, Response

logger = get_logger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.CLIENT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.VALIDATION: 422,
    ErrorKind.DEPENDENCY: 502,
    ErrorKind.INTERNAL: 500,
}

_REQUEST_LOCATIONS = frozenset({"body", "query", "path", "header", "cookie"})


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------
def _classify_database_error(exc: DatabaseError) -> tuple[int, str, dict[str, Any]]:
    match exc.db_kind:
        case DatabaseErrorKind.UNIQUE_VIOLATION:
            return (
                409,
                "Unique constraint violation",
                {"field": ", ".join(exc.target), "target": list(exc.target)},
            )
        case DatabaseErrorKind.RECORD_NOT_FOUND:
            return 404, "Record not found", {"cause": exc.cause}
        case DatabaseErrorKind.FOREIGN_KEY_VIOLATION:
            return 400, "Foreign key constraint violation", {"field_name": exc.field_name}
        case DatabaseErrorKind.VALUE_TOO_LONG:
            return 400, "Value too long for column", {"column_name": exc.column_name}
        case _:
            return 500, "Database error occurred", {"code": exc.vendor_code, "meta": exc.meta}


def _classify_http_exception(exc: StarletteHTTPException) -> tuple[int, str, Any]:
    detail = exc.detail
    if isinstance(detail, Mapping):
        message = detail.get("message") or HTTPStatus(exc.status_code).phrase
        return exc.status_code, str(message), dict(detail)
    if isinstance(detail, str) and detail:
        return exc.status_code, detail, None
    return exc.status_code, HTTPStatus(exc.status_code).phrase, None


def _classify_domain_error(exc: AidEscrowError) -> tuple[int, str, dict[str, Any]]:
    details: dict[str, Any] = {"error": exc.code}
    if exc.details:
        details.update(exc.details)
    return STATUS_BY_KIND[exc.kind], exc.message, details


def _violation_at(nodes: list[FieldViolation], path: list[str]) -> FieldViolation:
    """Find or create the violation for ``path``, creating parents as needed."""
    head, rest = path[0], path[1:]
    node = next((n for n in nodes if n.property == head), None)
    if node is None:
        node = FieldViolation(property=head)
        nodes.append(node)
    return _violation_at(node.children, rest) if rest else node


def build_violations(errors: Sequence[Mapping[str, Any]]) -> list[FieldViolation]:
    """Fold pydantic error entries into a tree keyed by field path.

    ``{"loc": ("body", "address", "city"), ...}`` becomes a violation for
    ``address`` with a child violation for ``city``.
    """
    roots: list[FieldViolation] = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if len(loc) > 1 and loc[0] in _REQUEST_LOCATIONS:
            loc = loc[1:]
        node = _violation_at(roots, loc or ["request"])
        node.value = jsonable_encoder(error.get("input"))
        node.constraints[str(error.get("type", "invalid"))] = str(error.get("msg", ""))
    return roots


def normalize(
    exc: BaseException,
    ctx: RequestContext,
    *,
    include_stack: bool = False,
) -> ErrorEnvelope:
    """Turn any failure into an ErrorEnvelope and log it."""
    details: Any = None

    if isinstance(exc, DatabaseError):
        status, message, details = _classify_database_error(exc)
    elif isinstance(exc, StarletteHTTPException):
        status, message, details = _classify_http_exception(exc)
    elif isinstance(exc, AidEscrowError):
        status, message, details = _classify_domain_error(exc)
    elif isinstance(exc, RequestValidationError):
        status, message = 422, "Validation failed"
        details = {
            "errors": [v.model_dump(mode="json") for v in build_violations(exc.errors())]
        }
    else:
        status = 500
        message = str(exc) or "Internal server error"
        details = {"error_type": type(exc).__name__}
        if include_stack:
            details["stack"] = "".join(traceback.format_exception(exc))

    envelope = ErrorEnvelope(
        code=status,
        message=message,
        details=details,
        trace_id=ctx.trace_id,
        timestamp=datetime.now(UTC).isoformat(),
        path=ctx.path,
    )
    _log_failure(exc, envelope, ctx)
    return envelope


def _log_failure(exc: BaseException, envelope: ErrorEnvelope, ctx: RequestContext) -> None:
    # Logging must never turn into a second failure.
    with contextlib.suppress(Exception):
        fields = {
            **ctx.log_fields(),
            "error_type": type(exc).__name__,
            "status_code": envelope.code,
            "error_message": envelope.message,
        }
        if envelope.code >= 500:
            logger.error("request.failed", exc_info=exc, **fields)
        else:
            logger.warning("request.rejected", **fields)


# ---------------------------------------------------------------------------
# Response plumbing
# ---------------------------------------------------------------------------
def _context_for(request: Request) -> RequestContext:
    ctx = getattr(request.state, "ctx", None)
    if ctx is None:
        ctx = RequestContext.from_headers(request.headers, request.url.path, request.method)
    return ctx


def _include_stack(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return settings is not None and not settings.is_production


def error_response(request: Request, exc: BaseException) -> JSONResponse:
    envelope = normalize(exc, _context_for(request), include_stack=_include_stack(request))
    headers = getattr(exc, "headers", None) if isinstance(exc, StarletteHTTPException) else None
    return JSONResponse(status_code=envelope.code, content=envelope.to_body(), headers=headers)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catch anything a route raises and return an ErrorEnvelope."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return error_response(request, exc)


async def _handle_exception(request: Request, exc: Exception) -> JSONResponse:
    return error_response(request, exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Send FastAPI's built-in error paths through ``normalize``."""
    app.add_exception_handler(StarletteHTTPException, _handle_exception)
    app.add_exception_handler(RequestValidationError, _handle_exception)
