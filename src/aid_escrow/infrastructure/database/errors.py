"""Translation of driver exceptions into the DatabaseError tagged variant.

This is the only place that looks at vendor error codes. Everything above
the repository layer sees a DatabaseError with a DatabaseErrorKind and never
inspects driver attributes.

PostgreSQL SQLSTATE codes handled:
    23505  unique_violation       -> UNIQUE_VIOLATION
    23503  foreign_key_violation  -> FOREIGN_KEY_VIOLATION
    22001  string_data_right_truncation -> VALUE_TOO_LONG
SQLite reports the same conditions only through its message text.
"""

from __future__ import annotations

import re
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import DBAPIError, NoResultFound, SQLAlchemyError

from aid_escrow.domain.enums import DatabaseErrorKind
from aid_escrow.domain.exceptions import DatabaseError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

_PG_UNIQUE = "23505"
_PG_FOREIGN_KEY = "23503"
_PG_VALUE_TOO_LONG = "22001"

_PG_KEY_DETAIL = re.compile(r"Key \((?P<cols>[^)]+)\)=")
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: (?P<cols>.+)$", re.MULTILINE)


def _sqlstate(orig: Any) -> str | None:
    for attr in ("sqlstate", "pgcode"):
        value = getattr(orig, attr, None)
        if value:
            return str(value)
    cause = getattr(orig, "__cause__", None)
    if cause is not None and cause is not orig:
        value = getattr(cause, "sqlstate", None)
        if value:
            return str(value)
    return None


def _driver_attr(orig: Any, name: str) -> Any:
    """Read an attribute from the driver error or the exception it wraps."""
    for candidate in (orig, getattr(orig, "__cause__", None)):
        value = getattr(candidate, name, None) if candidate is not None else None
        if value:
            return value
    return None


def _unique_target(orig: Any, message: str) -> list[str]:
    detail = _driver_attr(orig, "detail") or message
    match = _PG_KEY_DETAIL.search(str(detail))
    if match:
        return [c.strip() for c in match.group("cols").split(",")]
    match = _SQLITE_UNIQUE.search(message)
    if match:
        # "table.col1, table.col2"
        return [c.strip().split(".")[-1] for c in match.group("cols").split(",")]
    constraint = _driver_attr(orig, "constraint_name")
    return [str(constraint)] if constraint else []


def translate_db_error(exc: SQLAlchemyError) -> DatabaseError:
    """Map a SQLAlchemy exception onto a DatabaseError.

    Args:
        exc: The exception raised by SQLAlchemy or the underlying driver.

    Returns:
        A DatabaseError whose ``db_kind`` identifies the failure.
    """
    if isinstance(exc, NoResultFound):
        return DatabaseError(
            DatabaseErrorKind.RECORD_NOT_FOUND,
            "Record not found",
            cause=str(exc),
        )

    orig = exc.orig if isinstance(exc, DBAPIError) else None
    message = str(orig) if orig is not None else str(exc)
    state = _sqlstate(orig) if orig is not None else None

    if state == _PG_UNIQUE or "UNIQUE constraint failed" in message:
        return DatabaseError(
            DatabaseErrorKind.UNIQUE_VIOLATION,
            "Unique constraint violation",
            target=_unique_target(orig, message),
            vendor_code=state,
        )
    if state == _PG_FOREIGN_KEY or "FOREIGN KEY constraint failed" in message:
        return DatabaseError(
            DatabaseErrorKind.FOREIGN_KEY_VIOLATION,
            "Foreign key constraint violation",
            field_name=_driver_attr(orig, "constraint_name"),
            vendor_code=state,
        )
    if state == _PG_VALUE_TOO_LONG:
        return DatabaseError(
            DatabaseErrorKind.VALUE_TOO_LONG,
            "Value too long for column",
            column_name=_driver_attr(orig, "column_name"),
            vendor_code=state,
        )

    return DatabaseError(
        DatabaseErrorKind.OTHER,
        "Database error occurred",
        vendor_code=state or type(orig or exc).__name__,
        meta={"message": message},
    )


@asynccontextmanager
async def translate_db_errors() -> AsyncIterator[None]:
    """Re-raise any SQLAlchemy error inside the block as a DatabaseError."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise translate_db_error(exc) from exc
