"""structlog setup shared by the API and the worker.

Console output in development, one JSON object per line everywhere else.
There is no ambient request state: a caller binds ``trace_id``/``path``/
``method`` from the RequestContext it was handed.

    logger = get_logger(__name__).bind(**ctx.log_fields())
    logger.info("claim.transitioned", claim_id=claim_id, new_status="verified")

Audit events go to the ``aid_escrow.audit`` logger. It stays at INFO whatever
the configured level, so lowering verbosity never drops an audit record.
"""

from __future__ import annotations

import logging
import sys
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from structlog.types import EventDict, Processor, WrappedLogger

AUDIT_LOGGER = "aid_escrow.audit"

_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore", "asyncio")


def _stringify_values(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Render amounts and ids as strings so JSON output never loses precision."""
    for key, value in event_dict.items():
        if isinstance(value, (Decimal, uuid.UUID)):
            event_dict[key] = str(value)
    return event_dict


def _service_fields(service: str, environment: str) -> Processor:
    def add(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        event_dict.setdefault("env", environment)
        return event_dict

    return add


def setup_logging(
    log_level: str = "DEBUG",
    json_logs: bool = False,
    service: str = "backend",
    environment: str = "development",
) -> None:
    """Route structlog through the stdlib root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ... (unknown names fall back to INFO).
        json_logs: JSON lines when True, coloured console otherwise.
        service: Stamped on every JSON record as ``service``.
        environment: Stamped on every JSON record as ``env``.
    """
    shared: list[Processor] = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _stringify_values,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: Processor
    if json_logs:
        shared.append(_service_fields(service, environment))
        renderer = structlog.processors.JSONRenderer()
        final: list[Processor] = [structlog.processors.format_exc_info, renderer]
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
        final = [renderer]

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *final],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.getLevelName(log_level.upper()) if _is_level(log_level) else logging.INFO)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger(AUDIT_LOGGER).setLevel(logging.INFO)


def _is_level(name: str) -> bool:
    return isinstance(logging.getLevelName(name.upper()), int)


def get_logger(name: str | None = None, **initial: Any) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, optionally pre-bound with ``initial`` fields."""
    logger = structlog.get_logger(name)
    return logger.bind(**initial) if initial else logger
