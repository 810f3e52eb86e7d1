"""Tests for the structlog setup."""

from __future__ import annotations

import json
import logging
import uuid
from decimal import Decimal

import pytest
import structlog

from aid_escrow.logging_config import AUDIT_LOGGER, _stringify_values, get_logger, setup_logging


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    before, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
    root.setLevel(level)
    structlog.reset_defaults()


def test_decimal_and_uuid_values_become_strings() -> None:
    claim_id = uuid.uuid4()
    event = _stringify_values(None, "info", {"amount": Decimal("100.5"), "claim_id": claim_id})
    assert event == {"amount": "100.5", "claim_id": str(claim_id)}


def test_json_lines_carry_service_fields(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging(log_level="INFO", json_logs=True, service="backend", environment="staging")

    get_logger("aid_escrow.test").info("claim.created", amount=Decimal("2.5"))

    record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert record["event"] == "claim.created"
    assert record["amount"] == "2.5"
    assert record["service"] == "backend"
    assert record["env"] == "staging"
    assert record["level"] == "info"


def test_audit_logger_survives_quiet_level(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging(log_level="ERROR", json_logs=True)

    get_logger("aid_escrow.test").info("dropped")
    get_logger(AUDIT_LOGGER).info("audit.event", action="created")

    out = capsys.readouterr().out
    assert "dropped" not in out
    assert "audit.event" in out


def test_unknown_level_falls_back_to_info() -> None:
    setup_logging(log_level="chatty")
    assert logging.getLogger().level == logging.INFO


def test_get_logger_binds_initial_fields(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging(log_level="INFO", json_logs=True)

    get_logger("aid_escrow.test", trace_id="abc").info("request.completed")

    record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert record["trace_id"] == "abc"
