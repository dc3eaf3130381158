"""Tests for structured logging configuration."""

import json
import logging

import pytest

from alertroute.logging_config import (
    JsonFormatter,
    TextFormatter,
    correlation_id_ctx,
    get_logger,
    setup_logging,
)


def make_record(level=logging.INFO, msg="Alert dispatched", extra_fields=None, exc_info=None):
    record = logging.LogRecord(
        name="alertroute.services.dispatch",
        level=level,
        pathname="/app/alertroute/services/dispatch.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    if extra_fields:
        record.extra_fields = extra_fields
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJsonFormatter:
    def test_basic_fields(self):
        parsed = json.loads(JsonFormatter(service_name="dispatch-test").format(make_record()))

        assert parsed["level"] == "INFO"
        assert parsed["service"] == "dispatch-test"
        assert parsed["message"] == "Alert dispatched"
        assert parsed["logger"] == "alertroute.services.dispatch"
        assert "timestamp" in parsed
        assert "correlation_id" not in parsed

    def test_extra_fields_merged(self):
        record = make_record(extra_fields={"alert_id": "a1", "distance_km": 2.04})

        parsed = json.loads(JsonFormatter().format(record))

        assert parsed["alert_id"] == "a1"
        assert parsed["distance_km"] == 2.04

    def test_correlation_id(self):
        token = correlation_id_ctx.set("req-123")
        try:
            parsed = json.loads(JsonFormatter().format(make_record()))
        finally:
            correlation_id_ctx.reset(token)

        assert parsed["correlation_id"] == "req-123"

    def test_errors_carry_location_and_exception(self):
        try:
            raise RuntimeError("scheduler exploded")
        except RuntimeError:
            import sys

            exc_info = sys.exc_info()

        parsed = json.loads(
            JsonFormatter().format(make_record(logging.ERROR, exc_info=exc_info))
        )

        assert parsed["location"]["line"] == 42
        assert "RuntimeError" in parsed["exception"]


class TestTextFormatter:
    def test_appends_extra_fields(self):
        record = make_record(extra_fields={"alert_id": "a1", "attempt": 2})

        output = TextFormatter(service_name="dispatch-test").format(record)

        assert "dispatch-test - INFO - [-] - Alert dispatched" in output
        assert output.endswith("alert_id=a1 attempt=2")


class TestStructuredLogger:
    def test_extra_fields_reach_record(self, caplog):
        logger = get_logger("alertroute.test")

        with caplog.at_level(logging.INFO, logger="alertroute.test"):
            logger.info("Alert escalated", alert_id="a1", attempt=2)

        record = caplog.records[-1]
        assert record.getMessage() == "Alert escalated"
        assert record.extra_fields == {"alert_id": "a1", "attempt": 2}

    def test_warning_with_exc_info(self, caplog):
        logger = get_logger("alertroute.test")

        with caplog.at_level(logging.WARNING, logger="alertroute.test"):
            try:
                raise ValueError("push down")
            except ValueError:
                logger.warning("Failed to notify responder", exc_info=True, alert_id="a1")

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.exc_info is not None


class TestSetupLogging:
    def test_json(self, restore_root_logger):
        setup_logging(log_format="json", log_level="DEBUG", service_name="custom")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.handlers[0].formatter.service_name == "custom"

    def test_text(self, restore_root_logger):
        setup_logging(log_format="text")

        assert isinstance(logging.getLogger().handlers[0].formatter, TextFormatter)

    def test_quiets_scheduler_logs(self, restore_root_logger):
        setup_logging()
        assert logging.getLogger("apscheduler").level == logging.WARNING
