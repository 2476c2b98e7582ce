"""Unit tests for structured logging helpers."""
from __future__ import annotations

import json
import logging

import pytest

from delivery_service.infra.logging import (
    ContextInjectingFilter,
    JSONFormatter,
    clear_log_context,
    get_lazy_logger,
    get_log_context,
    log_context,
)


def _record(msg: str = "Outbox batch processed", **extra) -> logging.LogRecord:
    record = logging.LogRecord("delivery.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def _clean_context():
    clear_log_context()
    yield
    clear_log_context()


class TestJSONFormatter:
    """Tests for the JSON Lines formatter."""

    def test_includes_static_and_extra_fields(self):
        """Extra fields and static service name end up in the JSON body."""
        formatter = JSONFormatter(static={"service": "notification-delivery"})

        line = formatter.format(_record(adapter="push", delivered=3))
        data = json.loads(line)

        assert data["message"] == "Outbox batch processed"
        assert data["level"] == "INFO"
        assert data["logger"] == "delivery.test"
        assert data["service"] == "notification-delivery"
        assert data["adapter"] == "push"
        assert data["delivered"] == 3
        assert data["timestamp"].endswith("Z")

    def test_exception_stays_on_one_line(self):
        """Tracebacks are escaped so one record is one line."""
        formatter = JSONFormatter()
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            import sys

            record = _record()
            record.exc_info = sys.exc_info()

        line = formatter.format(record)

        assert "\n" not in line
        assert "RuntimeError: boom" in json.loads(line)["exception"]


class TestLogContext:
    """Tests for contextvar-based context propagation."""

    def test_block_scopes_fields(self):
        """Fields apply inside the block and are restored on exit."""
        with log_context(adapter="push"):
            with log_context(batch="b-1"):
                assert get_log_context() == {"adapter": "push", "batch": "b-1"}
            assert get_log_context() == {"adapter": "push"}

        assert get_log_context() == {}

    def test_restored_after_exception(self):
        with pytest.raises(RuntimeError), log_context(adapter="realtime"):
            raise RuntimeError("batch failed")

        assert get_log_context() == {}

    def test_filter_injects_without_overwriting(self):
        """The filter copies context fields but keeps explicit extras."""
        record = _record(outbox_id="explicit")
        with log_context(adapter="push", outbox_id="from-context"):
            assert ContextInjectingFilter().filter(record) is True

        assert record.adapter == "push"
        assert record.outbox_id == "explicit"


class TestLazyLogger:
    """Tests for lazy debug evaluation."""

    def test_callable_not_evaluated_when_disabled(self, caplog):
        """Messages built by callables are skipped below the enabled level."""
        calls = []
        logger = get_lazy_logger("delivery.lazy")

        with caplog.at_level(logging.INFO, logger="delivery.lazy"):
            logger.debug(lambda: calls.append("rendered") or "expensive")

        assert calls == []

    def test_callable_evaluated_when_enabled(self, caplog):
        logger = get_lazy_logger("delivery.lazy")

        with caplog.at_level(logging.DEBUG, logger="delivery.lazy"):
            logger.debug(lambda: "fetched 3 rows")

        assert caplog.records[-1].getMessage() == "fetched 3 rows"
