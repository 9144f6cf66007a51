"""
Unit tests for structured logging output.
"""
import io
import json
import logging

import pytest
import structlog

from brick_sponsorship.monitoring.logging import add_app_context, build_json_handler


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def bound_logger(log_stream: io.StringIO) -> structlog.stdlib.BoundLogger:
    std_logger = logging.getLogger("brick_sponsorship.tests.logging")
    std_logger.handlers = [build_json_handler(log_stream)]
    std_logger.propagate = False
    std_logger.setLevel(logging.DEBUG)
    return structlog.wrap_logger(
        std_logger,
        processors=[add_app_context, structlog.stdlib.render_to_log_kwargs],
        wrapper_class=structlog.stdlib.BoundLogger,
    )


class TestJsonLogging:
    """Test suite for the JSON log line format."""

    @pytest.mark.unit
    def test_event_fields_are_top_level(
        self, bound_logger: structlog.stdlib.BoundLogger, log_stream: io.StringIO
    ) -> None:
        bound_logger.info("webhook_purchase_recorded", session_id="cs_test_1", bricks=5)

        lines = log_stream.getvalue().splitlines()
        assert len(lines) == 1
        record = json.loads(lines[0])

        assert record["event"] == "webhook_purchase_recorded"
        assert record["session_id"] == "cs_test_1"
        assert record["bricks"] == 5
        assert record["level"] == "INFO"
        assert record["logger"] == "brick_sponsorship.tests.logging"
        assert "timestamp" in record
        assert "app_name" in record and "app_env" in record

    @pytest.mark.unit
    def test_message_is_not_nested_json(
        self, bound_logger: structlog.stdlib.BoundLogger, log_stream: io.StringIO
    ) -> None:
        bound_logger.warning("webhook_brick_count_missing", reason="brickCount is missing")

        record = json.loads(log_stream.getvalue())

        assert record["event"] == "webhook_brick_count_missing"
        assert "{" not in record["event"]
        assert record["reason"] == "brickCount is missing"
