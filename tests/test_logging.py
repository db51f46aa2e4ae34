"""Tests for structlog configuration."""

import io
import json
import logging

import pytest
import structlog

from tubecast.logging import setup_logging


@pytest.fixture
def log_stream():
    stream = io.StringIO()
    yield stream
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "stream", None) is stream:
            root.removeHandler(handler)
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_json_event_fields(self, log_stream) -> None:
        setup_logging("INFO", json_format=True, stream=log_stream)

        structlog.get_logger("tests").bind(component="scheduler").info("Cycle done", added=2)

        event = json.loads(log_stream.getvalue().splitlines()[-1])
        assert event["event"] == "Cycle done"
        assert event["level"] == "info"
        assert event["service"] == "tubecast"
        assert event["component"] == "scheduler"
        assert event["added"] == 2
        assert event["timestamp"].endswith("Z")

    def test_level_filters_events(self, log_stream) -> None:
        setup_logging("WARNING", json_format=True, stream=log_stream)

        log = structlog.get_logger("tests")
        log.info("hidden")
        log.warning("shown")

        assert "hidden" not in log_stream.getvalue()
        assert "shown" in log_stream.getvalue()

    def test_console_output_without_colors(self, log_stream) -> None:
        setup_logging("DEBUG", stream=log_stream)

        structlog.get_logger("tests").debug("Scanning", video_id="abc")

        output = log_stream.getvalue()
        assert "Scanning" in output
        assert "video_id=abc" in output
        assert "\x1b[" not in output

    def test_unknown_level_rejected(self, log_stream) -> None:
        with pytest.raises(ValueError, match="unknown log level"):
            setup_logging("LOUD", stream=log_stream)
