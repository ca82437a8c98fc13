"""Tests for the JSON log setup."""

from __future__ import annotations

import io
import json
import logging

import pytest

from reviewflow.core.logging import HANDLER_NAME, configure_logging


@pytest.fixture
def stream():
    root = logging.getLogger()
    level = root.level
    buf = io.StringIO()
    configure_logging("INFO", stream=buf)
    yield buf
    for handler in list(root.handlers):
        if handler.get_name() == HANDLER_NAME:
            root.removeHandler(handler)
    root.setLevel(level)


def _last_line(buf: io.StringIO) -> dict:
    return json.loads(buf.getvalue().splitlines()[-1])


class TestConfigureLogging:
    def test_extra_context_is_rendered(self, stream):
        logging.getLogger("reviewflow.engine.reviews").info(
            "review_started", extra={"request_id": "R-123", "workflow_id": "wf1"},
        )
        line = _last_line(stream)
        assert line["event"] == "review_started"
        assert line["request_id"] == "R-123"
        assert line["workflow_id"] == "wf1"
        assert line["level"] == "info"
        assert line["logger"] == "reviewflow.engine.reviews"
        assert "timestamp" in line

    def test_exception_is_rendered(self, stream):
        try:
            raise RuntimeError("webhook down")
        except RuntimeError:
            logging.getLogger("reviewflow.engine.escalation").warning(
                "escalation_failed", extra={"assignment_id": "a1"}, exc_info=True,
            )
        line = _last_line(stream)
        assert line["assignment_id"] == "a1"
        assert "RuntimeError: webhook down" in line["exception"]

    def test_below_level_is_dropped(self, stream):
        logging.getLogger("reviewflow").debug("noise")
        assert stream.getvalue() == ""

    def test_repeat_calls_keep_one_handler(self, stream):
        configure_logging("DEBUG", stream=stream)
        owned = [h for h in logging.getLogger().handlers if h.get_name() == HANDLER_NAME]
        assert len(owned) == 1
        assert logging.getLogger().level == logging.DEBUG
