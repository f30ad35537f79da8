"""Tests for the log formatters and the TRACE level."""

from __future__ import annotations

import json
import logging
import sys

import colorlog
import pytest

from edufam.core import LoggingProvider
from edufam.core.provider import TRACE, TraceLogLevelLogger
from edufam.lib.logging import ExtraFormatter, JSONFormatter
from edufam.model import GradeID


def make_record(msg: str = "grades uploaded", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("edufam.grading.service", logging.INFO, __file__, 1, msg, None, None)
    record.__dict__.update(extra)
    return record


class TestExtraFormatter(object):
    """Tests for ExtraFormatter."""

    def test_appends_extra_as_json(self) -> None:
        formatter = ExtraFormatter(base=logging.Formatter, format="%(levelname)s %(message)s", indent=False)
        grade_id = GradeID()

        line = formatter.format(make_record(grade_id=grade_id, entered=3))

        message, _, tail = line.partition(" {")
        assert message == "INFO grades uploaded"
        assert json.loads("{" + tail) == {"entered": 3, "grade_id": str(grade_id)}

    def test_no_extra_leaves_message_alone(self) -> None:
        formatter = ExtraFormatter(base=logging.Formatter, format="%(message)s")

        assert formatter.format(make_record()) == "grades uploaded"

    def test_colorlog_base(self) -> None:
        formatter = ExtraFormatter(
            base=colorlog.ColoredFormatter,
            format="%(log_color)s%(levelname)s%(reset)s %(message)s",
            no_color=True,
            indent=False,
        )

        line = formatter.format(make_record(school="schl"))

        assert line == 'INFO grades uploaded {"school": "schl"}'

    def test_continuation_lines_are_indented(self) -> None:
        formatter = ExtraFormatter(base=logging.Formatter, format="%(levelname)s %(message)s")

        line = formatter.format(make_record("rows rejected\nrow 2: score is required"))

        assert line.splitlines() == ["INFO rows rejected", "     row 2: score is required"]


class TestJSONFormatter(object):
    """Tests for JSONFormatter."""

    def test_one_object_per_record(self) -> None:
        doc = json.loads(JSONFormatter().format(make_record(entered=2, skipped=1)))

        assert doc["level"] == "INFO"
        assert doc["logger"] == "edufam.grading.service"
        assert doc["message"] == "grades uploaded"
        assert doc["entered"] == 2
        assert doc["skipped"] == 1
        assert "exception" not in doc

    def test_exception(self) -> None:
        try:
            raise RuntimeError("audit store unavailable")
        except RuntimeError:
            record = logging.LogRecord("edufam", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        doc = json.loads(JSONFormatter().format(record))

        assert "audit store unavailable" in doc["exception"]


class TestTraceLevel(object):
    """Tests for the TRACE level installed by LoggingProvider."""

    def test_trace(self, caplog: pytest.LogCaptureFixture) -> None:
        LoggingProvider.install_trace_level()
        logger = LoggingProvider.get_logger("edufam.test.trace")
        assert isinstance(logger, TraceLogLevelLogger)

        with caplog.at_level(TRACE, logger="edufam.test.trace"):
            logger.trace("row accepted", extra={"index": 4})

        assert [(r.levelname, r.getMessage()) for r in caplog.records] == [("TRACE", "row accepted")]

    def test_get_logger_defaults_to_caller(self) -> None:
        assert LoggingProvider.get_logger().name == __name__
