"""Tests for logging setup."""

import json
import logging
import sys

import pytest
from rich.logging import RichHandler

from schedmigrate.utils import StructuredFormatter, setup_logging


@pytest.fixture(autouse=True)
def reset_logger():
    logger = logging.getLogger("schedmigrate")
    handlers, level = logger.handlers[:], logger.level
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers = handlers
    logger.setLevel(level)


def make_record(**extra):
    record = logging.LogRecord(
        name="schedmigrate.migration",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Migration finished: %d legacy task(s)",
        args=(3,),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_basic_fields(self):
        data = json.loads(StructuredFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "schedmigrate.migration"
        assert data["message"] == "Migration finished: 3 legacy task(s)"
        assert "timestamp" in data
        assert "event" not in data

    def test_event_and_metadata(self):
        record = make_record(event="migration.completed", metadata={"written": 2})
        data = json.loads(StructuredFormatter().format(record))

        assert data["event"] == "migration.completed"
        assert data["metadata"] == {"written": 2}

    def test_uids(self):
        record = make_record(event="task.written", legacy_uid=3, task_uid=8)
        data = json.loads(StructuredFormatter().format(record))

        assert data["legacy_uid"] == 3
        assert data["task_uid"] == 8

    def test_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()

        data = json.loads(StructuredFormatter().format(record))
        assert "ValueError: boom" in data["exception"]


class TestSetupLogging:
    def test_pretty(self):
        logger = setup_logging("DEBUG", "pretty")

        assert logger.name == "schedmigrate"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)

    def test_structured(self):
        logger = setup_logging("warning", "structured")

        assert logger.level == logging.WARNING
        assert isinstance(logger.handlers[0].formatter, StructuredFormatter)

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        logger = setup_logging("INFO", "structured", log_file=log_file, console_output=False)

        logging.getLogger("schedmigrate.writer").info("Wrote task", extra={"event": "task.written"})
        for handler in logger.handlers:
            handler.flush()

        data = json.loads(log_file.read_text().strip())
        assert data["message"] == "Wrote task"
        assert data["event"] == "task.written"

    def test_replaces_handlers(self):
        setup_logging("INFO", "pretty")
        logger = setup_logging("INFO", "pretty")
        assert len(logger.handlers) == 1
