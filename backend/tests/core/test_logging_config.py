"""Unit tests for surveyhub.core.logging_config."""

from __future__ import annotations

import json
import logging
import uuid

import pytest

from surveyhub.core.logging_config import JSONFormatter, configure_logging


def _record(msg="hello", **extra):
    record = logging.LogRecord("surveyhub.test", logging.INFO, __file__, 1, msg, None, None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


class TestJSONFormatter:
    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "surveyhub.test"
        assert entry["message"] == "hello"
        assert "timestamp" in entry

    def test_context_ids_copied(self):
        survey_id = uuid.uuid4()
        entry = json.loads(JSONFormatter().format(_record(survey_id=survey_id)))
        assert entry["survey_id"] == str(survey_id)
        assert "user_id" not in entry

    def test_exception_included(self):
        try:
            raise ValueError("bad")
        except ValueError:
            import sys

            record = logging.LogRecord(
                "x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )
        entry = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad" in entry["exception"]


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def _restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_development_uses_plain_formatter(self):
        configure_logging("development", "DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_production_uses_json(self):
        configure_logging("production", "warning")
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_repeated_calls_keep_one_handler(self):
        configure_logging("production")
        configure_logging("production")
        assert len(logging.getLogger().handlers) == 1
