"""Tests for the structured log formatter."""

import json
import logging

from campadmin.core.logging import JSONFormatter, get_logger


def make_record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("campadmin.test", logging.WARNING, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_line_escapes_message():
    line = JSONFormatter().format(make_record('quote " and\nnewline'))

    entry = json.loads(line)
    assert entry["message"] == 'quote " and\nnewline'
    assert entry["level"] == "WARNING"
    assert entry["logger"] == "campadmin.test"


def test_client_ip_included_when_present():
    entry = json.loads(JSONFormatter().format(make_record("limited", client_ip="203.0.113.10")))

    assert entry["client_ip"] == "203.0.113.10"


def test_client_ip_omitted_by_default():
    assert "client_ip" not in json.loads(JSONFormatter().format(make_record("hello")))


def test_get_logger_prefix():
    assert get_logger("main").name == "campadmin.main"
