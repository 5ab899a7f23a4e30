import json
import logging

from proxy_core.infrastructure.logging.logger import JsonFormatter


def _record(msg, fields=None):
    record = logging.LogRecord("proxy_core", logging.WARNING, __file__, 1, msg, None, None)
    if fields is not None:
        record.extra = fields
    return record


def test_json_formatter_flattens_extra_fields():
    line = JsonFormatter().format(_record("Provider call failed", {"slot": "primary", "code": "TIMEOUT"}))
    data = json.loads(line)
    assert data["level"] == "WARNING"
    assert data["msg"] == "Provider call failed"
    assert data["slot"] == "primary"
    assert data["code"] == "TIMEOUT"
    assert data["ts"].endswith("Z")


def test_json_formatter_redacts_content_fields():
    long_text = "tui " * 40
    data = json.loads(JsonFormatter(redact=True).format(_record("x", {"response": long_text, "slot": "primary"})))
    assert data["response"].endswith("...")
    assert len(data["response"]) < len(long_text)
    assert data["slot"] == "primary"
