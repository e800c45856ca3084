"""JSON log output must stay machine-parseable and carry workflow context."""

from __future__ import annotations

import json
import logging
import sys

from assessflow.core.logging import _ContainerFormatter, _JsonFormatter


def _record(msg: str = "test message", args: tuple = ()) -> logging.LogRecord:
    return logging.LogRecord(
        name="assessflow.test",
        level=logging.INFO,
        pathname="test.py",
        lineno=42,
        msg=msg,
        args=args,
        exc_info=None,
    )


def test_json_formatter_produces_valid_json() -> None:
    output = _JsonFormatter().format(_record("Attempt %s started", ("abc",)))
    parsed = json.loads(output)
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "assessflow.test"
    assert parsed["message"] == "Attempt abc started"
    assert "timestamp" in parsed


def test_json_formatter_includes_request_fields() -> None:
    record = _record()
    record.request_id = "abc-123"  # type: ignore[attr-defined]
    record.method = "POST"  # type: ignore[attr-defined]
    record.path = "/v1/attempts/x/submit"  # type: ignore[attr-defined]
    record.duration_ms = 12.5  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["request_id"] == "abc-123"
    assert parsed["method"] == "POST"
    assert parsed["path"] == "/v1/attempts/x/submit"
    assert parsed["duration_ms"] == 12.5


def test_json_formatter_includes_workflow_ids() -> None:
    record = _record()
    record.attempt_id = "a-1"  # type: ignore[attr-defined]
    record.submission_id = "s-1"  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["attempt_id"] == "a-1"
    assert parsed["submission_id"] == "s-1"


def test_json_formatter_omits_missing_context() -> None:
    parsed = json.loads(_JsonFormatter().format(_record()))
    assert "attempt_id" not in parsed
    assert "status_code" not in parsed


def test_json_formatter_includes_exception_info() -> None:
    formatter = _JsonFormatter()
    try:
        raise ValueError("test error")
    except ValueError:
        record = logging.LogRecord(
            name="test",
            level=logging.ERROR,
            pathname="test.py",
            lineno=1,
            msg="Timer callback failed",
            args=(),
            exc_info=sys.exc_info(),
        )
        output = formatter.format(record)

    parsed = json.loads(output)
    assert "ValueError: test error" in parsed["exception"]


def test_container_formatter_is_not_json() -> None:
    record = _record("server started")
    record.name = "assessflow.main"
    output = _ContainerFormatter().format(record)
    assert "INFO" in output
    assert "assessflow.main" in output
    assert "server started" in output
    try:
        json.loads(output)
        raise AssertionError("Container format should not be valid JSON")
    except json.JSONDecodeError:
        pass
