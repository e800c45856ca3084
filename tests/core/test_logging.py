from __future__ import annotations

import logging

from assessflow.core.logging import _ContainerFormatter, setup_logging


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("nonexistent")
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_quiets_sqlalchemy_at_debug() -> None:
    setup_logging("debug")
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    assert logging.getLogger("uvicorn").level == logging.WARNING


def test_setup_logging_allows_uvicorn_at_error() -> None:
    setup_logging("error")
    assert logging.getLogger("uvicorn").level == logging.ERROR


def test_setup_logging_installs_single_handler() -> None:
    setup_logging("info")
    setup_logging("info")
    assert len(logging.getLogger().handlers) == 1


def _record(level: int, pathname: str, lineno: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord(
        name="assessflow.services.attempt_controller",
        level=level,
        pathname=pathname,
        lineno=lineno,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_formatter_excludes_location_for_info() -> None:
    output = _ContainerFormatter().format(
        _record(logging.INFO, "attempt_controller.py", 1, "attempt started")
    )
    assert "attempt started" in output
    assert "[attempt_controller.py:" not in output


def test_formatter_includes_location_for_warning() -> None:
    output = _ContainerFormatter().format(
        _record(logging.WARNING, "attempt_controller.py", 42, "start rejected")
    )
    assert "start rejected" in output
    assert "[attempt_controller.py:42]" in output


def test_formatter_includes_location_for_error() -> None:
    output = _ContainerFormatter().format(
        _record(logging.ERROR, "scheduler.py", 99, "timer callback failed")
    )
    assert "[scheduler.py:99]" in output
