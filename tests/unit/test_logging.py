"""Unit tests for the JSON log formatter."""

from __future__ import annotations

import io
import json
import logging
import sys

from workflow_kernel.kernel.logging import JsonFormatter, configure_logging


def test_configure_logging_emits_json_with_extra() -> None:
    stream = io.StringIO()
    configure_logging("debug", stream=stream)

    logging.getLogger("workflow_kernel.test").info(
        "Action performed", extra={"command": "submit", "history_depth": 1}
    )

    record = json.loads(stream.getvalue().strip())
    assert record["level"] == "INFO"
    assert record["logger"] == "workflow_kernel.test"
    assert record["message"] == "Action performed"
    assert record["extra"] == {"command": "submit", "history_depth": 1}
    assert logging.getLogger().level == logging.DEBUG


def test_configure_logging_replaces_existing_handlers() -> None:
    first = io.StringIO()
    second = io.StringIO()
    configure_logging("INFO", stream=first)
    configure_logging("INFO", stream=second)

    logging.getLogger("workflow_kernel.test").warning("once")

    assert first.getvalue() == ""
    assert second.getvalue().count("\n") == 1


def test_formatter_renders_exceptions_and_unserialisable_extras() -> None:
    formatter = JsonFormatter()
    try:
        raise RuntimeError("listener exploded")
    except RuntimeError:
        record = logging.LogRecord(
            "workflow_kernel.test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
        )
    record.state = frozenset({"draft"})

    payload = json.loads(formatter.format(record))

    assert payload["error_type"] == "RuntimeError"
    assert "RuntimeError: listener exploded" in payload["exception"]
    assert payload["extra"]["state"] == "frozenset({'draft'})"
