"""Test configuration and fixtures."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from workflow_kernel.kernel.config import KernelSettings
from workflow_kernel.kernel.workflow.events import EventBus
from workflow_kernel.kernel.workflow.state_machine import TransitionRule, TransitionTable


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment variables from leaking into settings."""
    for name in (
        "WORKFLOW_KERNEL_LOG_LEVEL",
        "WORKFLOW_KERNEL_MAX_HISTORY_DEPTH",
        "WORKFLOW_KERNEL_MAX_ROUTING_DEPTH",
        "WORKFLOW_KERNEL_LISTENER_ERROR_LOG_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    """configure_logging() replaces root handlers; put them back after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def settings() -> KernelSettings:
    """Provide settings that ignore any local .env file."""
    return KernelSettings(_env_file=None)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def light_table() -> TransitionTable:
    """Provide a three-state cycle: red -> green -> amber -> red."""
    return TransitionTable(
        [
            TransitionRule("red", "go", "green"),
            TransitionRule("green", "slow", "amber"),
            TransitionRule("amber", "stop", "red"),
        ]
    )
