#!/usr/bin/env python3
"""Programmatic coordinator example.

This demonstrates using the kernel components directly:

* load settings from `.env`
* edit a document body with undoable actions
* let a moderator participant react to submissions through the router
* undo everything and show the document is back where it started

The moderator's verdict is passed as an argument.
"""

from __future__ import annotations

import argparse
from typing import Sequence

from workflow_kernel.kernel.config import KernelSettings
from workflow_kernel.kernel.logging import configure_logging
from workflow_kernel.kernel.workflow import (
    STATE_CHANGED,
    STATE_MACHINE,
    ActionContext,
    Event,
    ReversibleAction,
    Signal,
    WorkflowHandle,
)
from workflow_kernel.kernel.workflow.document import (
    DocumentState,
    DocumentTrigger,
    build_document_coordinator,
    describe,
)
from workflow_kernel.kernel.workflow.state_machine import display


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Edit and review a document (programmatic example)."
    )
    parser.add_argument(
        "--verdict",
        choices=["approve", "reject"],
        default="approve",
        help="What the moderator does with submitted documents",
    )
    parser.add_argument("--text", default="Hello everyone!", help="Text appended before submitting")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = KernelSettings()
    configure_logging(settings.log_level)

    body: list[str] = []
    verdict = DocumentTrigger(args.verdict)

    def moderate(signal: Signal) -> None:
        if signal.payload["to"] is DocumentState.MODERATION:
            assert isinstance(signal.context, WorkflowHandle)
            signal.context.perform(verdict)

    coordinator = build_document_coordinator(
        bindings={STATE_MACHINE: {STATE_CHANGED: moderate}},
        settings=settings,
    )

    def render(event: Event) -> None:
        state = event.payload["to"]
        assert isinstance(state, DocumentState)
        print(f"  {describe(state)}")

    coordinator.on(STATE_CHANGED, render)

    def append(_ctx: ActionContext) -> None:
        body.append(args.text)

    def remove(_ctx: ActionContext) -> None:
        body.pop()

    coordinator.perform(ReversibleAction("append-text", append, remove))
    print(f"Body: {body!r}")

    print("Submitting:")
    coordinator.perform(DocumentTrigger.SUBMIT)

    print(f"Recorded commands: {[c.name for c in coordinator.history]}")

    print("Undoing everything:")
    while coordinator.can_undo():
        coordinator.undo_last()

    print(f"Body: {body!r}")
    print(f"State: {display(coordinator.current_state())}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
