"""CLI entrypoint for the workflow kernel.

Loads a JSON transition table, fires triggers through a coordinator and
prints the resulting states. Logs go to stderr as JSON; results go to stdout.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from workflow_kernel import __version__
from workflow_kernel.kernel.config import KernelSettings
from workflow_kernel.kernel.logging import configure_logging
from workflow_kernel.kernel.table_file import TableFileError, load_table_file
from workflow_kernel.kernel.workflow.coordinator import Coordinator
from workflow_kernel.kernel.workflow.document import (
    DocumentState,
    DocumentTrigger,
    build_document_coordinator,
    describe,
)
from workflow_kernel.kernel.workflow.errors import InvalidTransition, KernelError
from workflow_kernel.kernel.workflow.events import STATE_CHANGED, Event
from workflow_kernel.kernel.workflow.state_machine import display

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-kernel",
        description="Drive a workflow coordination kernel from the command line",
    )
    parser.add_argument("--version", action="version", version=f"workflow-kernel {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    describe_cmd = subparsers.add_parser(
        "describe", help="Print the states, triggers and rules of a table file"
    )
    describe_cmd.add_argument("--table", required=True, type=Path, help="Path to a JSON table")

    run = subparsers.add_parser("run", help="Fire triggers in order and print each state")
    run.add_argument("--table", required=True, type=Path, help="Path to a JSON table")
    run.add_argument(
        "--undo",
        type=int,
        default=0,
        help="Number of commands to undo after all triggers have fired",
    )
    run.add_argument("triggers", nargs="*", help="Triggers to fire, in order")

    subparsers.add_parser("demo", help="Walk the built-in document review workflow")

    return parser


def _describe(table_path: Path) -> int:
    document = load_table_file(table_path)
    table = document.to_table()
    print(f"initial: {document.initial}")
    print(f"states: {', '.join(str(s) for s in table.states)}")
    print(f"triggers: {', '.join(str(t) for t in table.triggers)}")
    for rule in table.rules:
        print(f"  {rule.source} --{rule.trigger}--> {rule.target}")
    return 0


def _run(table_path: Path, triggers: list[str], undo: int, settings: KernelSettings) -> int:
    if undo < 0:
        print("--undo must not be negative", file=sys.stderr)
        return 2

    document = load_table_file(table_path)
    coordinator = Coordinator(document.to_table(), document.initial, settings=settings)

    for trigger in triggers:
        before = coordinator.current_state()
        after = coordinator.perform(trigger)
        print(f"{trigger}: {before} -> {after}")

    for _ in range(undo):
        before = coordinator.current_state()
        after = coordinator.undo_last()
        print(f"undo: {before} -> {after}")

    print(f"state: {coordinator.current_state()}")
    return 0


def _demo(settings: KernelSettings) -> int:
    coordinator = build_document_coordinator(settings=settings)

    def _render(event: Event) -> None:
        state = event.payload["to"]
        assert isinstance(state, DocumentState)
        print(f"  {describe(state)}")

    coordinator.on(STATE_CHANGED, _render)

    print(f"Document created. {describe(DocumentState.DRAFT)}")
    for trigger in (DocumentTrigger.SUBMIT, DocumentTrigger.APPROVE, DocumentTrigger.SUBMIT):
        print(f"{trigger.value}:")
        try:
            coordinator.perform(trigger)
        except InvalidTransition as e:
            print(f"  Rejected: {e}")

    print("retract:")
    coordinator.perform(DocumentTrigger.RETRACT)

    while coordinator.can_undo():
        print("undo:")
        coordinator.undo_last()

    print(f"final state: {display(coordinator.current_state())}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = KernelSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check WORKFLOW_KERNEL_* variables and .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    try:
        if args.command == "describe":
            return _describe(args.table)

        if args.command == "run":
            return _run(args.table, args.triggers, args.undo, settings)

        if args.command == "demo":
            return _demo(settings)

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except TableFileError as e:
        logger.error(str(e), extra={"path": str(e.path)})
        print(str(e), file=sys.stderr)
        return 2

    except KernelError as e:
        logger.warning(str(e), extra={"error": type(e).__name__})
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 3

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
