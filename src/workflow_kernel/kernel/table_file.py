"""JSON transition table files.

A table file describes a guard-free workflow:

    {
      "initial": "draft",
      "states": ["draft", "moderation", "published"],
      "rules": [
        {"source": "draft", "trigger": "submit", "target": "moderation"}
      ]
    }

``states`` is optional; states referenced by rules are always included.
Guards and side-effects are code, so they cannot be expressed here.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, model_validator

from workflow_kernel.kernel.workflow.errors import DuplicateRuleError, KernelError
from workflow_kernel.kernel.workflow.state_machine import TransitionRule, TransitionTable

logger = logging.getLogger(__name__)


class TableFileError(KernelError, ValueError):
    """Raised when a table file cannot be read or does not validate."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class RuleDocument(BaseModel):
    source: str = Field(min_length=1)
    trigger: str = Field(min_length=1)
    target: str = Field(min_length=1)


class TableDocument(BaseModel):
    initial: str = Field(min_length=1)
    states: list[str] = Field(default_factory=list)
    rules: list[RuleDocument] = Field(default_factory=list)

    @model_validator(mode="after")
    def _initial_is_known(self) -> TableDocument:
        known = set(self.states)
        for rule in self.rules:
            known.update((rule.source, rule.target))
        if known and self.initial not in known:
            raise ValueError(f"initial state {self.initial!r} does not appear in the table")
        return self

    def to_table(self) -> TransitionTable:
        return TransitionTable(
            (TransitionRule(r.source, r.trigger, r.target) for r in self.rules),
            states=self.states,
        )


def load_table_file(path: Path) -> TableDocument:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise TableFileError(path, "file not found") from e
    except json.JSONDecodeError as e:
        raise TableFileError(path, f"invalid JSON ({e.msg} at line {e.lineno})") from e

    try:
        document = TableDocument.model_validate(raw)
    except ValidationError as e:
        raise TableFileError(path, str(e)) from e

    try:
        document.to_table()
    except DuplicateRuleError as e:
        raise TableFileError(path, str(e)) from e

    logger.debug(
        "Table file loaded",
        extra={"path": str(path), "rules": len(document.rules), "initial_state": document.initial},
    )
    return document
