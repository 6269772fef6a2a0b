"""Reversible commands and the undo history they are recorded in."""

from __future__ import annotations

import itertools
import logging
import uuid
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field, replace

from .errors import CommandFailed, KernelError, NothingToUndo, UndoFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Command:
    """A paired forward/inverse action.

    ``applied_ordinal`` is ``None`` until the history records the command.
    """

    command_id: str
    name: str
    forward: Callable[[], object] = field(repr=False, compare=False)
    inverse: Callable[[], object] = field(repr=False, compare=False)
    applied_ordinal: int | None = None

    @classmethod
    def create(
        cls, name: str, forward: Callable[[], object], inverse: Callable[[], object]
    ) -> Command:
        return cls(command_id=uuid.uuid4().hex, name=name, forward=forward, inverse=inverse)


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """What callers may see of a recorded command: no callables."""

    command_id: str
    name: str
    applied_ordinal: int | None

    @classmethod
    def of(cls, command: Command) -> HistoryEntry:
        return cls(command.command_id, command.name, command.applied_ordinal)


class HistoryStack:
    """Strict LIFO record of applied commands.

    With ``max_depth`` set, recording past the limit evicts the oldest entry.
    """

    def __init__(self, *, max_depth: int | None = None) -> None:
        if max_depth is not None and max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self._entries: deque[Command] = deque()
        self._max_depth = max_depth
        self._ordinals = itertools.count(1)
        self._evicted = 0

    @property
    def max_depth(self) -> int | None:
        return self._max_depth

    @property
    def depth(self) -> int:
        return len(self._entries)

    @property
    def evicted(self) -> int:
        return self._evicted

    @property
    def entries(self) -> tuple[Command, ...]:
        """Recorded commands, oldest first."""

        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def peek(self) -> Command | None:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    def apply(self, command: Command) -> Command:
        """Run ``command.forward`` and record the command only if it succeeds."""

        try:
            command.forward()
        except KernelError:
            logger.info(
                "Command rejected",
                extra={"command_id": command.command_id, "command": command.name},
            )
            raise
        except Exception as exc:
            logger.warning(
                "Command failed",
                extra={"command_id": command.command_id, "command": command.name},
            )
            raise CommandFailed(command.command_id, command.name) from exc

        recorded = replace(command, applied_ordinal=next(self._ordinals))
        if self._max_depth is not None and len(self._entries) >= self._max_depth:
            oldest = self._entries.popleft()
            self._evicted += 1
            logger.info(
                "History full; evicted oldest command",
                extra={"command_id": oldest.command_id, "command": oldest.name},
            )
        self._entries.append(recorded)
        logger.debug(
            "Command recorded",
            extra={
                "command_id": recorded.command_id,
                "command": recorded.name,
                "depth": len(self._entries),
            },
        )
        return recorded

    def undo(self) -> Command:
        """Pop the newest command and run its inverse.

        If the inverse raises, the command goes back on top of the stack.
        """

        if not self._entries:
            raise NothingToUndo()

        command = self._entries.pop()
        try:
            command.inverse()
        except Exception as exc:
            self._entries.append(command)
            logger.warning(
                "Undo failed; command restored",
                extra={"command_id": command.command_id, "command": command.name},
            )
            raise UndoFailed(command.command_id, command.name) from exc

        logger.debug(
            "Command undone",
            extra={"command_id": command.command_id, "command": command.name},
        )
        return command
