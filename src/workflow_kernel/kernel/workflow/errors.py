"""Typed errors raised by the workflow kernel.

Every failure the kernel surfaces derives from :class:`KernelError` so callers
can catch the whole family at once, or discriminate on the concrete type.
Wrapped failures keep the original exception as ``__cause__``.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence


class KernelError(Exception):
    """Base class for all workflow kernel errors."""


class DuplicateRuleError(KernelError, ValueError):
    """Raised when two rules share the same (source, trigger) pair."""

    def __init__(self, source: Hashable, trigger: Hashable) -> None:
        super().__init__(f"Duplicate rule for ({source!r}, {trigger!r})")
        self.source = source
        self.trigger = trigger


class InvalidTransition(KernelError):
    """No rule exists for the current state and the requested trigger."""

    def __init__(self, state: Hashable, trigger: Hashable) -> None:
        super().__init__(f"No transition from {state!r} on {trigger!r}")
        self.state = state
        self.trigger = trigger


class GuardRejected(KernelError):
    """A rule exists but its guard vetoed the transition."""

    def __init__(self, state: Hashable, trigger: Hashable, target: Hashable) -> None:
        super().__init__(f"Guard rejected {state!r} -> {target!r} on {trigger!r}")
        self.state = state
        self.trigger = trigger
        self.target = target


class SideEffectFailed(KernelError):
    """A transition side-effect raised; the transition was rolled back."""

    def __init__(self, state: Hashable, trigger: Hashable, target: Hashable) -> None:
        super().__init__(
            f"Side-effect failed for {state!r} -> {target!r} on {trigger!r}; rolled back"
        )
        self.state = state
        self.trigger = trigger
        self.target = target


class ReentrantTransition(KernelError):
    """A transition was requested while another one was being committed."""


class CommandFailed(KernelError):
    """A command's forward action raised before the command was recorded."""

    def __init__(self, command_id: str, name: str) -> None:
        super().__init__(f"Command {name!r} ({command_id}) failed")
        self.command_id = command_id
        self.name = name


class UndoFailed(KernelError):
    """A command's inverse action raised; the command was restored to the stack."""

    def __init__(self, command_id: str, name: str) -> None:
        super().__init__(f"Undo of {name!r} ({command_id}) failed; command kept in history")
        self.command_id = command_id
        self.name = name


class NothingToUndo(KernelError):
    """Undo was requested on an empty history."""

    def __init__(self) -> None:
        super().__init__("Nothing to undo")


class RoutingCycleDetected(KernelError):
    """Nested router notifications went past the configured depth."""

    def __init__(self, chain: Sequence[tuple[Hashable, str]], limit: int) -> None:
        path = " -> ".join(f"{sender}:{signal}" for sender, signal in chain)
        super().__init__(f"Routing depth limit {limit} exceeded: {path}")
        self.chain = tuple(chain)
        self.limit = limit


class ReactionFailed(KernelError):
    """A routed reaction raised a non-kernel exception."""

    def __init__(self, participant: Hashable, signal: str) -> None:
        super().__init__(f"Reaction to {participant!r}:{signal!r} failed")
        self.participant = participant
        self.signal = signal


class ReentrancyError(KernelError):
    """The coordinator was re-entered from inside a command's own action."""


class RouterSealedError(KernelError):
    """Bindings were written after the router was sealed."""
