"""The coordinator: a single entry point over the workflow components.

The coordinator owns one state machine, one history stack and one event bus,
plus a sealed command router configured at construction. Callers never touch
those directly. Every operation is serialised by one reentrant lock so the
sequence transition -> history update -> event emission -> routing is never
interleaved with another caller.
"""

from __future__ import annotations

import logging
import threading
import weakref
from collections.abc import Callable, Hashable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

from workflow_kernel.kernel.config import KernelSettings

from .errors import ReentrancyError
from .events import LIFECYCLE_CHANGED, Event, EventBus, Handler, ListenerError, Subscription
from .history import Command, HistoryEntry, HistoryStack
from .router import Binding, BindingSpec, CommandRouter
from .state_machine import StateMachine, TransitionRule, TransitionTable, display

logger = logging.getLogger(__name__)

STATE_MACHINE = "state-machine"


class Lifecycle(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


_FIRST_COMMAND = "first-command"

LIFECYCLE_TABLE = TransitionTable(
    [TransitionRule(source=Lifecycle.IDLE, trigger=_FIRST_COMMAND, target=Lifecycle.ACTIVE)]
)


class WorkflowHandle:
    """Narrow capability handed to guards, side-effects and reactions.

    Holds only a weak reference, so inner components never keep the
    coordinator alive.
    """

    __slots__ = ("_ref",)

    def __init__(self, coordinator: Coordinator) -> None:
        self._ref = weakref.ref(coordinator)

    def _coordinator(self) -> Coordinator:
        coordinator = self._ref()
        if coordinator is None:
            raise ReferenceError("Coordinator no longer exists")
        return coordinator

    def current_state(self) -> Hashable:
        return self._coordinator().current_state()

    def available_triggers(self) -> tuple[Hashable, ...]:
        return self._coordinator().available_triggers()

    def perform(self, action: Action | Hashable) -> Hashable:
        return self._coordinator().perform(action)

    def signal(
        self, sender: Hashable, name: str, payload: Mapping[str, object] | None = None
    ) -> int:
        return self._coordinator().signal(sender, name, payload)


class ActionContext:
    """What an action sees while it is applied or reverted."""

    def __init__(
        self, machine: StateMachine, handle: WorkflowHandle, events: list[Event]
    ) -> None:
        self._machine = machine
        self._handle = handle
        self._events = events

    @property
    def state(self) -> Hashable:
        return self._machine.state

    @property
    def handle(self) -> WorkflowHandle:
        return self._handle

    def transition(self, trigger: Hashable) -> Hashable:
        event = self._machine.transition(trigger, context=self._handle)
        self._events.append(event)
        return self._machine.state


@runtime_checkable
class Action(Protocol):
    """A domain action the coordinator can record and undo.

    ``revert`` only needs to undo effects outside the state machine; the
    coordinator restores the state the action started from.
    """

    @property
    def name(self) -> str: ...

    def apply(self, ctx: ActionContext) -> object: ...

    def revert(self, ctx: ActionContext) -> object: ...


@dataclass(frozen=True, slots=True)
class Transition:
    """Fire a single trigger."""

    trigger: Hashable

    @property
    def name(self) -> str:
        return str(display(self.trigger))

    def apply(self, ctx: ActionContext) -> object:
        return ctx.transition(self.trigger)

    def revert(self, ctx: ActionContext) -> object:
        return None


@dataclass(frozen=True, slots=True)
class ReversibleAction:
    """An action built from two callables."""

    name: str
    forward: Callable[[ActionContext], object]
    inverse: Callable[[ActionContext], object] | None = None

    def apply(self, ctx: ActionContext) -> object:
        return self.forward(ctx)

    def revert(self, ctx: ActionContext) -> object:
        if self.inverse is None:
            return None
        return self.inverse(ctx)


class Coordinator:
    """Facade over the state machine, history, event bus and router.

    Args:
        table: Transition rules for the domain state machine.
        initial: Starting state.
        bindings: Router bindings per participant identity. Registered once,
            then the router is sealed.
        settings: Depth limits and bus sizing. Loaded from the environment when
            omitted.
    """

    def __init__(
        self,
        table: TransitionTable,
        initial: Hashable,
        *,
        bindings: Mapping[Hashable, BindingSpec] | None = None,
        settings: KernelSettings | None = None,
    ) -> None:
        self.settings = settings or KernelSettings()

        self._bus = EventBus(error_log_size=self.settings.listener_error_log_size)
        self._machine = StateMachine(table, initial, bus=self._bus)
        self._lifecycle = StateMachine(
            LIFECYCLE_TABLE, Lifecycle.IDLE, bus=self._bus, event_name=LIFECYCLE_CHANGED
        )
        self._history = HistoryStack(max_depth=self.settings.max_history_depth)

        self._router = CommandRouter(max_depth=self.settings.max_routing_depth)
        for participant, spec in (bindings or {}).items():
            self._router.register(participant, spec)
        self._router.seal()

        self._lock = threading.RLock()
        self._busy = 0
        self._handle = WorkflowHandle(self)

        logger.info(
            "Coordinator created",
            extra={
                "initial_state": display(initial),
                "rules": len(table),
                "participants": len(self._router.participants),
                "max_history_depth": self.settings.max_history_depth,
                "max_routing_depth": self.settings.max_routing_depth,
            },
        )

    # -- queries -----------------------------------------------------------

    def current_state(self) -> Hashable:
        return self._machine.state

    @property
    def lifecycle(self) -> Lifecycle:
        state = self._lifecycle.state
        assert isinstance(state, Lifecycle)
        return state

    @property
    def handle(self) -> WorkflowHandle:
        return self._handle

    @property
    def history_depth(self) -> int:
        return self._history.depth

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        """Recorded commands, oldest first, by id and name only."""

        return tuple(HistoryEntry.of(command) for command in self._history.entries)

    @property
    def subscriptions(self) -> tuple[Subscription, ...]:
        return self._bus.subscriptions

    @property
    def listener_errors(self) -> tuple[ListenerError, ...]:
        return self._bus.listener_errors

    def routing_bindings(self) -> dict[Hashable, tuple[Binding, ...]]:
        return {p: self._router.bindings_for(p) for p in self._router.participants}

    def available_triggers(self) -> tuple[Hashable, ...]:
        return self._machine.available_triggers()

    def can_undo(self) -> bool:
        return self._history.depth > 0

    # -- subscriptions -----------------------------------------------------

    def on(
        self, event_filter: str, handler: Handler, *, subscriber: Hashable | None = None
    ) -> Subscription:
        return self._bus.subscribe(event_filter, handler, subscriber=subscriber)

    def off(self, subscription: Subscription) -> None:
        self._bus.unsubscribe(subscription)

    # -- operations --------------------------------------------------------

    def perform(self, action: Action | Hashable) -> Hashable:
        """Apply ``action`` as an undoable command and route what it emitted.

        A bare trigger is shorthand for :class:`Transition`.
        """

        resolved = action if isinstance(action, Action) else Transition(action)
        with self._lock:
            self._ensure_not_busy("perform")

            events: list[Event] = []
            self._busy += 1
            try:
                recorded = self._history.apply(self._command_for(resolved, events))
                if self._lifecycle.state is Lifecycle.IDLE:
                    self._lifecycle.transition(_FIRST_COMMAND)
            finally:
                self._busy -= 1

            logger.info(
                "Action performed",
                extra={
                    "command_id": recorded.command_id,
                    "command": recorded.name,
                    "state": display(self._machine.state),
                    "history_depth": self._history.depth,
                },
            )

            for event in events:
                self._router.notify(
                    STATE_MACHINE, event.name, event.payload, context=self._handle
                )

            return self._machine.state

    def undo_last(self) -> Hashable:
        """Undo the most recent command and return the restored state."""

        with self._lock:
            self._ensure_not_busy("undo")
            self._busy += 1
            try:
                command = self._history.undo()
            finally:
                self._busy -= 1
            logger.info(
                "Action undone",
                extra={
                    "command_id": command.command_id,
                    "command": command.name,
                    "state": display(self._machine.state),
                    "history_depth": self._history.depth,
                },
            )
            return self._machine.state

    def signal(
        self, sender: Hashable, name: str, payload: Mapping[str, object] | None = None
    ) -> int:
        """Route a participant's signal; return how many reactions ran."""

        with self._lock:
            self._ensure_not_busy("signal")
            return self._router.notify(sender, name, payload, context=self._handle)

    # -- internals ---------------------------------------------------------

    def _ensure_not_busy(self, operation: str) -> None:
        # Covers action bodies and every listener of the events published
        # while a command is applied or undone.
        if self._busy:
            raise ReentrancyError(
                f"Cannot {operation} while a command is being applied or undone; "
                "use a router reaction instead"
            )

    def _command_for(self, action: Action, events: list[Event]) -> Command:
        machine = self._machine
        start: list[Hashable] = []

        def forward() -> None:
            start.append(machine.state)
            try:
                action.apply(ActionContext(machine, self._handle, events))
            except Exception:
                events.clear()
                if machine.state != start[0]:
                    machine.revert(start[0], reason="rollback", payload={"action": action.name})
                raise

        def inverse() -> None:
            before = machine.state
            try:
                action.revert(ActionContext(machine, self._handle, []))
            except Exception:
                if machine.state != before:
                    machine.revert(before, reason="rollback", payload={"action": action.name})
                raise
            if machine.state != start[0]:
                machine.revert(start[0], reason="undo", payload={"action": action.name})

        return Command.create(action.name, forward, inverse)
