"""Table-driven state machine.

States and triggers are any hashable values. A :class:`TransitionTable` holds at
most one rule per ``(source, trigger)`` pair; each rule may carry a guard and a
side-effect. Every committed transition is published on the event bus.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable, Mapping
from dataclasses import dataclass, field

from .errors import (
    DuplicateRuleError,
    GuardRejected,
    InvalidTransition,
    ReentrantTransition,
    SideEffectFailed,
)
from .events import STATE_CHANGED, Event, EventBus

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransitionAttempt:
    """What guards and side-effects are told about the transition in progress.

    ``context`` is whatever capability the caller handed to
    :meth:`StateMachine.transition`. The coordinator passes its
    :class:`~workflow_kernel.kernel.workflow.coordinator.WorkflowHandle`.
    """

    source: Hashable
    target: Hashable
    trigger: Hashable
    context: object | None = None


Guard = Callable[[TransitionAttempt], bool]
SideEffect = Callable[[TransitionAttempt], object]


@dataclass(frozen=True, slots=True)
class TransitionRule:
    source: Hashable
    trigger: Hashable
    target: Hashable
    guard: Guard | None = field(default=None, compare=False)
    side_effect: SideEffect | None = field(default=None, compare=False)


class TransitionTable:
    """An immutable, enumerable set of transition rules.

    At most one rule may exist per ``(source, trigger)`` pair.
    """

    def __init__(
        self, rules: Iterable[TransitionRule], *, states: Iterable[Hashable] = ()
    ) -> None:
        self._rules: dict[tuple[Hashable, Hashable], TransitionRule] = {}
        for rule in rules:
            key = (rule.source, rule.trigger)
            if key in self._rules:
                raise DuplicateRuleError(rule.source, rule.trigger)
            self._rules[key] = rule

        ordered: dict[Hashable, None] = dict.fromkeys(states)
        for rule in self._rules.values():
            ordered.setdefault(rule.source)
            ordered.setdefault(rule.target)
        self._states = tuple(ordered)
        self._triggers = tuple(dict.fromkeys(rule.trigger for rule in self._rules.values()))

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[Hashable, Mapping[Hashable, Hashable]]
    ) -> TransitionTable:
        """Build a guard-free table from ``{source: {trigger: target}}``."""

        return cls(
            TransitionRule(source=source, trigger=trigger, target=target)
            for source, edges in mapping.items()
            for trigger, target in edges.items()
        )

    @property
    def rules(self) -> tuple[TransitionRule, ...]:
        return tuple(self._rules.values())

    @property
    def states(self) -> tuple[Hashable, ...]:
        return self._states

    @property
    def triggers(self) -> tuple[Hashable, ...]:
        return self._triggers

    def lookup(self, source: Hashable, trigger: Hashable) -> TransitionRule | None:
        return self._rules.get((source, trigger))

    def triggers_from(self, state: Hashable) -> tuple[Hashable, ...]:
        return tuple(trigger for source, trigger in self._rules if source == state)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, state: object) -> bool:
        return state in self._states


class StateMachine:
    """A finite-state automaton driven by a :class:`TransitionTable`.

    A successful transition commits the target state, runs the rule's
    side-effect, and only then publishes ``event_name`` on the bus. A failing
    side-effect restores the source state and nothing is published.
    """

    def __init__(
        self,
        table: TransitionTable,
        initial: Hashable,
        *,
        bus: EventBus,
        event_name: str = STATE_CHANGED,
    ) -> None:
        if table.states and initial not in table:
            raise ValueError(f"Initial state {initial!r} is not in the transition table")
        self._table = table
        self._state = initial
        self._bus = bus
        self._event_name = event_name
        self._committing = False

    @property
    def state(self) -> Hashable:
        return self._state

    @property
    def table(self) -> TransitionTable:
        return self._table

    def available_triggers(self) -> tuple[Hashable, ...]:
        return self._table.triggers_from(self._state)

    def transition(self, trigger: Hashable, *, context: object | None = None) -> Event:
        if self._committing:
            raise ReentrantTransition(
                f"Transition on {trigger!r} requested while another transition is committing"
            )

        source = self._state
        rule = self._table.lookup(source, trigger)
        if rule is None:
            logger.info(
                "Transition rejected: no rule",
                extra={"from_state": display(source), "trigger": display(trigger)},
            )
            raise InvalidTransition(source, trigger)

        attempt = TransitionAttempt(
            source=source, target=rule.target, trigger=trigger, context=context
        )
        self._committing = True
        try:
            if rule.guard is not None and not rule.guard(attempt):
                logger.info(
                    "Transition rejected by guard",
                    extra={
                        "from_state": display(source),
                        "to_state": display(rule.target),
                        "trigger": display(trigger),
                    },
                )
                raise GuardRejected(source, trigger, rule.target)

            self._state = rule.target
            if rule.side_effect is not None:
                try:
                    rule.side_effect(attempt)
                except Exception as exc:
                    self._state = source
                    logger.warning(
                        "Side-effect failed; transition rolled back",
                        extra={
                            "from_state": display(source),
                            "to_state": display(rule.target),
                            "trigger": display(trigger),
                        },
                    )
                    raise SideEffectFailed(source, trigger, rule.target) from exc
        finally:
            self._committing = False

        logger.info(
            "State changed",
            extra={
                "from_state": display(source),
                "to_state": display(rule.target),
                "trigger": display(trigger),
            },
        )
        result = self._bus.emit(
            self._event_name, {"from": source, "to": rule.target, "trigger": trigger}
        )
        return result.event

    def revert(
        self,
        to: Hashable,
        *,
        reason: str,
        payload: Mapping[str, object] | None = None,
    ) -> Event:
        """Restore a previously held state without consulting the table.

        Used for undo and for rolling back failed commands.
        """

        if self._committing:
            raise ReentrantTransition(
                f"Revert to {to!r} requested while a transition is committing"
            )
        if self._table.states and to not in self._table:
            raise ValueError(f"State {to!r} is not in the transition table")

        source = self._state
        self._state = to
        logger.info(
            "State reverted",
            extra={"from_state": display(source), "to_state": display(to), "reason": reason},
        )
        result = self._bus.emit(
            self._event_name,
            {**(payload or {}), "from": source, "to": to, "trigger": None, "reason": reason},
        )
        return result.event


def display(value: object) -> object:
    """Render enum members by value so JSON log output stays readable."""

    return getattr(value, "value", value)
