"""Workflow coordination primitives.

This package provides first-class types for:
- a table-driven state machine that emits transition events
- a failure-isolating event bus
- a reversible command history
- a mediator that routes signals between participants
- the coordinator that ties them together behind one lock

Everything runs synchronously in-process. Nothing is persisted.
"""

from .coordinator import (
    STATE_MACHINE,
    Action,
    ActionContext,
    Coordinator,
    Lifecycle,
    ReversibleAction,
    Transition,
    WorkflowHandle,
)
from .errors import (
    CommandFailed,
    DuplicateRuleError,
    GuardRejected,
    InvalidTransition,
    KernelError,
    NothingToUndo,
    ReactionFailed,
    ReentrancyError,
    ReentrantTransition,
    RouterSealedError,
    RoutingCycleDetected,
    SideEffectFailed,
    UndoFailed,
)
from .events import LIFECYCLE_CHANGED, STATE_CHANGED, Event, EventBus, Subscription
from .history import Command, HistoryEntry, HistoryStack
from .router import Binding, CommandRouter, Signal, broadcast
from .state_machine import StateMachine, TransitionAttempt, TransitionRule, TransitionTable

__all__ = [
    "LIFECYCLE_CHANGED",
    "STATE_CHANGED",
    "STATE_MACHINE",
    "Action",
    "ActionContext",
    "Binding",
    "Command",
    "CommandFailed",
    "CommandRouter",
    "Coordinator",
    "DuplicateRuleError",
    "Event",
    "EventBus",
    "GuardRejected",
    "HistoryEntry",
    "HistoryStack",
    "InvalidTransition",
    "KernelError",
    "Lifecycle",
    "NothingToUndo",
    "ReactionFailed",
    "ReentrancyError",
    "ReentrantTransition",
    "ReversibleAction",
    "RouterSealedError",
    "RoutingCycleDetected",
    "SideEffectFailed",
    "Signal",
    "StateMachine",
    "Subscription",
    "Transition",
    "TransitionAttempt",
    "TransitionRule",
    "TransitionTable",
    "UndoFailed",
    "WorkflowHandle",
    "broadcast",
]
