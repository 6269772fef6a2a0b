"""Workflow Kernel.

An in-process coordination primitive that combines:
- a table-driven state machine
- a failure-isolating event bus
- an undoable command history
- a mediator routing signals between participants
"""

__version__ = "0.1.0"

from workflow_kernel.kernel.config import KernelSettings
from workflow_kernel.kernel.workflow import (
    Coordinator,
    KernelError,
    ReversibleAction,
    Transition,
    TransitionRule,
    TransitionTable,
)

__all__ = [
    "__version__",
    "Coordinator",
    "KernelError",
    "KernelSettings",
    "ReversibleAction",
    "Transition",
    "TransitionRule",
    "TransitionTable",
]
