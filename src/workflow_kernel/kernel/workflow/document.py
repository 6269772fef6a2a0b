"""A ready-made document review workflow.

Draft documents are submitted for moderation; moderators approve them for
publication or reject them back to draft; published documents can be
retracted to draft.
"""

from __future__ import annotations

from collections.abc import Hashable, Mapping
from enum import Enum

from workflow_kernel.kernel.config import KernelSettings

from .coordinator import Coordinator
from .router import BindingSpec
from .state_machine import Guard, TransitionRule, TransitionTable


class DocumentState(str, Enum):
    DRAFT = "draft"
    MODERATION = "moderation"
    PUBLISHED = "published"


class DocumentTrigger(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    RETRACT = "retract"


_DESCRIPTIONS: dict[DocumentState, str] = {
    DocumentState.DRAFT: "Document is in DRAFT mode (only visible to authors).",
    DocumentState.MODERATION: "Document is in MODERATION mode (visible to moderators).",
    DocumentState.PUBLISHED: "Document is in PUBLISHED mode (visible to everyone).",
}


def describe(state: DocumentState) -> str:
    return _DESCRIPTIONS[state]


def document_table(*, approval_guard: Guard | None = None) -> TransitionTable:
    """Build the document workflow table.

    ``approval_guard`` (optional) gates ``approve``; when it returns False the
    document stays in moderation.
    """

    return TransitionTable(
        [
            TransitionRule(DocumentState.DRAFT, DocumentTrigger.SUBMIT, DocumentState.MODERATION),
            TransitionRule(
                DocumentState.MODERATION,
                DocumentTrigger.APPROVE,
                DocumentState.PUBLISHED,
                guard=approval_guard,
            ),
            TransitionRule(DocumentState.MODERATION, DocumentTrigger.REJECT, DocumentState.DRAFT),
            TransitionRule(DocumentState.PUBLISHED, DocumentTrigger.RETRACT, DocumentState.DRAFT),
        ],
        states=list(DocumentState),
    )


def build_document_coordinator(
    *,
    approval_guard: Guard | None = None,
    bindings: Mapping[Hashable, BindingSpec] | None = None,
    settings: KernelSettings | None = None,
) -> Coordinator:
    return Coordinator(
        document_table(approval_guard=approval_guard),
        DocumentState.DRAFT,
        bindings=bindings,
        settings=settings,
    )
