"""
Approval domain types (``approval_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the document approval engine.  Defines the
document lifecycle state machine, slot statuses, history action types,
and the result records returned by mutating operations.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* ``DOCUMENT_TRANSITIONS`` defines the only valid document status
  transitions.  Terminal states have no outgoing edges.
* ``current_level`` never decreases while a document is active; the
  processor only ever increments it (checked by ``assert_level_progress``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


# =========================================================================
# Document lifecycle
# =========================================================================


class DocumentStatus(str, Enum):
    """Document lifecycle states."""

    DRAFT = "DRAFT"
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"


DOCUMENT_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.DRAFT: frozenset({
        DocumentStatus.PENDING,
        DocumentStatus.WITHDRAWN,
    }),
    DocumentStatus.PENDING: frozenset({
        DocumentStatus.PENDING,
        DocumentStatus.IN_PROGRESS,
        DocumentStatus.APPROVED,
        DocumentStatus.REJECTED,
        DocumentStatus.WITHDRAWN,
    }),
    DocumentStatus.IN_PROGRESS: frozenset({
        DocumentStatus.IN_PROGRESS,
        DocumentStatus.APPROVED,
        DocumentStatus.REJECTED,
        DocumentStatus.WITHDRAWN,
    }),
    DocumentStatus.APPROVED: frozenset(),
    DocumentStatus.REJECTED: frozenset(),
    DocumentStatus.WITHDRAWN: frozenset(),
}

TERMINAL_DOCUMENT_STATUSES: frozenset[DocumentStatus] = frozenset({
    DocumentStatus.APPROVED,
    DocumentStatus.REJECTED,
    DocumentStatus.WITHDRAWN,
})

# Statuses in which approvers may act on slots.
ACTIVE_DOCUMENT_STATUSES: frozenset[DocumentStatus] = frozenset({
    DocumentStatus.PENDING,
    DocumentStatus.IN_PROGRESS,
})


def is_valid_transition(current: DocumentStatus, new: DocumentStatus) -> bool:
    """Return True if ``current -> new`` is an edge of the lifecycle graph."""
    return new in DOCUMENT_TRANSITIONS.get(current, frozenset())


def assert_level_progress(previous_level: int, new_level: int) -> None:
    """Guard the non-decreasing current level invariant."""
    if new_level < previous_level:
        raise AssertionError(
            f"current_level must not decrease: {previous_level} -> {new_level}"
        )


# =========================================================================
# Approval line slots
# =========================================================================


class LineStatus(str, Enum):
    """Status of a single approver slot."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    DELEGATED = "DELEGATED"


# Slot statuses that still await an action.
OPEN_LINE_STATUSES: frozenset[LineStatus] = frozenset({
    LineStatus.PENDING,
    LineStatus.DELEGATED,
})


class ApprovalType(str, Enum):
    """Role of a slot within its level.  REFERENCE never blocks progression."""

    APPROVE = "APPROVE"
    REVIEW = "REVIEW"
    REFERENCE = "REFERENCE"


class ActionType(str, Enum):
    """History action types.  One history row per applied action."""

    DRAFT = "DRAFT"
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    WITHDRAW = "WITHDRAW"
    DELEGATE = "DELEGATE"


class ApprovalDecision(str, Enum):
    """Decisions an approver can record on a slot."""

    APPROVE = "APPROVE"
    REJECT = "REJECT"


class Priority(str, Enum):
    """Advisory document priority."""

    HIGH = "HIGH"
    NORMAL = "NORMAL"
    LOW = "LOW"


# =========================================================================
# Caller-side records
# =========================================================================


@dataclass(frozen=True)
class CallerIdentity:
    """Authenticated caller, supplied by the identity/session layer."""

    employee_id: UUID
    role: str | None = None
    department_id: UUID | None = None


@dataclass(frozen=True)
class RequestProvenance:
    """Where a mutating request came from.  Stored on history rows."""

    ip_address: str | None = None
    user_agent: str | None = None
    additional_data: dict | None = None


@dataclass(frozen=True)
class AttachmentSpec:
    """Attachment metadata recorded at document creation.

    The bytes live in external storage; the engine keeps only the pointer.
    """

    original_file_name: str
    stored_file_name: str
    file_path: str
    file_size: int
    content_type: str | None = None
    file_extension: str | None = None


# =========================================================================
# Operation results
# =========================================================================


@dataclass(frozen=True)
class CreatedDocument:
    """Result of creating a document."""

    document_id: UUID
    document_no: str
    status: DocumentStatus
    total_level: int


@dataclass(frozen=True)
class ProcessingResult:
    """Result of one applied action on a document."""

    document_id: UUID
    action: ActionType
    previous_status: DocumentStatus
    new_status: DocumentStatus
    current_level: int
    total_level: int
    line_id: UUID | None = None
    history_id: UUID | None = None

    @property
    def is_final(self) -> bool:
        return self.new_status in TERMINAL_DOCUMENT_STATUSES
