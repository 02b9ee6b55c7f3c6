"""
approval_engines.progression -- Pure level progression rules.

Responsibility:
    Decide which slot an actor may act on at the current level, whether a
    level is satisfied, and what document status and level follow an
    APPROVE or REJECT decision.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Operates on ``SlotState``
    snapshots; the caller supplies effective approvers already resolved.

Invariants enforced:
    - Only required, non-REFERENCE slots at the current level are actionable.
    - A PENDING slot is actionable by its effective approver; a DELEGATED
      slot only by ``delegated_to``.
    - A level is satisfied when every required slot at it is APPROVED.
    - The returned level never decreases.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from uuid import UUID

from approval_engines.tracer import traced_engine
from approval_kernel.domain.approval import (
    OPEN_LINE_STATUSES,
    ApprovalDecision,
    ApprovalType,
    DocumentStatus,
    LineStatus,
)


@dataclass(frozen=True)
class SlotState:
    """Snapshot of one approver slot as the processor sees it."""

    line_id: UUID
    level: int
    sort_order: int
    approver_employee_id: UUID
    approval_type: ApprovalType
    is_required: bool
    status: LineStatus
    actual_approver_employee_id: UUID | None = None
    delegated_to: UUID | None = None

    @property
    def blocks(self) -> bool:
        return self.is_required and self.approval_type != ApprovalType.REFERENCE

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_LINE_STATUSES


@dataclass(frozen=True)
class Progression:
    """Document state after a decision has been recorded on a slot."""

    new_status: DocumentStatus
    new_level: int
    level_satisfied: bool

    @property
    def is_final(self) -> bool:
        return self.new_status in (DocumentStatus.APPROVED, DocumentStatus.REJECTED)


def actor_for_slot(slot: SlotState, effective: Mapping[UUID, UUID]) -> UUID:
    """Who may act on ``slot`` right now.

    ``effective`` maps nominal approvers to their effective approver; a
    missing entry means no delegation is in force.
    """
    if slot.status == LineStatus.DELEGATED and slot.delegated_to is not None:
        return slot.delegated_to
    return effective.get(slot.approver_employee_id, slot.approver_employee_id)


def find_actionable_slot(
    slots: Iterable[SlotState],
    *,
    level: int,
    actor_id: UUID,
    effective: Mapping[UUID, UUID],
) -> SlotState | None:
    """First open blocking slot at ``level`` the actor may act on."""
    for slot in sorted(slots, key=lambda s: (s.level, s.sort_order)):
        if slot.level != level or not slot.blocks or not slot.is_open:
            continue
        if actor_for_slot(slot, effective) == actor_id:
            return slot
    return None


def find_processed_slot(
    slots: Iterable[SlotState],
    *,
    level: int,
    actor_id: UUID,
) -> SlotState | None:
    """
    A closed slot at or below ``level`` the actor already acted on or was
    assigned.

    None while the actor still holds an open slot at a later level: they
    are waiting for their turn, not repeating a decision.
    """
    slots = sorted(slots, key=lambda s: (s.level, s.sort_order))

    def holds(slot: SlotState) -> bool:
        return actor_id in (slot.actual_approver_employee_id, slot.approver_employee_id)

    if any(s.level > level and s.blocks and s.is_open and holds(s) for s in slots):
        return None
    for slot in slots:
        if slot.level > level or slot.is_open or not slot.blocks:
            continue
        if holds(slot):
            return slot
    return None


def level_satisfied(slots: Iterable[SlotState], level: int) -> bool:
    """True if every required slot at ``level`` is APPROVED."""
    blocking = [s for s in slots if s.level == level and s.blocks]
    return bool(blocking) and all(s.status == LineStatus.APPROVED for s in blocking)


@traced_engine("progression", "1.0", fingerprint_fields=("decision", "current_level"))
def evaluate_decision(
    slots: Iterable[SlotState],
    *,
    decision: ApprovalDecision,
    current_level: int,
    total_level: int,
) -> Progression:
    """Compute the document outcome after ``decision`` has been applied.

    ``slots`` must already reflect the decided slot's new status.
    """
    if decision == ApprovalDecision.REJECT:
        return Progression(
            new_status=DocumentStatus.REJECTED,
            new_level=current_level,
            level_satisfied=False,
        )

    slots = list(slots)
    if not level_satisfied(slots, current_level):
        return Progression(
            new_status=DocumentStatus.IN_PROGRESS,
            new_level=current_level,
            level_satisfied=False,
        )
    if current_level >= total_level:
        return Progression(
            new_status=DocumentStatus.APPROVED,
            new_level=current_level,
            level_satisfied=True,
        )
    return Progression(
        new_status=DocumentStatus.IN_PROGRESS,
        new_level=current_level + 1,
        level_satisfied=True,
    )
