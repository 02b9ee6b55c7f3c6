"""
Module: approval_kernel.models.history
Responsibility: ORM persistence for the append-only approval history.

Architecture position: Kernel > Models.  May import from db/base.py and
    exceptions.py only.

Invariants enforced:
    - Append-only: UPDATE and DELETE raise ImmutabilityViolationError.
    - (document_id, seq_no) is unique, so two writers appending to the
      same document without the document lock collide instead of
      interleaving silently.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, String, Text, UniqueConstraint, event
from sqlalchemy.orm import Mapped, mapped_column

from approval_kernel.db.base import Base, UUIDString
from approval_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from approval_kernel.domain.dtos import HistoryEntry


class ApprovalHistoryModel(Base):
    """One applied action on a document."""

    __tablename__ = "approval_history"

    __table_args__ = (
        UniqueConstraint("document_id", "seq_no", name="uq_approval_history_seq"),
    )

    document_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("approval_documents.id"), nullable=False,
    )
    seq_no: Mapped[int] = mapped_column(nullable=False)
    line_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("approval_lines.id"), nullable=True,
    )
    action_type: Mapped[str] = mapped_column(String(20), nullable=False)
    action_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    action_at: Mapped[datetime] = mapped_column(nullable=False)
    previous_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    new_status: Mapped[str] = mapped_column(String(20), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(50), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    additional_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ApprovalHistory #{self.seq_no} {self.action_type} "
            f"{self.previous_status}->{self.new_status}>"
        )

    def to_dto(self) -> HistoryEntry:
        from approval_kernel.domain.approval import ActionType, DocumentStatus
        from approval_kernel.domain.dtos import HistoryEntry

        return HistoryEntry(
            history_id=self.id,
            action_type=ActionType(self.action_type),
            action_by=self.action_by,
            action_at=self.action_at,
            new_status=DocumentStatus(self.new_status),
            previous_status=(
                DocumentStatus(self.previous_status) if self.previous_status else None
            ),
            line_id=self.line_id,
            comment=self.comment,
            ip_address=self.ip_address,
            user_agent=self.user_agent,
            additional_data=self.additional_data,
        )


# =============================================================================
# ORM-Level Immutability (Append-Only)
# =============================================================================


@event.listens_for(ApprovalHistoryModel, "before_update")
def prevent_history_update(mapper, connection, target):
    """Prevent updates to approval history records."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalHistory",
        entity_id=str(target.id),
        reason="Approval history is append-only -- cannot modify",
    )


@event.listens_for(ApprovalHistoryModel, "before_delete")
def prevent_history_delete(mapper, connection, target):
    """Prevent deletion of approval history records."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalHistory",
        entity_id=str(target.id),
        reason="Approval history is append-only -- cannot delete",
    )
