"""
Module: approval_kernel.models.delegation
Responsibility: ORM persistence for time-bounded approval delegations.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - end_date > start_date (DB check constraint).
    - delegator_id != delegate_id (DB check constraint).
    - Overlapping rows are permitted; selection among them is the
      delegation engine's concern.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from approval_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from approval_kernel.domain.dtos import DelegationInfo
    from approval_kernel.domain.line import DelegationCandidate


class ApprovalDelegationModel(Base):
    """Persistent delegation of approval authority."""

    __tablename__ = "approval_delegations"

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="ck_approval_delegations_window"),
        CheckConstraint(
            "delegator_id <> delegate_id", name="ck_approval_delegations_distinct",
        ),
        Index("ix_approval_delegations_delegator", "delegator_id", "is_active"),
    )

    delegator_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    delegate_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    form_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("approval_forms.id"), nullable=True,
    )
    start_date: Mapped[datetime] = mapped_column(nullable=False)
    end_date: Mapped[datetime] = mapped_column(nullable=False)
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    created_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ApprovalDelegation {self.delegator_id}->{self.delegate_id} "
            f"[{self.start_date}, {self.end_date})>"
        )

    def to_dto(self) -> DelegationInfo:
        from approval_kernel.domain.dtos import DelegationInfo

        return DelegationInfo(
            delegation_id=self.id,
            delegator_id=self.delegator_id,
            delegate_id=self.delegate_id,
            start_date=self.start_date,
            end_date=self.end_date,
            form_id=self.form_id,
            reason=self.reason,
            is_active=self.is_active,
            created_at=self.created_at,
        )

    def to_candidate(self) -> DelegationCandidate:
        from approval_kernel.domain.line import DelegationCandidate

        return DelegationCandidate(
            delegation_id=self.id,
            delegator_id=self.delegator_id,
            delegate_id=self.delegate_id,
            start_date=self.start_date,
            end_date=self.end_date,
            form_id=self.form_id,
            created_at=self.created_at,
            is_active=self.is_active,
        )
