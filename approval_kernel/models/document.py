"""
Module: approval_kernel.models.document
Responsibility: ORM persistence for the document aggregate: the document
    header, its approver slots (the approval line) and attachment pointers.

Architecture position: Kernel > Models.  May import from db/base.py,
    exceptions.py and domain value objects only.

Invariants enforced:
    - document_no is unique.
    - Status is one of the lifecycle values (DB check constraint).
    - 0 <= current_level <= total_level.
    - A slot is unique on (document_id, level, sort_order).
    - Documents, slots and attachments are never deleted
      (ImmutabilityViolationError from ORM listeners).
    - requester_id / requester_dept_id are snapshotted at creation and
      never rewritten.

Failure modes:
    - IntegrityError on duplicate document_no or slot position.
    - ImmutabilityViolationError on DELETE.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from approval_kernel.db.base import Base, UUIDString
from approval_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from approval_kernel.domain.dtos import (
        AttachmentInfo,
        DocumentHeader,
        LineSlotView,
    )
    from approval_kernel.models.form import ApprovalFormModel
    from approval_kernel.models.history import ApprovalHistoryModel


class ApprovalDocumentModel(Base):
    """Aggregate root of one approval request."""

    __tablename__ = "approval_documents"

    __table_args__ = (
        CheckConstraint(
            "status IN ('DRAFT', 'PENDING', 'IN_PROGRESS', 'APPROVED', "
            "'REJECTED', 'WITHDRAWN')",
            name="ck_approval_documents_valid_status",
        ),
        CheckConstraint(
            "current_level >= 0 AND current_level <= total_level",
            name="ck_approval_documents_level_range",
        ),
        Index("ix_approval_documents_requester", "requester_id", "status", "created_at"),
        Index("ix_approval_documents_status", "status", "current_level"),
    )

    document_no: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    form_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("approval_forms.id"), nullable=False,
    )
    setting_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    # Opaque to the engine; owned by the calling domain.
    content: Mapped[Any] = mapped_column(JSON, nullable=True)
    requester_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    requester_dept_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    company_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="DRAFT")
    current_level: Mapped[int] = mapped_column(nullable=False, default=0)
    total_level: Mapped[int] = mapped_column(nullable=False, default=0)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="NORMAL")
    urgent: Mapped[bool] = mapped_column(nullable=False, default=False)
    due_date: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    withdrawn_at: Mapped[datetime | None] = mapped_column(nullable=True)
    withdrawn_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    withdraw_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    related_system_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    related_system_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    form: Mapped["ApprovalFormModel"] = relationship(
        "ApprovalFormModel", lazy="selectin",
    )
    lines: Mapped[list["ApprovalLineModel"]] = relationship(
        "ApprovalLineModel",
        back_populates="document",
        order_by=lambda: [ApprovalLineModel.level, ApprovalLineModel.sort_order],
        lazy="selectin",
        passive_deletes="all",
    )
    history: Mapped[list["ApprovalHistoryModel"]] = relationship(
        "ApprovalHistoryModel",
        order_by="ApprovalHistoryModel.seq_no",
        lazy="selectin",
        viewonly=True,
    )
    attachments: Mapped[list["ApprovalAttachmentModel"]] = relationship(
        "ApprovalAttachmentModel",
        back_populates="document",
        order_by="ApprovalAttachmentModel.uploaded_at",
        lazy="selectin",
        passive_deletes="all",
    )

    def __repr__(self) -> str:
        return (
            f"<ApprovalDocument {self.document_no} status={self.status} "
            f"level={self.current_level}/{self.total_level}>"
        )

    def to_dto(self) -> DocumentHeader:
        """Header DTO without directory display names."""
        from approval_kernel.domain.approval import DocumentStatus, Priority
        from approval_kernel.domain.dtos import DocumentHeader

        return DocumentHeader(
            document_id=self.id,
            document_no=self.document_no,
            form_id=self.form_id,
            form_code=self.form.form_code,
            form_name=self.form.form_name,
            title=self.title,
            content=self.content,
            requester_id=self.requester_id,
            requester_dept_id=self.requester_dept_id,
            status=DocumentStatus(self.status),
            current_level=self.current_level,
            total_level=self.total_level,
            priority=Priority(self.priority),
            urgent=self.urgent,
            created_at=self.created_at,
            due_date=self.due_date,
            processed_at=self.processed_at,
            withdrawn_at=self.withdrawn_at,
            withdrawn_by=self.withdrawn_by,
            withdraw_reason=self.withdraw_reason,
            related_system_type=self.related_system_type,
            related_system_id=self.related_system_id,
            attachments_count=len(self.attachments),
        )


class ApprovalLineModel(Base):
    """One approver slot at one level of a document's line.

    ``approver_employee_id`` is pinned at line construction and never
    re-resolved.
    """

    __tablename__ = "approval_lines"

    __table_args__ = (
        UniqueConstraint(
            "document_id", "level", "sort_order",
            name="uq_approval_lines_position",
        ),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'DELEGATED')",
            name="ck_approval_lines_valid_status",
        ),
        CheckConstraint(
            "approval_type IN ('APPROVE', 'REVIEW', 'REFERENCE')",
            name="ck_approval_lines_valid_type",
        ),
        CheckConstraint("level >= 1", name="ck_approval_lines_level"),
        Index("ix_approval_lines_approver", "approver_employee_id", "status"),
        Index("ix_approval_lines_delegated_to", "delegated_to", "status"),
    )

    document_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("approval_documents.id"), nullable=False,
    )
    level: Mapped[int] = mapped_column(nullable=False)
    sort_order: Mapped[int] = mapped_column(nullable=False)
    approval_type: Mapped[str] = mapped_column(String(20), nullable=False)
    approver_employee_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    actual_approver_employee_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    is_parallel: Mapped[bool] = mapped_column(nullable=False, default=False)
    is_required: Mapped[bool] = mapped_column(nullable=False, default=True)
    approval_date: Mapped[datetime | None] = mapped_column(nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    delegated_from: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    delegated_to: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    delegation_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    delegated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    document: Mapped["ApprovalDocumentModel"] = relationship(
        "ApprovalDocumentModel", back_populates="lines",
    )

    def __repr__(self) -> str:
        return (
            f"<ApprovalLine L{self.level}.{self.sort_order} "
            f"{self.approver_employee_id} status={self.status}>"
        )

    def to_dto(self) -> LineSlotView:
        from approval_kernel.domain.approval import ApprovalType, LineStatus
        from approval_kernel.domain.dtos import LineSlotView

        return LineSlotView(
            line_id=self.id,
            level=self.level,
            sort_order=self.sort_order,
            approval_type=ApprovalType(self.approval_type),
            approver_employee_id=self.approver_employee_id,
            status=LineStatus(self.status),
            is_parallel=self.is_parallel,
            is_required=self.is_required,
            actual_approver_employee_id=self.actual_approver_employee_id,
            approval_date=self.approval_date,
            comment=self.comment,
            delegated_from=self.delegated_from,
            delegated_to=self.delegated_to,
            delegation_reason=self.delegation_reason,
        )


class ApprovalAttachmentModel(Base):
    """Pointer to a file held in external attachment storage."""

    __tablename__ = "approval_attachments"

    __table_args__ = (
        CheckConstraint("file_size >= 0", name="ck_approval_attachments_size"),
        Index("ix_approval_attachments_document", "document_id"),
    )

    document_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("approval_documents.id"), nullable=False,
    )
    original_file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    stored_file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    content_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    file_extension: Mapped[str | None] = mapped_column(String(20), nullable=True)
    uploaded_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(nullable=False)

    document: Mapped["ApprovalDocumentModel"] = relationship(
        "ApprovalDocumentModel", back_populates="attachments",
    )

    def to_dto(self) -> AttachmentInfo:
        from approval_kernel.domain.dtos import AttachmentInfo

        return AttachmentInfo(
            attachment_id=self.id,
            original_file_name=self.original_file_name,
            stored_file_name=self.stored_file_name,
            file_path=self.file_path,
            file_size=self.file_size,
            uploaded_by=self.uploaded_by,
            uploaded_at=self.uploaded_at,
            content_type=self.content_type,
            file_extension=self.file_extension,
        )


# =============================================================================
# Documents are retained permanently
# =============================================================================


@event.listens_for(ApprovalDocumentModel, "before_delete")
def prevent_document_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="ApprovalDocument",
        entity_id=str(target.id),
        reason="Approval documents are retained permanently -- cannot delete",
    )


@event.listens_for(ApprovalLineModel, "before_delete")
def prevent_line_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="ApprovalLine",
        entity_id=str(target.id),
        reason="Approval line slots are retained permanently -- cannot delete",
    )


@event.listens_for(ApprovalAttachmentModel, "before_delete")
def prevent_attachment_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="ApprovalAttachment",
        entity_id=str(target.id),
        reason="Attachment records are retained permanently -- cannot delete",
    )
