"""
Module: approval_kernel.selectors.document_selector
Responsibility: Read-only queries over the document aggregate: full detail,
    documents submitted by a requester, and candidate slots awaiting an
    approver.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Each call reads within the caller's transaction, so one document's
      header, line and history come from one snapshot.
    - Pending candidates are restricted in SQL to open, required,
      non-REFERENCE slots at the document's current level; whether a
      delegation currently routes a slot to the caller is decided by the
      delegation engine on top of these rows.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import and_, false, func, or_, select

from approval_kernel.domain.approval import (
    ACTIVE_DOCUMENT_STATUSES,
    ApprovalType,
    DocumentStatus,
    LineStatus,
    Priority,
)
from approval_kernel.domain.dtos import DocumentDetail, DocumentSummary, LineSlotView
from approval_kernel.exceptions import DocumentNotFoundError
from approval_kernel.models.document import ApprovalDocumentModel, ApprovalLineModel
from approval_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class PendingSlot:
    """An open slot at its document's current level."""

    document: DocumentSummary
    form_id: UUID
    slot: LineSlotView


def _summary(document: ApprovalDocumentModel) -> DocumentSummary:
    return DocumentSummary(
        document_id=document.id,
        document_no=document.document_no,
        title=document.title,
        form_code=document.form.form_code,
        form_name=document.form.form_name,
        status=DocumentStatus(document.status),
        current_level=document.current_level,
        total_level=document.total_level,
        requester_id=document.requester_id,
        created_at=document.created_at,
        priority=Priority(document.priority),
        urgent=document.urgent,
        processed_at=document.processed_at,
    )


class DocumentSelector(BaseSelector):
    """Queries over documents, lines and history."""

    def get_detail(self, document_id: UUID) -> DocumentDetail:
        document = self.session.get(ApprovalDocumentModel, document_id)
        if document is None:
            raise DocumentNotFoundError(str(document_id))
        return DocumentDetail(
            header=document.to_dto(),
            line=tuple(s.to_dto() for s in document.lines),
            history=tuple(h.to_dto() for h in document.history),
            attachments=tuple(a.to_dto() for a in document.attachments),
        )

    def list_submitted_by(
        self,
        requester_id: UUID,
        *,
        status: DocumentStatus | None = None,
        year: int | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[tuple[DocumentSummary, ...], int]:
        """One page of the requester's documents, newest first, plus the total."""
        conditions = [ApprovalDocumentModel.requester_id == requester_id]
        if status is not None:
            conditions.append(ApprovalDocumentModel.status == status.value)
        if year is not None:
            conditions.append(
                ApprovalDocumentModel.created_at >= datetime(year, 1, 1, tzinfo=timezone.utc)
            )
            conditions.append(
                ApprovalDocumentModel.created_at < datetime(year + 1, 1, 1, tzinfo=timezone.utc)
            )

        total = self.session.execute(
            select(func.count()).select_from(ApprovalDocumentModel).where(*conditions)
        ).scalar_one()

        rows = self.session.execute(
            select(ApprovalDocumentModel)
            .where(*conditions)
            .order_by(
                ApprovalDocumentModel.created_at.desc(),
                ApprovalDocumentModel.document_no.desc(),
            )
            .offset(offset)
            .limit(limit)
        ).scalars()
        return tuple(_summary(d) for d in rows), total

    def pending_slots(
        self,
        approver_ids: set[UUID],
        delegate_id: UUID,
    ) -> list[PendingSlot]:
        """Open slots whose nominal approver is in ``approver_ids`` or that
        were administratively delegated to ``delegate_id``.

        Ordered urgent first, then oldest document first.
        """
        slot_filter = [
            ApprovalLineModel.status == LineStatus.DELEGATED.value,
            ApprovalLineModel.delegated_to == delegate_id,
        ]
        pending_filter = ApprovalLineModel.status == LineStatus.PENDING.value
        if approver_ids:
            pending_filter = and_(
                pending_filter,
                ApprovalLineModel.approver_employee_id.in_(list(approver_ids)),
            )
        else:
            pending_filter = false()

        stmt = (
            select(ApprovalLineModel, ApprovalDocumentModel)
            .join(
                ApprovalDocumentModel,
                ApprovalDocumentModel.id == ApprovalLineModel.document_id,
            )
            .where(
                ApprovalDocumentModel.status.in_(
                    [s.value for s in ACTIVE_DOCUMENT_STATUSES]
                ),
                ApprovalLineModel.level == ApprovalDocumentModel.current_level,
                ApprovalLineModel.is_required.is_(True),
                ApprovalLineModel.approval_type != ApprovalType.REFERENCE.value,
                or_(pending_filter, and_(*slot_filter)),
            )
            .order_by(
                ApprovalDocumentModel.urgent.desc(),
                ApprovalDocumentModel.created_at,
                ApprovalDocumentModel.document_no,
                ApprovalLineModel.sort_order,
            )
        )
        return [
            PendingSlot(document=_summary(doc), form_id=doc.form_id, slot=line.to_dto())
            for line, doc in self.session.execute(stmt).all()
        ]

    def open_approvers(self, document_ids: list[UUID]) -> dict[UUID, list[UUID]]:
        """Employees holding open blocking slots at each document's current level."""
        if not document_ids:
            return {}
        stmt = (
            select(
                ApprovalLineModel.document_id,
                ApprovalLineModel.approver_employee_id,
                ApprovalLineModel.delegated_to,
            )
            .join(
                ApprovalDocumentModel,
                ApprovalDocumentModel.id == ApprovalLineModel.document_id,
            )
            .where(
                ApprovalLineModel.document_id.in_(document_ids),
                ApprovalLineModel.level == ApprovalDocumentModel.current_level,
                ApprovalLineModel.status.in_(
                    [LineStatus.PENDING.value, LineStatus.DELEGATED.value]
                ),
                ApprovalLineModel.is_required.is_(True),
                ApprovalLineModel.approval_type != ApprovalType.REFERENCE.value,
            )
            .order_by(ApprovalLineModel.sort_order)
        )
        result: dict[UUID, list[UUID]] = defaultdict(list)
        for document_id, approver, delegated_to in self.session.execute(stmt).all():
            result[document_id].append(delegated_to or approver)
        return dict(result)
