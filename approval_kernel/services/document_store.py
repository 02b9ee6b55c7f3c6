"""
DocumentStore -- the document aggregate's write path.

Responsibility:
    Insert a document together with its pinned approval line, attachments
    and creation history row; load a document under its per-document lock;
    append history rows.

Architecture position:
    Kernel > Services -- imperative shell.  Flushes only; the caller's
    transaction makes "mutate slot + mutate header + append history" one
    atomic unit.

Invariants enforced:
    - Document and line rows are created in the same flush.
    - Requester and requester department are snapshotted at creation.
    - History is append-only with a per-document sequence number.
    - ``load_for_update`` serialises writers of one document
      (SELECT ... FOR UPDATE; BEGIN IMMEDIATE on SQLite).

Failure modes:
    - DocumentNotFoundError for unknown ids.
    - IntegrityError on a duplicate document number.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select

from approval_kernel.domain.approval import (
    ActionType,
    AttachmentSpec,
    DocumentStatus,
    LineStatus,
    Priority,
    RequestProvenance,
)
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.line import RequesterContext, ResolvedLine
from approval_kernel.exceptions import DocumentNotFoundError
from approval_kernel.logging_config import get_logger
from approval_kernel.models.document import (
    ApprovalAttachmentModel,
    ApprovalDocumentModel,
    ApprovalLineModel,
)
from approval_kernel.models.form import ApprovalFormModel
from approval_kernel.models.history import ApprovalHistoryModel
from approval_kernel.services.base import BaseService

logger = get_logger("services.document_store")


class DocumentStore(BaseService):
    """Persistence for the document aggregate."""

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def create(
        self,
        *,
        form: ApprovalFormModel,
        document_no: str,
        requester: RequesterContext,
        title: str,
        content: Any,
        line: ResolvedLine,
        priority: Priority = Priority.NORMAL,
        urgent: bool = False,
        due_date: datetime | None = None,
        related_system_type: str | None = None,
        related_system_id: str | None = None,
        attachments: Sequence[AttachmentSpec] = (),
        provenance: RequestProvenance | None = None,
    ) -> ApprovalDocumentModel:
        """Insert a DRAFT document with its line and a DRAFT history row."""
        now = self._clock.now()
        amount: Decimal | None = requester.amount

        document = ApprovalDocumentModel(
            document_no=document_no,
            form_id=form.id,
            setting_id=line.setting_id,
            title=title,
            content=content,
            requester_id=requester.employee_id,
            requester_dept_id=requester.department_id,
            company_id=requester.company_id,
            amount=amount,
            status=DocumentStatus.DRAFT.value,
            current_level=0,
            total_level=line.total_levels,
            priority=priority.value,
            urgent=urgent,
            due_date=due_date,
            created_at=now,
            related_system_type=related_system_type,
            related_system_id=related_system_id,
        )
        document.form = form
        self.session.add(document)

        for slot in line.slots:
            document.lines.append(ApprovalLineModel(
                level=slot.level,
                sort_order=slot.sort_order,
                approval_type=slot.approval_type.value,
                approver_employee_id=slot.approver_employee_id,
                status=LineStatus.PENDING.value,
                is_parallel=slot.is_parallel,
                is_required=slot.is_required,
            ))

        for spec in attachments:
            document.attachments.append(ApprovalAttachmentModel(
                original_file_name=spec.original_file_name,
                stored_file_name=spec.stored_file_name,
                file_path=spec.file_path,
                file_size=spec.file_size,
                content_type=spec.content_type,
                file_extension=spec.file_extension,
                uploaded_by=requester.employee_id,
                uploaded_at=now,
            ))

        self.session.flush()

        self.append_history(
            document,
            action=ActionType.DRAFT,
            actor_id=requester.employee_id,
            previous_status=None,
            new_status=DocumentStatus.DRAFT,
            provenance=provenance,
        )

        logger.info(
            "document_created",
            extra={
                "document_id": str(document.id),
                "document_no": document_no,
                "form_code": form.form_code,
                "requester_id": str(requester.employee_id),
                "total_level": line.total_levels,
                "slot_count": len(line.slots),
                "attachment_count": len(attachments),
            },
        )
        return document

    def load_for_update(self, document_id: UUID) -> ApprovalDocumentModel:
        """Load a document holding its row lock until the transaction ends."""
        document = self.session.execute(
            select(ApprovalDocumentModel)
            .where(ApprovalDocumentModel.id == document_id)
            .with_for_update(of=ApprovalDocumentModel)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if document is None:
            raise DocumentNotFoundError(str(document_id))
        return document

    def line_slots(self, document: ApprovalDocumentModel) -> list[ApprovalLineModel]:
        """Fresh slot rows of a locked document."""
        return list(self.session.execute(
            select(ApprovalLineModel)
            .where(ApprovalLineModel.document_id == document.id)
            .order_by(ApprovalLineModel.level, ApprovalLineModel.sort_order)
            .execution_options(populate_existing=True)
        ).scalars())

    def append_history(
        self,
        document: ApprovalDocumentModel,
        *,
        action: ActionType,
        actor_id: UUID,
        previous_status: DocumentStatus | None,
        new_status: DocumentStatus,
        line_id: UUID | None = None,
        comment: str | None = None,
        provenance: RequestProvenance | None = None,
    ) -> ApprovalHistoryModel:
        """Append one history row and touch the document's ``updated_at``."""
        last = self.session.execute(
            select(func.max(ApprovalHistoryModel.seq_no))
            .where(ApprovalHistoryModel.document_id == document.id)
        ).scalar()
        now = self._clock.now()

        entry = ApprovalHistoryModel(
            document_id=document.id,
            seq_no=(last or 0) + 1,
            line_id=line_id,
            action_type=action.value,
            action_by=actor_id,
            action_at=now,
            previous_status=previous_status.value if previous_status else None,
            new_status=new_status.value,
            comment=comment,
            ip_address=provenance.ip_address if provenance else None,
            user_agent=provenance.user_agent if provenance else None,
            additional_data=provenance.additional_data if provenance else None,
        )
        self.session.add(entry)
        document.updated_at = now
        self.session.flush()
        return entry
