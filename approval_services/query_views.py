"""
approval_services.query_views -- Read-only document projections.

Responsibility:
    Document detail, "pending for me" and "submitted by me", with display
    names joined in from the organization directory.

Architecture position:
    Services layer.  Reads through ``DocumentSelector``; decides delegation
    routing for the pending view with the pure delegation engine.  No
    mutation.

Invariants enforced:
    - A document appears in an approver's pending list exactly when that
      approver could APPROVE it right now: same eligibility rule as the
      processor (effective approver of an open, required, non-REFERENCE
      slot at the current level).
    - Each document is listed once even when the caller holds several
      slots on it.
"""

from __future__ import annotations

from dataclasses import replace
from uuid import UUID

from sqlalchemy.orm import Session

from approval_engines.delegation import effective_approver
from approval_kernel.domain.approval import DocumentStatus, LineStatus
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.directory import OrganizationDirectory
from approval_kernel.domain.dtos import DocumentDetail, DocumentPage, DocumentSummary
from approval_kernel.selectors.document_selector import DocumentSelector
from approval_kernel.services.delegation_service import DelegationService


class QueryViews:
    """Read projections over the document store."""

    def __init__(
        self,
        session: Session,
        directory: OrganizationDirectory,
        clock: Clock | None = None,
    ):
        self._selector = DocumentSelector(session)
        self._delegations = DelegationService(session, directory, clock)
        self._directory = directory
        self._clock = clock or SystemClock()

    def _name(self, employee_id: UUID | None) -> str | None:
        if employee_id is None:
            return None
        employee = self._directory.get_employee(employee_id)
        return employee.display_name if employee else None

    def get_document(self, document_id: UUID) -> DocumentDetail:
        detail = self._selector.get_detail(document_id)

        requester = self._directory.get_employee(detail.header.requester_id)
        header = replace(
            detail.header,
            requester_name=requester.display_name if requester else None,
            requester_department=requester.department_name if requester else None,
        )
        line = tuple(
            replace(
                slot,
                approver_name=self._name(slot.approver_employee_id),
                actual_approver_name=self._name(slot.actual_approver_employee_id),
            )
            for slot in detail.line
        )
        history = tuple(
            replace(entry, action_by_name=self._name(entry.action_by))
            for entry in detail.history
        )
        return DocumentDetail(
            header=header, line=line, history=history, attachments=detail.attachments,
        )

    def list_pending_for(
        self,
        approver_id: UUID,
        page: int,
        page_size: int,
    ) -> DocumentPage:
        now = self._clock.now()
        delegators = set(self._delegations.delegators_of(approver_id, now))
        candidates = self._selector.pending_slots(delegators | {approver_id}, approver_id)
        delegation_rows = self._delegations.candidates_for(
            {c.slot.approver_employee_id for c in candidates}
        )

        mine: dict[UUID, DocumentSummary] = {}
        for candidate in candidates:
            slot = candidate.slot
            if candidate.document.document_id in mine:
                continue
            if slot.status == LineStatus.DELEGATED:
                actor = slot.delegated_to
            else:
                actor = effective_approver(
                    delegation_rows,
                    nominal_id=slot.approver_employee_id,
                    form_id=candidate.form_id,
                    on=now,
                )
            if actor == approver_id:
                mine[candidate.document.document_id] = replace(
                    candidate.document, my_line_id=slot.line_id, my_level=slot.level,
                )

        ordered = list(mine.values())
        start = (page - 1) * page_size
        return DocumentPage(
            documents=self._with_names(ordered[start:start + page_size]),
            total_count=len(ordered),
            page=page,
            page_size=page_size,
        )

    def list_submitted_by(
        self,
        requester_id: UUID,
        page: int,
        page_size: int,
        status: DocumentStatus | None = None,
        year: int | None = None,
    ) -> DocumentPage:
        documents, total = self._selector.list_submitted_by(
            requester_id,
            status=status,
            year=year,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
        return DocumentPage(
            documents=self._with_names(list(documents)),
            total_count=total,
            page=page,
            page_size=page_size,
        )

    def _with_names(self, documents: list[DocumentSummary]) -> tuple[DocumentSummary, ...]:
        approvers = self._selector.open_approvers([d.document_id for d in documents])
        return tuple(
            replace(
                d,
                requester_name=self._name(d.requester_id),
                current_approver_names=tuple(
                    name
                    for name in (self._name(e) for e in approvers.get(d.document_id, ()))
                    if name
                ),
            )
            for d in documents
        )
