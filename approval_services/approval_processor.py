"""
approval_services.approval_processor -- Document lifecycle state machine.

Responsibility:
    Create documents and apply SUBMIT / APPROVE / REJECT / WITHDRAW /
    DELEGATE actions: validate the actor against the locked document
    snapshot, mutate header and slot, append exactly one history row.

Architecture position:
    Services layer.  Thin coordinator: eligibility and level progression
    are pure functions in ``approval_engines.progression``; effective
    approvers come from ``DelegationResolver``; persistence goes through
    ``DocumentStore``.  Never commits -- the facade owns the transaction.

Invariants enforced:
    - Every applied action appends exactly one history row whose
      previous/new status match the document before/after the action.
    - Failed actions raise before any write, so they leave no history.
    - current_level never decreases.
    - A single REJECT of a required slot terminates the document.
    - Only the requester submits or withdraws; terminal documents accept
      no further action.

Failure modes:
    - ValidationError, FormNotFoundError, FormInactiveError and the
      LineResolutionError family on creation.
    - DocumentNotFoundError, DocumentNotActionableError, NotYourTurnError,
      AlreadyProcessedError, ActorNotPermittedError, LineNotFoundError,
      InvalidDelegationError on actions.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from approval_engines.progression import (
    SlotState,
    evaluate_decision,
    find_actionable_slot,
    find_processed_slot,
)
from approval_kernel.domain.approval import (
    ACTIVE_DOCUMENT_STATUSES,
    ActionType,
    ApprovalDecision,
    ApprovalType,
    AttachmentSpec,
    CallerIdentity,
    CreatedDocument,
    DocumentStatus,
    LineStatus,
    Priority,
    ProcessingResult,
    RequestProvenance,
    TERMINAL_DOCUMENT_STATUSES,
    assert_level_progress,
    is_valid_transition,
)
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.directory import OrganizationDirectory
from approval_kernel.domain.line import RequesterContext, SlotSpec
from approval_kernel.exceptions import (
    ActorNotPermittedError,
    AlreadyProcessedError,
    DocumentNotActionableError,
    EmptyApprovalLineError,
    FormInactiveError,
    InvalidDelegationError,
    LineNotFoundError,
    NotYourTurnError,
    ValidationError,
)
from approval_kernel.logging_config import get_logger
from approval_kernel.models.document import ApprovalDocumentModel, ApprovalLineModel
from approval_kernel.services.catalog_service import CatalogService
from approval_kernel.services.delegation_service import DelegationService
from approval_kernel.services.document_store import DocumentStore
from approval_kernel.services.sequence_service import SequenceService
from approval_services.delegation_resolver import DelegationResolver
from approval_services.line_resolver import LineResolver
from approval_services.numbering import NumberingService

logger = get_logger("services.approval_processor")


def _slot_state(row: ApprovalLineModel) -> SlotState:
    return SlotState(
        line_id=row.id,
        level=row.level,
        sort_order=row.sort_order,
        approver_employee_id=row.approver_employee_id,
        approval_type=ApprovalType(row.approval_type),
        is_required=row.is_required,
        status=LineStatus(row.status),
        actual_approver_employee_id=row.actual_approver_employee_id,
        delegated_to=row.delegated_to,
    )


def _check_length(field: str, value: str | None, limit: int) -> None:
    if value is not None and len(value) > limit:
        raise ValidationError(field, f"must be at most {limit} characters")


class ApprovalProcessor:
    """Applies lifecycle actions to documents inside the caller's transaction."""

    def __init__(
        self,
        session: Session,
        directory: OrganizationDirectory,
        clock: Clock | None = None,
        admin_roles: Sequence[str] = ("ADMIN",),
        title_max_length: int = 200,
        comment_max_length: int = 1000,
        reason_max_length: int = 500,
    ):
        self._clock = clock or SystemClock()
        self._directory = directory
        self._admin_roles = frozenset(admin_roles)
        self._title_max_length = title_max_length
        self._comment_max_length = comment_max_length
        self._reason_max_length = reason_max_length

        self._store = DocumentStore(session, self._clock)
        self._catalog = CatalogService(session, self._clock)
        self._resolver = DelegationResolver(
            DelegationService(session, directory, self._clock), self._clock,
        )
        self._lines = LineResolver(self._catalog, directory)
        self._numbering = NumberingService(SequenceService(session))

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_document(
        self,
        form_id: UUID,
        title: str,
        content: Any,
        requester_id: UUID,
        explicit_line: Sequence[SlotSpec] | None = None,
        *,
        priority: Priority | str = Priority.NORMAL,
        urgent: bool = False,
        due_date: datetime | None = None,
        amount: Decimal | None = None,
        related_system_type: str | None = None,
        related_system_id: str | None = None,
        attachments: Sequence[AttachmentSpec] = (),
        submit: bool = True,
        provenance: RequestProvenance | None = None,
    ) -> CreatedDocument:
        """Create a document with its pinned line; submit it unless told not to."""
        if title is None or not title.strip():
            raise ValidationError("title", "must not be empty")
        _check_length("title", title, self._title_max_length)
        if content is None:
            raise ValidationError("content", "is required")
        try:
            priority = Priority(priority)
        except ValueError:
            raise ValidationError("priority", f"unknown priority {priority!r}") from None
        if amount is not None and amount < 0:
            raise ValidationError("amount", "must not be negative")
        for spec in attachments:
            if spec.file_size < 0:
                raise ValidationError("attachments", "file size must not be negative")

        requester = self._directory.get_employee(requester_id)
        if requester is None or not requester.is_active:
            raise ValidationError("requester_id", f"{requester_id} is not an active employee")

        form = self._catalog.form_model(form_id)
        if not form.is_active:
            raise FormInactiveError(form.form_code)

        context = RequesterContext(
            employee_id=requester.employee_id,
            department_id=requester.department_id,
            company_id=requester.company_id,
            amount=amount,
        )
        line = self._lines.resolve(form, context, explicit_line)

        document_no = self._numbering.allocate(form.form_code, self._clock.now())
        document = self._store.create(
            form=form,
            document_no=document_no,
            requester=context,
            title=title.strip(),
            content=content,
            line=line,
            priority=priority,
            urgent=urgent,
            due_date=due_date,
            related_system_type=related_system_type,
            related_system_id=related_system_id,
            attachments=attachments,
            provenance=provenance,
        )

        if submit:
            self._submit(document, requester_id, provenance)

        return CreatedDocument(
            document_id=document.id,
            document_no=document.document_no,
            status=DocumentStatus(document.status),
            total_level=document.total_level,
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def submit(
        self,
        document_id: UUID,
        actor_id: UUID,
        provenance: RequestProvenance | None = None,
    ) -> ProcessingResult:
        document = self._store.load_for_update(document_id)
        return self._submit(document, actor_id, provenance)

    def _submit(
        self,
        document: ApprovalDocumentModel,
        actor_id: UUID,
        provenance: RequestProvenance | None,
    ) -> ProcessingResult:
        if actor_id != document.requester_id:
            raise ActorNotPermittedError(
                str(document.id), str(actor_id), "submit", "requester",
            )
        previous = DocumentStatus(document.status)
        if previous != DocumentStatus.DRAFT:
            raise DocumentNotActionableError(str(document.id), previous.value, "submit")

        slots = [_slot_state(r) for r in self._store.line_slots(document)]
        if not any(s.blocks for s in slots):
            raise EmptyApprovalLineError(document.form.form_code)

        now = self._clock.now()
        document.status = DocumentStatus.PENDING.value
        document.total_level = max(s.level for s in slots)
        document.current_level = 1
        document.submitted_at = now

        entry = self._store.append_history(
            document,
            action=ActionType.SUBMIT,
            actor_id=actor_id,
            previous_status=previous,
            new_status=DocumentStatus.PENDING,
            provenance=provenance,
        )
        logger.info(
            "document_submitted",
            extra={
                "document_id": str(document.id),
                "document_no": document.document_no,
                "total_level": document.total_level,
            },
        )
        return self._result(document, ActionType.SUBMIT, previous, entry_id=entry.id)

    def process(
        self,
        document_id: UUID,
        actor_id: UUID,
        decision: ApprovalDecision,
        comment: str | None = None,
        provenance: RequestProvenance | None = None,
    ) -> ProcessingResult:
        """Record an APPROVE or REJECT decision by ``actor_id``."""
        _check_length("comment", comment, self._comment_max_length)
        action = ActionType(decision.value)

        document = self._store.load_for_update(document_id)
        previous = DocumentStatus(document.status)
        if previous not in ACTIVE_DOCUMENT_STATUSES:
            raise DocumentNotActionableError(
                str(document.id), previous.value, action.value.lower(),
            )

        rows = self._store.line_slots(document)
        slots = [_slot_state(r) for r in rows]
        level = document.current_level
        now = self._clock.now()

        nominals = {
            s.approver_employee_id
            for s in slots
            if s.level == level and s.status == LineStatus.PENDING
        }
        effective = self._resolver.effective_map(nominals, document.form_id, now)

        slot = find_actionable_slot(
            slots, level=level, actor_id=actor_id, effective=effective,
        )
        if slot is None:
            processed = find_processed_slot(slots, level=level, actor_id=actor_id)
            if processed is not None:
                raise AlreadyProcessedError(
                    str(document.id), str(actor_id), processed.status.value,
                )
            raise NotYourTurnError(str(document.id), str(actor_id), level)

        new_slot_status = (
            LineStatus.APPROVED
            if decision == ApprovalDecision.APPROVE
            else LineStatus.REJECTED
        )
        row = next(r for r in rows if r.id == slot.line_id)
        row.status = new_slot_status.value
        row.actual_approver_employee_id = actor_id
        row.approval_date = now
        row.comment = comment

        updated = [
            replace(s, status=new_slot_status) if s.line_id == slot.line_id else s
            for s in slots
        ]
        outcome = evaluate_decision(
            updated,
            decision=decision,
            current_level=level,
            total_level=document.total_level,
        )
        assert_level_progress(level, outcome.new_level)
        self._transition(document, outcome.new_status, action)

        document.current_level = outcome.new_level
        if outcome.is_final:
            document.processed_at = now

        entry = self._store.append_history(
            document,
            action=action,
            actor_id=actor_id,
            previous_status=previous,
            new_status=outcome.new_status,
            line_id=row.id,
            comment=comment,
            provenance=provenance,
        )
        logger.info(
            "approval_recorded",
            extra={
                "document_id": str(document.id),
                "line_id": str(row.id),
                "decision": decision.value,
                "level": level,
                "new_level": outcome.new_level,
                "previous_status": previous.value,
                "new_status": outcome.new_status.value,
                "nominal_approver_id": str(row.approver_employee_id),
                "delegated": row.approver_employee_id != actor_id,
            },
        )
        return self._result(
            document, action, previous, line_id=row.id, entry_id=entry.id,
        )

    def withdraw(
        self,
        document_id: UUID,
        actor_id: UUID,
        reason: str | None = None,
        provenance: RequestProvenance | None = None,
    ) -> ProcessingResult:
        _check_length("reason", reason, self._reason_max_length)

        document = self._store.load_for_update(document_id)
        if actor_id != document.requester_id:
            raise ActorNotPermittedError(
                str(document.id), str(actor_id), "withdraw", "requester",
            )
        previous = DocumentStatus(document.status)
        if previous in TERMINAL_DOCUMENT_STATUSES:
            raise DocumentNotActionableError(str(document.id), previous.value, "withdraw")

        self._transition(document, DocumentStatus.WITHDRAWN, ActionType.WITHDRAW)
        document.withdrawn_at = self._clock.now()
        document.withdrawn_by = actor_id
        document.withdraw_reason = reason

        entry = self._store.append_history(
            document,
            action=ActionType.WITHDRAW,
            actor_id=actor_id,
            previous_status=previous,
            new_status=DocumentStatus.WITHDRAWN,
            comment=reason,
            provenance=provenance,
        )
        logger.info(
            "document_withdrawn",
            extra={"document_id": str(document.id), "previous_status": previous.value},
        )
        return self._result(document, ActionType.WITHDRAW, previous, entry_id=entry.id)

    def delegate_slot(
        self,
        document_id: UUID,
        line_id: UUID,
        caller: CallerIdentity,
        delegate_id: UUID,
        reason: str | None = None,
        provenance: RequestProvenance | None = None,
    ) -> ProcessingResult:
        """Administratively hand a PENDING slot to another employee.

        Allowed for the slot's nominal approver or a caller holding an
        administrator role.
        """
        _check_length("reason", reason, self._reason_max_length)

        document = self._store.load_for_update(document_id)
        status = DocumentStatus(document.status)
        if status not in ACTIVE_DOCUMENT_STATUSES:
            raise DocumentNotActionableError(str(document.id), status.value, "delegate")

        rows = self._store.line_slots(document)
        row = next((r for r in rows if r.id == line_id), None)
        if row is None:
            raise LineNotFoundError(str(document.id), str(line_id))

        if (
            caller.employee_id != row.approver_employee_id
            and caller.role not in self._admin_roles
        ):
            raise ActorNotPermittedError(
                str(document.id), str(caller.employee_id), "delegate",
                "slot approver or an administrator",
            )
        if row.status != LineStatus.PENDING.value:
            raise AlreadyProcessedError(str(document.id), str(caller.employee_id), row.status)
        if not _slot_state(row).blocks:
            raise ValidationError("line_id", "only required approval slots can be delegated")
        if delegate_id == row.approver_employee_id:
            raise InvalidDelegationError("cannot delegate a slot to its own approver")
        delegate = self._directory.get_employee(delegate_id)
        if delegate is None or not delegate.is_active:
            raise InvalidDelegationError(f"delegate {delegate_id} is not an active employee")

        row.status = LineStatus.DELEGATED.value
        row.delegated_from = row.approver_employee_id
        row.delegated_to = delegate_id
        row.delegation_reason = reason
        row.delegated_at = self._clock.now()
        row.actual_approver_employee_id = delegate_id

        entry = self._store.append_history(
            document,
            action=ActionType.DELEGATE,
            actor_id=caller.employee_id,
            previous_status=status,
            new_status=status,
            line_id=row.id,
            comment=reason,
            provenance=provenance,
        )
        logger.info(
            "slot_delegated",
            extra={
                "document_id": str(document.id),
                "line_id": str(row.id),
                "delegated_from": str(row.delegated_from),
                "delegated_to": str(delegate_id),
                "level": row.level,
            },
        )
        return self._result(
            document, ActionType.DELEGATE, status, line_id=row.id, entry_id=entry.id,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _transition(
        document: ApprovalDocumentModel,
        new_status: DocumentStatus,
        action: ActionType,
    ) -> None:
        current = DocumentStatus(document.status)
        if not is_valid_transition(current, new_status):
            raise DocumentNotActionableError(
                str(document.id), current.value, action.value.lower(),
            )
        document.status = new_status.value

    @staticmethod
    def _result(
        document: ApprovalDocumentModel,
        action: ActionType,
        previous: DocumentStatus,
        line_id: UUID | None = None,
        entry_id: UUID | None = None,
    ) -> ProcessingResult:
        return ProcessingResult(
            document_id=document.id,
            action=action,
            previous_status=previous,
            new_status=DocumentStatus(document.status),
            current_level=document.current_level,
            total_level=document.total_level,
            line_id=line_id,
            history_id=entry_id,
        )
