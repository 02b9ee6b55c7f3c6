"""
approval_services.engine -- ApprovalEngine facade.

Responsibility:
    The external interface of the approval engine.  Each call runs in its
    own transaction (``session_scope``), binds request context for
    structured logging, and returns a tagged ``Ok`` / ``Err`` result
    instead of raising.

Architecture position:
    Services layer -- outermost.  Composes ``ApprovalProcessor``,
    ``QueryViews``, ``CatalogService`` and ``DelegationService``.

Invariants enforced:
    - One transaction per call: a failed mutating call rolls back
      completely, leaving no partial state and no history row.
    - Kernel errors surface as ``Err(kind=<code>)``; unexpected persistence
      errors surface as ``Err(kind="SYSTEM_ERROR")`` with a generic
      message, after being logged with full context.
    - Page sizes are clamped to [1, max_page_size]; pages start at 1.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from approval_config import get_catalog
from approval_config.schema import CatalogDef, EngineConfig
from approval_kernel.db.engine import (
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from approval_kernel.domain.approval import (
    ApprovalDecision,
    AttachmentSpec,
    CallerIdentity,
    CreatedDocument,
    DocumentStatus,
    Priority,
    ProcessingResult,
    RequestProvenance,
)
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.directory import OrganizationDirectory
from approval_kernel.domain.dtos import (
    ApprovalFormInfo,
    DelegationInfo,
    DocumentDetail,
    DocumentPage,
)
from approval_kernel.domain.line import SlotSpec
from approval_kernel.exceptions import ApprovalKernelError, ValidationError
from approval_kernel.logging_config import LogContext, get_logger
from approval_kernel.services.catalog_service import CatalogService
from approval_kernel.services.delegation_service import DelegationService
from approval_services.approval_processor import ApprovalProcessor
from approval_services.bootstrap import seed_catalog
from approval_services.query_views import QueryViews
from approval_services.results import SYSTEM_ERROR, Err, Ok, Result

logger = get_logger("services.engine")

T = TypeVar("T")


class ApprovalEngine:
    """
    Facade over the approval engine.

    Contract:
        Callers supply the authenticated actor on every call; the engine
        trusts it.  Every method returns ``Ok`` or ``Err`` and never raises
        for domain or persistence failures.
    """

    def __init__(
        self,
        directory: OrganizationDirectory,
        config: EngineConfig | None = None,
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
    ):
        self._config = config or EngineConfig()
        self._directory = directory
        self._clock = clock or SystemClock()
        if session_factory is None:
            init_engine_from_url(
                self._config.database_url,
                echo=self._config.echo,
                pool_size=self._config.pool_size,
                max_overflow=self._config.max_overflow,
            )
            session_factory = get_session_factory()
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _processor(self, session: Session) -> ApprovalProcessor:
        return ApprovalProcessor(
            session,
            self._directory,
            self._clock,
            admin_roles=self._config.admin_roles,
            title_max_length=self._config.title_max_length,
            comment_max_length=self._config.comment_max_length,
            reason_max_length=self._config.reason_max_length,
        )

    def _run(
        self,
        action: str,
        work: Callable[[Session], T],
        *,
        actor_id: UUID | None = None,
        document_id: UUID | None = None,
        provenance: RequestProvenance | None = None,
    ) -> Result[T]:
        with LogContext.bind(
            action=action,
            actor_id=actor_id,
            document_id=document_id,
            request_ip=provenance.ip_address if provenance else None,
        ):
            try:
                with session_scope(self._session_factory) as session:
                    return Ok(work(session))
            except ApprovalKernelError as exc:
                logger.warning(
                    "operation_rejected",
                    extra={"error_code": exc.code, "error_message": str(exc)},
                )
                return Err.from_exception(exc)
            except SQLAlchemyError:
                logger.error(
                    "operation_failed",
                    extra={"failed_at": self._clock.now()},
                    exc_info=True,
                )
                return Err(
                    kind=SYSTEM_ERROR,
                    message="The approval store is unavailable; retry the request.",
                    retryable=True,
                )

    def _page(self, page: int, page_size: int | None) -> tuple[int, int]:
        size = self._config.default_page_size if page_size is None else page_size
        size = max(1, min(size, self._config.max_page_size))
        return max(1, page), size

    # ------------------------------------------------------------------
    # Documents
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
    ) -> Result[CreatedDocument]:
        return self._run(
            "create_document",
            lambda s: self._processor(s).create_document(
                form_id,
                title,
                content,
                requester_id,
                explicit_line,
                priority=priority,
                urgent=urgent,
                due_date=due_date,
                amount=amount,
                related_system_type=related_system_type,
                related_system_id=related_system_id,
                attachments=attachments,
                submit=submit,
                provenance=provenance,
            ),
            actor_id=requester_id,
            provenance=provenance,
        )

    def submit(
        self,
        document_id: UUID,
        actor_id: UUID,
        provenance: RequestProvenance | None = None,
    ) -> Result[ProcessingResult]:
        return self._run(
            "submit",
            lambda s: self._processor(s).submit(document_id, actor_id, provenance),
            actor_id=actor_id,
            document_id=document_id,
            provenance=provenance,
        )

    def process_approval(
        self,
        document_id: UUID,
        actor_id: UUID,
        action: str,
        comment: str | None = None,
        provenance: RequestProvenance | None = None,
    ) -> Result[ProcessingResult]:
        """Record APPROVE or REJECT (case-insensitive) on the actor's slot."""
        try:
            decision = ApprovalDecision(str(action).strip().upper())
        except ValueError:
            return Err.from_exception(
                ValidationError("action", f"must be APPROVE or REJECT, got {action!r}")
            )
        if comment is not None and len(comment) > self._config.comment_max_length:
            return Err.from_exception(ValidationError(
                "comment", f"must be at most {self._config.comment_max_length} characters",
            ))

        return self._run(
            decision.value.lower(),
            lambda s: self._processor(s).process(
                document_id, actor_id, decision, comment, provenance,
            ),
            actor_id=actor_id,
            document_id=document_id,
            provenance=provenance,
        )

    def withdraw(
        self,
        document_id: UUID,
        actor_id: UUID,
        reason: str | None = None,
        provenance: RequestProvenance | None = None,
    ) -> Result[ProcessingResult]:
        return self._run(
            "withdraw",
            lambda s: self._processor(s).withdraw(document_id, actor_id, reason, provenance),
            actor_id=actor_id,
            document_id=document_id,
            provenance=provenance,
        )

    def delegate_slot(
        self,
        document_id: UUID,
        line_id: UUID,
        caller: CallerIdentity,
        delegate_id: UUID,
        reason: str | None = None,
        provenance: RequestProvenance | None = None,
    ) -> Result[ProcessingResult]:
        return self._run(
            "delegate",
            lambda s: self._processor(s).delegate_slot(
                document_id, line_id, caller, delegate_id, reason, provenance,
            ),
            actor_id=caller.employee_id,
            document_id=document_id,
            provenance=provenance,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _views(self, session: Session) -> QueryViews:
        return QueryViews(session, self._directory, self._clock)

    def get_document(self, document_id: UUID) -> Result[DocumentDetail]:
        return self._run(
            "get_document",
            lambda s: self._views(s).get_document(document_id),
            document_id=document_id,
        )

    def list_pending_for(
        self,
        approver_id: UUID,
        page: int = 1,
        page_size: int | None = None,
    ) -> Result[DocumentPage]:
        page, size = self._page(page, page_size)
        return self._run(
            "list_pending",
            lambda s: self._views(s).list_pending_for(approver_id, page, size),
            actor_id=approver_id,
        )

    def list_submitted_by(
        self,
        requester_id: UUID,
        status: DocumentStatus | str | None = None,
        year: int | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> Result[DocumentPage]:
        status_filter = None
        if status is not None and status != "":
            try:
                status_filter = DocumentStatus(str(status).strip().upper())
            except ValueError:
                return Err.from_exception(
                    ValidationError("status", f"unknown document status {status!r}")
                )
        page, size = self._page(page, page_size)
        return self._run(
            "list_submitted",
            lambda s: self._views(s).list_submitted_by(
                requester_id, page, size, status=status_filter, year=year,
            ),
            actor_id=requester_id,
        )

    # ------------------------------------------------------------------
    # Catalog and delegations
    # ------------------------------------------------------------------

    def list_forms(self, category: str | None = None) -> Result[list[ApprovalFormInfo]]:
        return self._run(
            "list_forms",
            lambda s: CatalogService(s, self._clock).list_forms(category=category),
        )

    def register_delegation(
        self,
        delegator_id: UUID,
        delegate_id: UUID,
        start_date: datetime,
        end_date: datetime,
        form_id: UUID | None = None,
        reason: str | None = None,
        created_by: UUID | None = None,
    ) -> Result[DelegationInfo]:
        if reason is not None and len(reason) > self._config.reason_max_length:
            return Err.from_exception(ValidationError(
                "reason", f"must be at most {self._config.reason_max_length} characters",
            ))
        return self._run(
            "register_delegation",
            lambda s: DelegationService(s, self._directory, self._clock).register_delegation(
                delegator_id,
                delegate_id,
                start_date,
                end_date,
                form_id=form_id,
                reason=reason,
                created_by=created_by or delegator_id,
            ),
            actor_id=created_by or delegator_id,
        )

    def deactivate_delegation(self, delegation_id: UUID) -> Result[DelegationInfo]:
        return self._run(
            "deactivate_delegation",
            lambda s: DelegationService(
                s, self._directory, self._clock,
            ).deactivate_delegation(delegation_id),
        )

    def list_delegations(self, delegator_id: UUID) -> Result[list[DelegationInfo]]:
        return self._run(
            "list_delegations",
            lambda s: DelegationService(
                s, self._directory, self._clock,
            ).list_delegations(delegator_id),
            actor_id=delegator_id,
        )

    def seed_catalog(self, catalog: CatalogDef | None = None) -> Result[dict[str, UUID]]:
        """Upsert the configured forms and settings (default catalog if omitted)."""
        catalog = catalog or get_catalog()
        return self._run("seed_catalog", lambda s: seed_catalog(s, catalog, self._clock))
