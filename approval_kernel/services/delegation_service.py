"""
DelegationService -- registry of time-bounded approval delegations.

Responsibility:
    Register, deactivate and list delegations, and load the candidate rows
    the delegation engine chooses among.

Architecture position:
    Kernel > Services -- imperative shell.  Flushes only.  Selecting the
    delegation in force is pure and lives in ``approval_engines.delegation``.

Invariants enforced:
    - end > start; delegator != delegate; the delegate is an active
      employee in the organization directory.
    - Overlapping windows are allowed (no uniqueness constraint).
    - Rows are never deleted; deactivation flips ``is_active``.

Failure modes:
    - InvalidDelegationError for a bad window or target.
    - DelegationNotFoundError for unknown ids.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.directory import OrganizationDirectory
from approval_kernel.domain.dtos import DelegationInfo
from approval_kernel.domain.line import DelegationCandidate
from approval_kernel.exceptions import (
    DelegationNotFoundError,
    FormNotFoundError,
    InvalidDelegationError,
)
from approval_kernel.logging_config import get_logger
from approval_kernel.models.delegation import ApprovalDelegationModel
from approval_kernel.models.form import ApprovalFormModel
from approval_kernel.services.base import BaseService

logger = get_logger("services.delegation")


class DelegationService(BaseService):
    """Delegation registry."""

    def __init__(
        self,
        session,
        directory: OrganizationDirectory,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._directory = directory
        self._clock = clock or SystemClock()

    def register_delegation(
        self,
        delegator_id: UUID,
        delegate_id: UUID,
        start_date: datetime,
        end_date: datetime,
        form_id: UUID | None = None,
        reason: str | None = None,
        created_by: UUID | None = None,
    ) -> DelegationInfo:
        if end_date <= start_date:
            raise InvalidDelegationError("end date must be after start date")
        if delegator_id == delegate_id:
            raise InvalidDelegationError("cannot delegate to oneself")

        delegate = self._directory.get_employee(delegate_id)
        if delegate is None or not delegate.is_active:
            raise InvalidDelegationError(f"delegate {delegate_id} is not an active employee")
        if form_id is not None and self.session.get(ApprovalFormModel, form_id) is None:
            raise FormNotFoundError(str(form_id))

        model = ApprovalDelegationModel(
            delegator_id=delegator_id,
            delegate_id=delegate_id,
            form_id=form_id,
            start_date=start_date,
            end_date=end_date,
            reason=reason,
            is_active=True,
            created_at=self._clock.now(),
            created_by=created_by,
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "delegation_registered",
            extra={
                "delegation_id": str(model.id),
                "delegator_id": str(delegator_id),
                "delegate_id": str(delegate_id),
                "form_id": str(form_id) if form_id else None,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
            },
        )
        return model.to_dto()

    def deactivate_delegation(self, delegation_id: UUID) -> DelegationInfo:
        model = self.session.get(ApprovalDelegationModel, delegation_id)
        if model is None:
            raise DelegationNotFoundError(str(delegation_id))
        model.is_active = False
        self.session.flush()
        logger.info("delegation_deactivated", extra={"delegation_id": str(delegation_id)})
        return model.to_dto()

    def list_delegations(
        self,
        delegator_id: UUID,
        active_only: bool = True,
    ) -> list[DelegationInfo]:
        stmt = select(ApprovalDelegationModel).where(
            ApprovalDelegationModel.delegator_id == delegator_id,
        )
        if active_only:
            stmt = stmt.where(ApprovalDelegationModel.is_active.is_(True))
        stmt = stmt.order_by(ApprovalDelegationModel.start_date)
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def candidates_for(self, delegator_ids: Iterable[UUID]) -> tuple[DelegationCandidate, ...]:
        """Active delegations granted by any of ``delegator_ids``."""
        ids = list(set(delegator_ids))
        if not ids:
            return ()
        stmt = select(ApprovalDelegationModel).where(
            ApprovalDelegationModel.delegator_id.in_(ids),
            ApprovalDelegationModel.is_active.is_(True),
        )
        return tuple(m.to_candidate() for m in self.session.execute(stmt).scalars())

    def delegators_of(self, delegate_id: UUID, on: datetime) -> tuple[UUID, ...]:
        """Delegators with an active window naming ``delegate_id`` at ``on``."""
        stmt = select(ApprovalDelegationModel.delegator_id).where(
            ApprovalDelegationModel.delegate_id == delegate_id,
            ApprovalDelegationModel.is_active.is_(True),
            ApprovalDelegationModel.start_date <= on,
            ApprovalDelegationModel.end_date > on,
        )
        return tuple(set(self.session.execute(stmt).scalars()))
