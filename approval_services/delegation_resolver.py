"""
approval_services.delegation_resolver -- Effective approver lookup.

Responsibility:
    Answer "who may act for this nominal approver on this form right now".
    Loads delegation rows through ``DelegationService`` and hands them to
    the pure ``approval_engines.delegation`` selection.

Invariants enforced:
    - Evaluated fresh on every call; nothing is cached across actions.
    - Identical (nominal, form, instant) inputs over the same rows always
      give the same answer.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from approval_engines.delegation import effective_approver
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.services.delegation_service import DelegationService


class DelegationResolver:
    """Maps nominal approvers to effective approvers."""

    def __init__(self, delegations: DelegationService, clock: Clock | None = None):
        self._delegations = delegations
        self._clock = clock or SystemClock()

    def effective_approver(
        self,
        nominal_id: UUID,
        form_id: UUID | None,
        on: datetime | None = None,
    ) -> UUID:
        return effective_approver(
            self._delegations.candidates_for([nominal_id]),
            nominal_id=nominal_id,
            form_id=form_id,
            on=on or self._clock.now(),
        )

    def effective_map(
        self,
        nominal_ids: Iterable[UUID],
        form_id: UUID | None,
        on: datetime,
    ) -> dict[UUID, UUID]:
        """Effective approver for each nominal approver, in one query."""
        nominal_ids = set(nominal_ids)
        candidates = self._delegations.candidates_for(nominal_ids)
        return {
            nominal: effective_approver(
                candidates, nominal_id=nominal, form_id=form_id, on=on,
            )
            for nominal in nominal_ids
        }
