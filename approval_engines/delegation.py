"""
approval_engines.delegation -- Pure delegation selection.

Responsibility:
    Given the delegations registered for a nominal approver, pick the one in
    force for a form at an instant, and derive the effective approver.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Only active rows whose window [start, end) contains the instant match.
    - A form-scoped row matches only its form; a null form matches all forms.
    - Tie-break: form-specific first, then most recently created, then
      highest id.  Identical inputs always yield the same answer.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from uuid import UUID

from approval_engines.tracer import traced_engine
from approval_kernel.domain.line import DelegationCandidate

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def delegation_applies(
    candidate: DelegationCandidate,
    nominal_id: UUID,
    form_id: UUID | None,
    on: datetime,
) -> bool:
    if not candidate.is_active or candidate.delegator_id != nominal_id:
        return False
    if candidate.form_id is not None and candidate.form_id != form_id:
        return False
    return candidate.covers(on)


@traced_engine("delegation", "1.0", fingerprint_fields=("nominal_id", "form_id", "on"))
def select_delegation(
    candidates: Iterable[DelegationCandidate],
    *,
    nominal_id: UUID,
    form_id: UUID | None,
    on: datetime,
) -> DelegationCandidate | None:
    """Return the delegation in force for ``nominal_id``, or None."""
    matching = [
        c for c in candidates if delegation_applies(c, nominal_id, form_id, on)
    ]
    if not matching:
        return None
    return max(
        matching,
        key=lambda c: (
            c.form_id is not None,
            c.created_at or _EPOCH,
            str(c.delegation_id),
        ),
    )


def effective_approver(
    candidates: Iterable[DelegationCandidate],
    *,
    nominal_id: UUID,
    form_id: UUID | None,
    on: datetime,
) -> UUID:
    """Return the delegate in force, or the nominal approver unchanged."""
    chosen = select_delegation(
        candidates, nominal_id=nominal_id, form_id=form_id, on=on,
    )
    return chosen.delegate_id if chosen is not None else nominal_id
