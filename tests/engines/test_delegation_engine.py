"""
Tests for the pure delegation selection engine.

Tests cover:
- Half-open [start, end) window boundaries
- Form-specific vs form-agnostic delegations and tie-breaks
- Inactive rows and rows of other delegators are ignored
- Determinism: identical inputs give identical answers regardless of
  candidate order (property-based)
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

from hypothesis import given, settings
from hypothesis import strategies as st

from approval_engines.delegation import (
    delegation_applies,
    effective_approver,
    select_delegation,
)
from approval_kernel.domain.line import DelegationCandidate

T1 = datetime(2024, 9, 10, tzinfo=timezone.utc)
T2 = datetime(2024, 9, 20, tzinfo=timezone.utc)


def make_delegation(
    delegator: UUID,
    delegate: UUID | None = None,
    form_id: UUID | None = None,
    start: datetime = T1,
    end: datetime = T2,
    created_at: datetime | None = None,
    is_active: bool = True,
) -> DelegationCandidate:
    return DelegationCandidate(
        delegation_id=uuid4(),
        delegator_id=delegator,
        delegate_id=delegate or uuid4(),
        start_date=start,
        end_date=end,
        form_id=form_id,
        created_at=created_at,
        is_active=is_active,
    )


class TestDelegationWindow:
    def test_start_is_inclusive(self):
        nominal = uuid4()
        row = make_delegation(nominal)

        assert delegation_applies(row, nominal, None, T1)

    def test_end_is_exclusive(self):
        nominal = uuid4()
        row = make_delegation(nominal)

        assert delegation_applies(row, nominal, None, T2 - timedelta(microseconds=1))
        assert not delegation_applies(row, nominal, None, T2)

    def test_before_start_does_not_apply(self):
        nominal = uuid4()
        row = make_delegation(nominal)

        assert not delegation_applies(row, nominal, None, T1 - timedelta(seconds=1))

    def test_inactive_row_ignored(self):
        nominal = uuid4()
        row = make_delegation(nominal, is_active=False)

        assert not delegation_applies(row, nominal, None, T1)

    def test_other_delegator_ignored(self):
        row = make_delegation(uuid4())

        assert not delegation_applies(row, uuid4(), None, T1)


class TestSelectDelegation:
    def test_no_match_returns_nominal(self):
        nominal = uuid4()

        assert effective_approver([], nominal_id=nominal, form_id=None, on=T1) == nominal

    def test_form_agnostic_delegation_applies_to_every_form(self):
        nominal, delegate = uuid4(), uuid4()
        rows = [make_delegation(nominal, delegate)]

        assert effective_approver(rows, nominal_id=nominal, form_id=uuid4(), on=T1) == delegate

    def test_form_specific_delegation_only_for_its_form(self):
        nominal, delegate, form = uuid4(), uuid4(), uuid4()
        rows = [make_delegation(nominal, delegate, form_id=form)]

        assert effective_approver(rows, nominal_id=nominal, form_id=form, on=T1) == delegate
        assert effective_approver(rows, nominal_id=nominal, form_id=uuid4(), on=T1) == nominal

    def test_form_specific_beats_form_agnostic(self):
        nominal, general, specific, form = uuid4(), uuid4(), uuid4(), uuid4()
        rows = [
            make_delegation(nominal, general, created_at=T2),
            make_delegation(nominal, specific, form_id=form, created_at=T1),
        ]

        assert effective_approver(rows, nominal_id=nominal, form_id=form, on=T1) == specific

    def test_most_recently_created_breaks_tie(self):
        nominal, older, newer = uuid4(), uuid4(), uuid4()
        rows = [
            make_delegation(nominal, newer, created_at=T1 + timedelta(hours=1)),
            make_delegation(nominal, older, created_at=T1),
        ]

        chosen = select_delegation(rows, nominal_id=nominal, form_id=None, on=T1)

        assert chosen.delegate_id == newer


class TestDelegationDeterminism:
    """Resolution is a pure function of (nominal, form, instant)."""

    @settings(max_examples=50, deadline=None)
    @given(
        offsets=st.lists(st.integers(min_value=-5, max_value=15), min_size=1, max_size=6),
        form_flags=st.lists(st.booleans(), min_size=6, max_size=6),
        probe=st.integers(min_value=-3, max_value=20),
        order_seed=st.randoms(use_true_random=False),
    )
    def test_same_inputs_same_answer_in_any_order(self, offsets, form_flags, probe, order_seed):
        nominal, form = uuid4(), uuid4()
        base = datetime(2024, 9, 1, tzinfo=timezone.utc)
        rows = [
            make_delegation(
                nominal,
                form_id=form if form_flags[i] else None,
                start=base + timedelta(days=offset),
                end=base + timedelta(days=offset + 7),
                created_at=base + timedelta(minutes=i),
            )
            for i, offset in enumerate(offsets)
        ]
        on = base + timedelta(days=probe)

        first = effective_approver(rows, nominal_id=nominal, form_id=form, on=on)
        again = effective_approver(rows, nominal_id=nominal, form_id=form, on=on)
        shuffled = list(rows)
        order_seed.shuffle(shuffled)
        reordered = effective_approver(shuffled, nominal_id=nominal, form_id=form, on=on)

        assert first == again == reordered
        if first != nominal:
            assert any(r.delegate_id == first and r.covers(on) for r in rows)
        else:
            assert not any(r.covers(on) for r in rows)
