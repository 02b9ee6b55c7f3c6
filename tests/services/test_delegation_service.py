"""
Tests for DelegationService and DelegationResolver.

Covers:
- register_delegation(): window validation, self-delegation, inactive
  delegate, unknown form
- deactivate_delegation() / list_delegations()
- delegators_of(): half-open window
- DelegationResolver: effective approver, form-specific precedence,
  fresh evaluation after deactivation
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from approval_kernel.exceptions import (
    DelegationNotFoundError,
    FormNotFoundError,
    InvalidDelegationError,
)
from approval_services.delegation_resolver import DelegationResolver


@pytest.fixture
def resolver(delegation_service, deterministic_clock):
    return DelegationResolver(delegation_service, deterministic_clock)


class TestRegisterDelegation:
    def test_register(self, delegation_service, org, delegation_window):
        start, end = delegation_window

        info = delegation_service.register_delegation(
            org.manager, org.deputy, start, end, reason="vacation",
        )

        assert info.delegator_id == org.manager
        assert info.delegate_id == org.deputy
        assert info.start_date == start
        assert info.is_active
        assert delegation_service.list_delegations(org.manager) == [info]

    def test_end_must_follow_start(self, delegation_service, org, delegation_window):
        start, _ = delegation_window

        with pytest.raises(InvalidDelegationError):
            delegation_service.register_delegation(org.manager, org.deputy, start, start)

    def test_self_delegation_rejected(self, delegation_service, org, delegation_window):
        with pytest.raises(InvalidDelegationError):
            delegation_service.register_delegation(org.manager, org.manager, *delegation_window)

    def test_inactive_delegate_rejected(self, delegation_service, org, delegation_window):
        with pytest.raises(InvalidDelegationError):
            delegation_service.register_delegation(org.manager, org.departed, *delegation_window)

    def test_unknown_delegate_rejected(self, delegation_service, org, delegation_window):
        with pytest.raises(InvalidDelegationError):
            delegation_service.register_delegation(org.manager, uuid4(), *delegation_window)

    def test_unknown_form_rejected(self, delegation_service, org, delegation_window):
        start, end = delegation_window

        with pytest.raises(FormNotFoundError):
            delegation_service.register_delegation(
                org.manager, org.deputy, start, end, form_id=uuid4(),
            )

    def test_deactivate(self, delegation_service, org, delegation_window):
        info = delegation_service.register_delegation(org.manager, org.deputy, *delegation_window)

        deactivated = delegation_service.deactivate_delegation(info.delegation_id)

        assert not deactivated.is_active
        assert delegation_service.list_delegations(org.manager) == []
        assert len(delegation_service.list_delegations(org.manager, active_only=False)) == 1

    def test_deactivate_unknown(self, delegation_service):
        with pytest.raises(DelegationNotFoundError):
            delegation_service.deactivate_delegation(uuid4())


class TestDelegatorsOf:
    def test_window_is_half_open(self, delegation_service, org, delegation_window):
        start, end = delegation_window
        delegation_service.register_delegation(org.manager, org.deputy, start, end)

        assert delegation_service.delegators_of(org.deputy, start) == (org.manager,)
        assert delegation_service.delegators_of(org.deputy, end - timedelta(seconds=1)) == (org.manager,)
        assert delegation_service.delegators_of(org.deputy, end) == ()
        assert delegation_service.delegators_of(org.deputy, start - timedelta(seconds=1)) == ()


class TestDelegationResolver:
    def test_no_delegation_returns_nominal(self, resolver, org):
        assert resolver.effective_approver(org.manager, None) == org.manager

    def test_active_delegation_returns_delegate(self, resolver, delegation_service, org, delegation_window):
        delegation_service.register_delegation(org.manager, org.deputy, *delegation_window)

        assert resolver.effective_approver(org.manager, uuid4()) == org.deputy

    def test_outside_window_returns_nominal(
        self, resolver, delegation_service, org, delegation_window, deterministic_clock,
    ):
        start, end = delegation_window
        delegation_service.register_delegation(org.manager, org.deputy, start, end)

        assert resolver.effective_approver(org.manager, None, on=end) == org.manager

    def test_form_specific_beats_general(
        self, resolver, delegation_service, catalog_service, org, delegation_window,
    ):
        form = catalog_service.register_form("A", "A", "HR")
        start, end = delegation_window
        delegation_service.register_delegation(org.manager, org.colleague, start, end)
        delegation_service.register_delegation(
            org.manager, org.deputy, start, end, form_id=form.form_id,
        )

        assert resolver.effective_approver(org.manager, form.form_id) == org.deputy
        assert resolver.effective_approver(org.manager, uuid4()) == org.colleague

    def test_deactivation_takes_effect_on_next_lookup(
        self, resolver, delegation_service, org, delegation_window,
    ):
        info = delegation_service.register_delegation(org.manager, org.deputy, *delegation_window)
        assert resolver.effective_approver(org.manager, None) == org.deputy

        delegation_service.deactivate_delegation(info.delegation_id)

        assert resolver.effective_approver(org.manager, None) == org.manager

    def test_effective_map(self, resolver, delegation_service, org, delegation_window, deterministic_clock):
        delegation_service.register_delegation(org.manager, org.deputy, *delegation_window)

        mapping = resolver.effective_map({org.manager, org.director}, None, deterministic_clock.now())

        assert mapping == {org.manager: org.deputy, org.director: org.director}
