"""
approval_services.line_resolver -- Approval line construction.

Responsibility:
    Turn a form plus the requester's organizational context into the
    concrete approval line pinned on a new document.

    Explicit mode validates a caller-supplied line.  Automatic mode selects
    the highest-priority matching approval setting and expands its template
    through the organization directory.

Architecture position:
    Services layer.  Thin coordinator: setting selection, template
    expansion and line validation are pure functions in
    ``approval_engines.line_rules``; this module performs the directory
    lookups and maps engine violations to kernel exceptions.

Failure modes:
    - InvalidLineDefinitionError -- malformed explicit line, inactive or
      unknown approver, too many levels for the form, or a template step
      the directory cannot staff.
    - NoApprovalLineConfiguredError -- no active setting matches.
    - EmptyApprovalLineError -- the line resolved to zero slots.
"""

from __future__ import annotations

from collections.abc import Sequence

from approval_engines.line_rules import (
    LineValidation,
    build_line,
    expand_template,
    select_setting,
)
from approval_kernel.domain.directory import OrganizationDirectory
from approval_kernel.domain.line import (
    RequesterContext,
    ResolvedLine,
    SlotSpec,
    TemplateRefKind,
)
from approval_kernel.exceptions import (
    EmptyApprovalLineError,
    InvalidLineDefinitionError,
    NoApprovalLineConfiguredError,
)
from approval_kernel.logging_config import get_logger
from approval_kernel.models.form import ApprovalFormModel
from approval_kernel.services.catalog_service import CatalogService

logger = get_logger("services.line_resolver")


class LineResolver:
    """Builds the approval line for a new document."""

    def __init__(self, catalog: CatalogService, directory: OrganizationDirectory):
        self._catalog = catalog
        self._directory = directory

    def resolve(
        self,
        form: ApprovalFormModel,
        requester: RequesterContext,
        explicit_line: Sequence[SlotSpec] | None = None,
    ) -> ResolvedLine:
        if explicit_line is not None:
            line = self._resolve_explicit(form, explicit_line)
            mode = "explicit"
        else:
            line = self._resolve_automatic(form, requester)
            mode = "automatic"

        logger.info(
            "approval_line_resolved",
            extra={
                "form_code": form.form_code,
                "mode": mode,
                "setting_id": str(line.setting_id) if line.setting_id else None,
                "total_levels": line.total_levels,
                "slot_count": len(line.slots),
            },
        )
        return line

    def _resolve_explicit(
        self,
        form: ApprovalFormModel,
        specs: Sequence[SlotSpec],
    ) -> ResolvedLine:
        if not specs:
            raise EmptyApprovalLineError(form.form_code)

        for spec in specs:
            employee = self._directory.get_employee(spec.approver_employee_id)
            if employee is None or not employee.is_active:
                raise InvalidLineDefinitionError(
                    f"approver {spec.approver_employee_id} is not an active employee",
                    spec.level,
                )

        return self._checked(form, build_line(specs, max_levels=form.max_levels))

    def _resolve_automatic(
        self,
        form: ApprovalFormModel,
        requester: RequesterContext,
    ) -> ResolvedLine:
        setting = select_setting(
            self._catalog.setting_candidates(form.id),
            form_id=form.id,
            company_id=requester.company_id,
            department_id=requester.department_id,
            amount=requester.amount,
        )
        if setting is None:
            raise NoApprovalLineConfiguredError(
                form.form_code, str(requester.department_id),
            )

        chain = self._directory.resolve_reporting_chain(requester.employee_id)
        roles = {
            step.ref.role
            for step in setting.template
            if step.ref.kind == TemplateRefKind.ROLE and step.ref.role
        }
        holders = {
            role: self._directory.find_role_holders(role, requester.company_id)
            for role in roles
        }

        specs, violations = expand_template(
            setting.template,
            reporting_chain=chain,
            role_holders=holders,
            requester_id=requester.employee_id,
        )
        if violations:
            first = violations[0]
            raise InvalidLineDefinitionError(first.reason, first.level)

        for spec in specs:
            employee = self._directory.get_employee(spec.approver_employee_id)
            if employee is None or not employee.is_active:
                raise InvalidLineDefinitionError(
                    f"approver {spec.approver_employee_id} is not an active employee",
                    spec.level,
                )

        if not specs:
            raise EmptyApprovalLineError(form.form_code)

        return self._checked(
            form,
            build_line(specs, max_levels=form.max_levels, setting_id=setting.setting_id),
        )

    @staticmethod
    def _checked(form: ApprovalFormModel, validation: LineValidation) -> ResolvedLine:
        if not validation.is_valid:
            first = validation.violations[0]
            raise InvalidLineDefinitionError(first.reason, first.level)
        if validation.line.is_empty:
            raise EmptyApprovalLineError(form.form_code)
        return validation.line
