"""
approval_engines.line_rules -- Pure approval line construction.

Responsibility:
    Validate caller-supplied (explicit) approval lines, select the
    approval setting that governs a document, and expand a setting's
    template of position/role references into concrete approver slots.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import approval_kernel/domain/ types.  Directory lookups are
    performed by the caller and passed in as plain data.

Invariants enforced:
    - Levels are contiguous starting at 1.
    - Every level holds at least one required, non-REFERENCE slot.
    - (level, sort_order) is unique across the line.
    - A level is flagged parallel when it holds two or more required slots.
    - REFERENCE slots are never required.
    - Setting selection is deterministic: priority (higher first), then
      specificity, then recency, then id.

Failure modes:
    - Returns ``LineValidation`` with violations instead of raising; the
      services layer maps violations to kernel exceptions.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from approval_engines.tracer import traced_engine
from approval_kernel.domain.approval import ApprovalType
from approval_kernel.domain.line import (
    ResolvedLine,
    ResolvedSlot,
    SettingCandidate,
    SlotSpec,
    TemplateRefKind,
    TemplateStep,
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class LineViolation:
    """One reason a line is malformed."""

    reason: str
    level: int | None = None


@dataclass(frozen=True)
class LineValidation:
    """Result of building a line from slot specs."""

    line: ResolvedLine
    violations: tuple[LineViolation, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.violations


# =========================================================================
# Line assembly and validation
# =========================================================================


def _blocks(approval_type: ApprovalType, is_required: bool) -> bool:
    return is_required and approval_type != ApprovalType.REFERENCE


@traced_engine("line_rules", "1.0")
def build_line(
    specs: Iterable[SlotSpec],
    max_levels: int | None = None,
    setting_id: UUID | None = None,
) -> LineValidation:
    """Assemble slot specs into a resolved line and validate its shape.

    Sort orders left unset are assigned in input order within each level,
    after any explicit sort orders already used at that level.
    """
    specs = list(specs)
    violations: list[LineViolation] = []

    used_orders: dict[int, set[int]] = {}
    for spec in specs:
        if spec.sort_order is not None:
            if spec.sort_order in used_orders.setdefault(spec.level, set()):
                violations.append(LineViolation(
                    f"duplicate sort order {spec.sort_order}", spec.level,
                ))
            used_orders[spec.level].add(spec.sort_order)

    assigned: list[tuple[SlotSpec, int]] = []
    for spec in specs:
        order = spec.sort_order
        if order is None:
            taken = used_orders.setdefault(spec.level, set())
            order = max(taken, default=0) + 1
            taken.add(order)
        assigned.append((spec, order))

    levels = sorted({spec.level for spec in specs})
    if levels and levels[0] < 1:
        violations.append(LineViolation("levels must start at 1", levels[0]))
    if levels and levels != list(range(1, len(levels) + 1)):
        violations.append(LineViolation(
            f"levels must be contiguous from 1, got {levels}",
        ))
    if max_levels is not None and levels and levels[-1] > max_levels:
        violations.append(LineViolation(
            f"line has {levels[-1]} levels, form allows {max_levels}",
        ))

    blocking_per_level: dict[int, int] = {}
    approvers_per_level: dict[int, set[UUID]] = {}
    for spec in specs:
        if _blocks(spec.approval_type, spec.is_required):
            blocking_per_level[spec.level] = blocking_per_level.get(spec.level, 0) + 1
        seen = approvers_per_level.setdefault(spec.level, set())
        if spec.approver_employee_id in seen:
            violations.append(LineViolation(
                f"approver {spec.approver_employee_id} appears twice", spec.level,
            ))
        seen.add(spec.approver_employee_id)

    for level in levels:
        if blocking_per_level.get(level, 0) == 0:
            violations.append(LineViolation(
                "level has no required approver", level,
            ))

    slots = tuple(
        ResolvedSlot(
            level=spec.level,
            sort_order=order,
            approver_employee_id=spec.approver_employee_id,
            approval_type=spec.approval_type,
            is_required=_blocks(spec.approval_type, spec.is_required),
            is_parallel=blocking_per_level.get(spec.level, 0) >= 2,
        )
        for spec, order in sorted(assigned, key=lambda pair: (pair[0].level, pair[1]))
    )

    return LineValidation(
        line=ResolvedLine(slots=slots, setting_id=setting_id),
        violations=tuple(violations),
    )


# =========================================================================
# Setting selection
# =========================================================================


def setting_matches(
    candidate: SettingCandidate,
    form_id: UUID,
    company_id: UUID | None,
    department_id: UUID | None,
    amount: Decimal | None,
) -> bool:
    """Check whether a setting applies to the document context.

    Null selector keys match anything.  Amount ranges are [min, max);
    a setting with any amount bound only matches when an amount is given.
    """
    if candidate.form_id is not None and candidate.form_id != form_id:
        return False
    if candidate.company_id is not None and candidate.company_id != company_id:
        return False
    if candidate.department_id is not None and candidate.department_id != department_id:
        return False

    if candidate.amount_min is not None or candidate.amount_max is not None:
        if amount is None:
            return False
        if candidate.amount_min is not None and amount < candidate.amount_min:
            return False
        if candidate.amount_max is not None and amount >= candidate.amount_max:
            return False

    return True


@traced_engine("line_rules", "1.0", fingerprint_fields=("form_id", "department_id"))
def select_setting(
    candidates: Iterable[SettingCandidate],
    *,
    form_id: UUID,
    company_id: UUID | None = None,
    department_id: UUID | None = None,
    amount: Decimal | None = None,
) -> SettingCandidate | None:
    """Select the highest-priority setting matching the document context."""
    matching = [
        c for c in candidates
        if setting_matches(c, form_id, company_id, department_id, amount)
    ]
    if not matching:
        return None

    return max(
        matching,
        key=lambda c: (
            c.priority,
            c.specificity,
            c.created_at or _EPOCH,
            str(c.setting_id),
        ),
    )


# =========================================================================
# Template expansion
# =========================================================================


@traced_engine("line_rules", "1.0")
def expand_template(
    steps: Iterable[TemplateStep],
    *,
    reporting_chain: tuple[UUID, ...],
    role_holders: Mapping[str, tuple[UUID, ...]],
    requester_id: UUID,
) -> tuple[tuple[SlotSpec, ...], tuple[LineViolation, ...]]:
    """Expand template steps into concrete slot specs.

    ``reporting_chain`` lists managers above the requester, direct manager
    first.  ``role_holders`` maps each ROLE reference to its holders.  The
    requester never approves their own document; a role held only by the
    requester yields no slot.  An unresolvable REPORTING_CHAIN depth is a
    violation, because the organization directory cannot staff the step.
    """
    specs: list[SlotSpec] = []
    violations: list[LineViolation] = []

    for step in sorted(steps, key=lambda s: (s.level, s.sort_order)):
        ref = step.ref
        approvers: tuple[UUID, ...]

        if ref.kind == TemplateRefKind.REPORTING_CHAIN:
            depth = ref.depth or 1
            if depth > len(reporting_chain):
                violations.append(LineViolation(
                    f"reporting chain has no manager at depth {depth}", step.level,
                ))
                continue
            approvers = (reporting_chain[depth - 1],)
        elif ref.kind == TemplateRefKind.ROLE:
            approvers = tuple(
                e for e in role_holders.get(ref.role or "", ()) if e != requester_id
            )
            if not approvers:
                violations.append(LineViolation(
                    f"no holder of role {ref.role}", step.level,
                ))
                continue
        else:
            approvers = (ref.employee_id,) if ref.employee_id else ()

        for approver in approvers:
            specs.append(SlotSpec(
                level=step.level,
                approver_employee_id=approver,
                approval_type=step.approval_type,
                is_required=step.is_required,
            ))

    return tuple(specs), tuple(violations)
