"""
Approval line value objects (``approval_kernel.domain.line``).

Responsibility
--------------
Frozen dataclasses describing approval lines at every stage: caller-supplied
slot specs, setting templates (position/role references), and the concrete
resolved line that is pinned onto a document.  Also carries the candidate
records the pure selection engines operate on.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* A resolved slot always names a concrete employee; it is never
  re-resolved after the document is created.
* ``ResolvedLine.total_levels`` is the maximum level number, and levels are
  contiguous from 1 (enforced by ``approval_engines.line_rules``).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from approval_kernel.domain.approval import ApprovalType


# =========================================================================
# Explicit line input
# =========================================================================


@dataclass(frozen=True)
class SlotSpec:
    """One caller-supplied approver slot."""

    level: int
    approver_employee_id: UUID
    approval_type: ApprovalType = ApprovalType.APPROVE
    is_required: bool = True
    sort_order: int | None = None


# =========================================================================
# Setting templates
# =========================================================================


class TemplateRefKind(str, Enum):
    """How a template step names its approver."""

    REPORTING_CHAIN = "REPORTING_CHAIN"
    ROLE = "ROLE"
    EMPLOYEE = "EMPLOYEE"


@dataclass(frozen=True)
class TemplateRef:
    """Position/role reference expanded at resolution time."""

    kind: TemplateRefKind
    depth: int | None = None
    role: str | None = None
    employee_id: UUID | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"kind": self.kind.value}
        if self.depth is not None:
            data["depth"] = self.depth
        if self.role is not None:
            data["role"] = self.role
        if self.employee_id is not None:
            data["employee_id"] = str(self.employee_id)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TemplateRef:
        employee_id = data.get("employee_id")
        return cls(
            kind=TemplateRefKind(data["kind"]),
            depth=data.get("depth"),
            role=data.get("role"),
            employee_id=UUID(str(employee_id)) if employee_id else None,
        )


@dataclass(frozen=True)
class TemplateStep:
    """One step of a line template."""

    level: int
    ref: TemplateRef
    approval_type: ApprovalType = ApprovalType.APPROVE
    is_required: bool = True
    sort_order: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "ref": self.ref.to_dict(),
            "approval_type": self.approval_type.value,
            "is_required": self.is_required,
            "sort_order": self.sort_order,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TemplateStep:
        return cls(
            level=int(data["level"]),
            ref=TemplateRef.from_dict(data["ref"]),
            approval_type=ApprovalType(data.get("approval_type", "APPROVE")),
            is_required=bool(data.get("is_required", True)),
            sort_order=int(data.get("sort_order", 0)),
        )


def template_to_json(steps: tuple[TemplateStep, ...]) -> list[dict[str, Any]]:
    """Serialize a template for the ``line_template`` JSON column."""
    return [s.to_dict() for s in steps]


def template_from_json(data: list[dict[str, Any]] | None) -> tuple[TemplateStep, ...]:
    """Parse a template from the ``line_template`` JSON column."""
    return tuple(TemplateStep.from_dict(d) for d in (data or ()))


@dataclass(frozen=True)
class SettingCandidate:
    """An active approval setting as seen by the selection engine."""

    setting_id: UUID
    priority: int
    template: tuple[TemplateStep, ...]
    form_id: UUID | None = None
    company_id: UUID | None = None
    department_id: UUID | None = None
    amount_min: Decimal | None = None
    amount_max: Decimal | None = None
    created_at: datetime | None = None

    @property
    def specificity(self) -> int:
        """Number of non-null selector keys."""
        return sum(
            1 for v in (self.form_id, self.company_id, self.department_id)
            if v is not None
        ) + (1 if self.amount_min is not None or self.amount_max is not None else 0)


# =========================================================================
# Resolved line
# =========================================================================


@dataclass(frozen=True)
class ResolvedSlot:
    """A concrete approver slot pinned onto a document."""

    level: int
    sort_order: int
    approver_employee_id: UUID
    approval_type: ApprovalType
    is_required: bool
    is_parallel: bool


@dataclass(frozen=True)
class ResolvedLine:
    """The ordered approval line for one document."""

    slots: tuple[ResolvedSlot, ...]
    setting_id: UUID | None = None

    @property
    def total_levels(self) -> int:
        return max((s.level for s in self.slots), default=0)

    @property
    def is_empty(self) -> bool:
        return not self.slots

    def level(self, number: int) -> tuple[ResolvedSlot, ...]:
        return tuple(s for s in self.slots if s.level == number)


# =========================================================================
# Delegation candidates
# =========================================================================


@dataclass(frozen=True)
class DelegationCandidate:
    """An active delegation row as seen by the selection engine."""

    delegation_id: UUID
    delegator_id: UUID
    delegate_id: UUID
    start_date: datetime
    end_date: datetime
    form_id: UUID | None = None
    created_at: datetime | None = None
    is_active: bool = True

    def covers(self, on: datetime) -> bool:
        """True if ``on`` falls inside the half-open window [start, end)."""
        return self.start_date <= on < self.end_date


@dataclass(frozen=True)
class RequesterContext:
    """Organizational context snapshotted when a document is created."""

    employee_id: UUID
    department_id: UUID
    company_id: UUID | None = None
    amount: Decimal | None = None
