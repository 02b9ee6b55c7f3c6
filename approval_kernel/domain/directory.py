"""
Organization directory contract (``approval_kernel.domain.directory``).

Responsibility
--------------
Declares the read-only lookups the engine consumes from the organization
directory: employee records, the requester's reporting chain, and role
holders.  The directory is an external collaborator; the kernel never
writes to it and never caches its answers beyond one call.

Architecture position
---------------------
**Kernel domain layer** -- protocol and value objects only.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID


@dataclass(frozen=True)
class EmployeeRecord:
    """Directory view of one employee."""

    employee_id: UUID
    display_name: str
    department_id: UUID
    company_id: UUID | None = None
    position_code: str | None = None
    position_name: str | None = None
    department_name: str | None = None
    roles: tuple[str, ...] = ()
    is_active: bool = True


class OrganizationDirectory(Protocol):
    """Pluggable interface for organization lookups."""

    def get_employee(self, employee_id: UUID) -> EmployeeRecord | None:
        """Return the employee record, or None if unknown."""
        ...

    def resolve_reporting_chain(self, employee_id: UUID) -> tuple[UUID, ...]:
        """Return managers above this employee, direct manager first."""
        ...

    def find_role_holders(
        self,
        role: str,
        company_id: UUID | None = None,
    ) -> tuple[UUID, ...]:
        """Return active employees holding ``role`` (optionally per company)."""
        ...
