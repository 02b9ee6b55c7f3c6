"""
Read-side DTOs (``approval_kernel.domain.dtos``).

Frozen projections returned by selectors and catalog services.  Display
names come from the organization directory at read time; they are never
stored on the document.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from math import ceil
from typing import Any
from uuid import UUID

from approval_kernel.domain.approval import (
    ActionType,
    ApprovalType,
    DocumentStatus,
    LineStatus,
    Priority,
)
from approval_kernel.domain.line import TemplateStep


@dataclass(frozen=True)
class ApprovalFormInfo:
    """Catalog entry for one approval form."""

    form_id: UUID
    form_code: str
    form_name: str
    category_code: str
    category_name: str | None = None
    form_name_eng: str | None = None
    field_schema: dict[str, Any] | None = None
    required_fields: tuple[str, ...] = ()
    default_line: tuple[TemplateStep, ...] = ()
    max_levels: int = 5
    display_order: int = 0
    description: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class ApprovalSettingInfo:
    """Catalog entry for one line-template selector."""

    setting_id: UUID
    priority: int
    template: tuple[TemplateStep, ...]
    form_id: UUID | None = None
    company_id: UUID | None = None
    department_id: UUID | None = None
    amount_min: Decimal | None = None
    amount_max: Decimal | None = None
    is_active: bool = True
    setting_key: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class DelegationInfo:
    """One delegation row."""

    delegation_id: UUID
    delegator_id: UUID
    delegate_id: UUID
    start_date: datetime
    end_date: datetime
    form_id: UUID | None = None
    reason: str | None = None
    is_active: bool = True
    created_at: datetime | None = None


@dataclass(frozen=True)
class DocumentHeader:
    """Document header with directory display names."""

    document_id: UUID
    document_no: str
    form_id: UUID
    form_code: str
    form_name: str
    title: str
    content: Any
    requester_id: UUID
    requester_dept_id: UUID
    status: DocumentStatus
    current_level: int
    total_level: int
    priority: Priority
    urgent: bool
    created_at: datetime
    due_date: datetime | None = None
    processed_at: datetime | None = None
    withdrawn_at: datetime | None = None
    withdrawn_by: UUID | None = None
    withdraw_reason: str | None = None
    related_system_type: str | None = None
    related_system_id: str | None = None
    attachments_count: int = 0
    requester_name: str | None = None
    requester_department: str | None = None


@dataclass(frozen=True)
class LineSlotView:
    """One approver slot with directory display names."""

    line_id: UUID
    level: int
    sort_order: int
    approval_type: ApprovalType
    approver_employee_id: UUID
    status: LineStatus
    is_parallel: bool
    is_required: bool
    actual_approver_employee_id: UUID | None = None
    approval_date: datetime | None = None
    comment: str | None = None
    delegated_from: UUID | None = None
    delegated_to: UUID | None = None
    delegation_reason: str | None = None
    approver_name: str | None = None
    actual_approver_name: str | None = None


@dataclass(frozen=True)
class HistoryEntry:
    """One append-only history row."""

    history_id: UUID
    action_type: ActionType
    action_by: UUID
    action_at: datetime
    new_status: DocumentStatus
    previous_status: DocumentStatus | None = None
    line_id: UUID | None = None
    comment: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    additional_data: dict[str, Any] | None = None
    action_by_name: str | None = None


@dataclass(frozen=True)
class AttachmentInfo:
    """Attachment pointer recorded with a document."""

    attachment_id: UUID
    original_file_name: str
    stored_file_name: str
    file_path: str
    file_size: int
    uploaded_by: UUID
    uploaded_at: datetime
    content_type: str | None = None
    file_extension: str | None = None


@dataclass(frozen=True)
class DocumentDetail:
    """Full document aggregate as read in one snapshot."""

    header: DocumentHeader
    line: tuple[LineSlotView, ...]
    history: tuple[HistoryEntry, ...]
    attachments: tuple[AttachmentInfo, ...]


@dataclass(frozen=True)
class DocumentSummary:
    """List row for pending/submitted views."""

    document_id: UUID
    document_no: str
    title: str
    form_code: str
    form_name: str
    status: DocumentStatus
    current_level: int
    total_level: int
    requester_id: UUID
    created_at: datetime
    priority: Priority = Priority.NORMAL
    urgent: bool = False
    processed_at: datetime | None = None
    requester_name: str | None = None
    my_line_id: UUID | None = None
    my_level: int | None = None
    current_approver_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class DocumentPage:
    """One page of document summaries."""

    documents: tuple[DocumentSummary, ...]
    total_count: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return ceil(self.total_count / self.page_size) if self.page_size else 0

    @property
    def has_next(self) -> bool:
        return self.page * self.page_size < self.total_count

    @property
    def has_previous(self) -> bool:
        return self.page > 1
