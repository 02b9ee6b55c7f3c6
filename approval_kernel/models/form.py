"""
Module: approval_kernel.models.form
Responsibility: ORM persistence for approval forms and approval settings.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain value objects only.

Invariants enforced:
    - Form codes are unique.
    - ``max_levels`` is positive.
    - A setting's amount range, when fully bounded, is non-empty.
    - Forms and settings are never hard-deleted; ``is_active`` governs
      their lifecycle.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from approval_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from approval_kernel.domain.dtos import ApprovalFormInfo, ApprovalSettingInfo
    from approval_kernel.domain.line import SettingCandidate


class ApprovalFormModel(Base):
    """Persistent approval form (document template)."""

    __tablename__ = "approval_forms"

    __table_args__ = (
        CheckConstraint("max_levels > 0", name="ck_approval_forms_max_levels"),
        Index("ix_approval_forms_category", "category_code", "display_order"),
    )

    form_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    form_name: Mapped[str] = mapped_column(String(200), nullable=False)
    form_name_eng: Mapped[str | None] = mapped_column(String(200), nullable=True)
    category_code: Mapped[str] = mapped_column(String(50), nullable=False)
    category_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    field_schema: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    required_fields: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    default_line: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list,
    )
    max_levels: Mapped[int] = mapped_column(nullable=False, default=5)
    display_order: Mapped[int] = mapped_column(nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<ApprovalForm {self.form_code} active={self.is_active}>"

    def to_dto(self) -> ApprovalFormInfo:
        """Convert ORM model to frozen domain DTO."""
        from approval_kernel.domain.dtos import ApprovalFormInfo
        from approval_kernel.domain.line import template_from_json

        return ApprovalFormInfo(
            form_id=self.id,
            form_code=self.form_code,
            form_name=self.form_name,
            category_code=self.category_code,
            category_name=self.category_name,
            form_name_eng=self.form_name_eng,
            field_schema=self.field_schema,
            required_fields=tuple(self.required_fields or ()),
            default_line=template_from_json(self.default_line),
            max_levels=self.max_levels,
            display_order=self.display_order,
            description=self.description,
            is_active=self.is_active,
        )


class ApprovalSettingModel(Base):
    """Persistent line-template selector.

    Null selector columns match any value.  Higher ``priority`` wins.
    """

    __tablename__ = "approval_settings"

    __table_args__ = (
        CheckConstraint(
            "amount_min IS NULL OR amount_max IS NULL OR amount_max > amount_min",
            name="ck_approval_settings_amount_range",
        ),
        Index("ix_approval_settings_lookup", "is_active", "form_id"),
    )

    form_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("approval_forms.id"), nullable=True,
    )
    company_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    department_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    amount_min: Mapped[Decimal | None] = mapped_column(nullable=True)
    amount_max: Mapped[Decimal | None] = mapped_column(nullable=True)
    # Stable key for idempotent seeding from configuration.
    setting_key: Mapped[str | None] = mapped_column(String(100), nullable=True, unique=True)
    priority: Mapped[int] = mapped_column(nullable=False, default=0)
    line_template: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<ApprovalSetting {self.id} priority={self.priority}>"

    def to_dto(self) -> ApprovalSettingInfo:
        from approval_kernel.domain.dtos import ApprovalSettingInfo
        from approval_kernel.domain.line import template_from_json

        return ApprovalSettingInfo(
            setting_id=self.id,
            priority=self.priority,
            template=template_from_json(self.line_template),
            form_id=self.form_id,
            company_id=self.company_id,
            department_id=self.department_id,
            amount_min=self.amount_min,
            amount_max=self.amount_max,
            is_active=self.is_active,
            setting_key=self.setting_key,
            description=self.description,
        )

    def to_candidate(self) -> SettingCandidate:
        from approval_kernel.domain.line import SettingCandidate, template_from_json

        return SettingCandidate(
            setting_id=self.id,
            priority=self.priority,
            template=template_from_json(self.line_template),
            form_id=self.form_id,
            company_id=self.company_id,
            department_id=self.department_id,
            amount_min=self.amount_min,
            amount_max=self.amount_max,
            created_at=self.created_at,
        )
