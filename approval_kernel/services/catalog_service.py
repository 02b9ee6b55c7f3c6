"""
CatalogService -- approval forms and line-template settings.

Responsibility:
    Register, look up, list and deactivate approval forms and the approval
    settings the line resolver selects templates from.

Architecture position:
    Kernel > Services -- imperative shell.  Flushes only.

Invariants enforced:
    - Form codes are unique; ``register_form`` upserts by code.
    - Settings with a ``setting_key`` upsert by key; without one, every
      call inserts a new row.
    - Nothing is deleted; deactivation flips ``is_active``.
    - Template steps name levels within the form's ``max_levels``.

Failure modes:
    - FormNotFoundError / SettingNotFoundError for unknown ids or codes.
    - ValidationError for malformed definitions.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select

from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.dtos import ApprovalFormInfo, ApprovalSettingInfo
from approval_kernel.domain.line import (
    SettingCandidate,
    TemplateRefKind,
    TemplateStep,
    template_to_json,
)
from approval_kernel.exceptions import (
    FormNotFoundError,
    SettingNotFoundError,
    ValidationError,
)
from approval_kernel.logging_config import get_logger
from approval_kernel.models.form import ApprovalFormModel, ApprovalSettingModel
from approval_kernel.services.base import BaseService

logger = get_logger("services.catalog")


def _check_template(steps: Sequence[TemplateStep], field: str) -> None:
    for step in steps:
        if step.level < 1:
            raise ValidationError(field, f"level must be >= 1, got {step.level}")
        ref = step.ref
        if ref.kind == TemplateRefKind.REPORTING_CHAIN and (ref.depth or 1) < 1:
            raise ValidationError(field, "reporting chain depth must be >= 1")
        if ref.kind == TemplateRefKind.ROLE and not ref.role:
            raise ValidationError(field, "role reference needs a role code")
        if ref.kind == TemplateRefKind.EMPLOYEE and ref.employee_id is None:
            raise ValidationError(field, "employee reference needs an employee_id")


class CatalogService(BaseService):
    """Form catalog and approval settings."""

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Forms
    # ------------------------------------------------------------------

    def register_form(
        self,
        form_code: str,
        form_name: str,
        category_code: str,
        *,
        category_name: str | None = None,
        form_name_eng: str | None = None,
        description: str | None = None,
        field_schema: dict[str, Any] | None = None,
        required_fields: Sequence[str] = (),
        default_line: Sequence[TemplateStep] = (),
        max_levels: int = 5,
        display_order: int = 0,
        is_active: bool = True,
    ) -> ApprovalFormInfo:
        """Insert a form, or update the existing form with the same code."""
        if not form_code or not form_code.strip():
            raise ValidationError("form_code", "must not be empty")
        if not form_name or not form_name.strip():
            raise ValidationError("form_name", "must not be empty")
        if max_levels < 1:
            raise ValidationError("max_levels", "must be >= 1")
        _check_template(default_line, "default_line")
        too_deep = [s.level for s in default_line if s.level > max_levels]
        if too_deep:
            raise ValidationError(
                "default_line", f"level {max(too_deep)} exceeds max_levels {max_levels}",
            )

        now = self._clock.now()
        model = self._form_by_code(form_code)
        created = model is None
        if model is None:
            model = ApprovalFormModel(form_code=form_code, created_at=now)
            self.session.add(model)
        else:
            model.updated_at = now

        model.form_name = form_name
        model.form_name_eng = form_name_eng
        model.category_code = category_code
        model.category_name = category_name
        model.description = description
        model.field_schema = field_schema
        model.required_fields = list(required_fields)
        model.default_line = template_to_json(tuple(default_line))
        model.max_levels = max_levels
        model.display_order = display_order
        model.is_active = is_active
        self.session.flush()

        logger.info(
            "form_registered",
            extra={
                "form_code": form_code,
                "form_id": str(model.id),
                "is_new": created,
                "max_levels": max_levels,
            },
        )
        return model.to_dto()

    def _form_by_code(self, form_code: str) -> ApprovalFormModel | None:
        return self.session.execute(
            select(ApprovalFormModel).where(ApprovalFormModel.form_code == form_code)
        ).scalar_one_or_none()

    def form_model(self, form_id: UUID) -> ApprovalFormModel:
        model = self.session.get(ApprovalFormModel, form_id)
        if model is None:
            raise FormNotFoundError(str(form_id))
        return model

    def get_form(self, form_id: UUID) -> ApprovalFormInfo:
        return self.form_model(form_id).to_dto()

    def get_form_by_code(self, form_code: str) -> ApprovalFormInfo:
        model = self._form_by_code(form_code)
        if model is None:
            raise FormNotFoundError(form_code)
        return model.to_dto()

    def list_forms(
        self,
        category: str | None = None,
        active_only: bool = True,
    ) -> list[ApprovalFormInfo]:
        """Forms ordered by display order, then code."""
        stmt = select(ApprovalFormModel)
        if category is not None:
            stmt = stmt.where(ApprovalFormModel.category_code == category)
        if active_only:
            stmt = stmt.where(ApprovalFormModel.is_active.is_(True))
        stmt = stmt.order_by(
            ApprovalFormModel.display_order, ApprovalFormModel.form_code,
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def deactivate_form(self, form_id: UUID) -> ApprovalFormInfo:
        model = self.form_model(form_id)
        model.is_active = False
        model.updated_at = self._clock.now()
        self.session.flush()
        logger.info("form_deactivated", extra={"form_code": model.form_code})
        return model.to_dto()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def register_setting(
        self,
        template: Sequence[TemplateStep],
        *,
        priority: int = 0,
        form_id: UUID | None = None,
        company_id: UUID | None = None,
        department_id: UUID | None = None,
        amount_min: Decimal | None = None,
        amount_max: Decimal | None = None,
        setting_key: str | None = None,
        description: str | None = None,
    ) -> ApprovalSettingInfo:
        """Insert a setting, or update the one sharing ``setting_key``."""
        if not template:
            raise ValidationError("template", "must contain at least one step")
        _check_template(template, "template")
        if (
            amount_min is not None
            and amount_max is not None
            and amount_max <= amount_min
        ):
            raise ValidationError("amount_max", "must be greater than amount_min")
        if form_id is not None:
            self.form_model(form_id)

        model = None
        if setting_key is not None:
            model = self.session.execute(
                select(ApprovalSettingModel)
                .where(ApprovalSettingModel.setting_key == setting_key)
            ).scalar_one_or_none()
        if model is None:
            model = ApprovalSettingModel(
                setting_key=setting_key, created_at=self._clock.now(),
            )
            self.session.add(model)

        model.form_id = form_id
        model.company_id = company_id
        model.department_id = department_id
        model.amount_min = amount_min
        model.amount_max = amount_max
        model.priority = priority
        model.line_template = template_to_json(tuple(template))
        model.description = description
        model.is_active = True
        self.session.flush()

        logger.info(
            "setting_registered",
            extra={
                "setting_id": str(model.id),
                "setting_key": setting_key,
                "priority": priority,
                "form_id": str(form_id) if form_id else None,
            },
        )
        return model.to_dto()

    def deactivate_setting(self, setting_id: UUID) -> ApprovalSettingInfo:
        model = self.session.get(ApprovalSettingModel, setting_id)
        if model is None:
            raise SettingNotFoundError(str(setting_id))
        model.is_active = False
        self.session.flush()
        logger.info("setting_deactivated", extra={"setting_id": str(setting_id)})
        return model.to_dto()

    def list_settings(
        self,
        form_id: UUID | None = None,
        active_only: bool = True,
    ) -> list[ApprovalSettingInfo]:
        stmt = select(ApprovalSettingModel)
        if form_id is not None:
            stmt = stmt.where(ApprovalSettingModel.form_id == form_id)
        if active_only:
            stmt = stmt.where(ApprovalSettingModel.is_active.is_(True))
        stmt = stmt.order_by(
            ApprovalSettingModel.priority.desc(), ApprovalSettingModel.created_at,
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def setting_candidates(self, form_id: UUID) -> tuple[SettingCandidate, ...]:
        """Active settings that could apply to documents of ``form_id``."""
        stmt = select(ApprovalSettingModel).where(
            ApprovalSettingModel.is_active.is_(True),
            (ApprovalSettingModel.form_id == form_id)
            | ApprovalSettingModel.form_id.is_(None),
        )
        return tuple(m.to_candidate() for m in self.session.execute(stmt).scalars())
