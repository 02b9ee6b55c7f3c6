"""
approval_services.bootstrap -- Seed the catalog from configuration.

``seed_catalog`` upserts every configured form (by code) and setting (by
``setting_key``).  A form's default line becomes a lowest-priority setting
scoped to that form, so "highest-priority matching setting" covers the
default without a separate fallback path.  Re-running with the same
catalog changes nothing but ``updated_at``.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from approval_config.schema import CatalogDef
from approval_kernel.domain.clock import Clock
from approval_kernel.logging_config import get_logger
from approval_kernel.services.catalog_service import CatalogService

logger = get_logger("services.bootstrap")

# Below any configured priority.
DEFAULT_LINE_PRIORITY = -1000


def default_setting_key(form_code: str) -> str:
    return f"{form_code}:default"


def seed_catalog(
    session: Session,
    catalog: CatalogDef,
    clock: Clock | None = None,
) -> dict[str, UUID]:
    """Upsert forms and settings; return form ids by code.  Flushes only."""
    service = CatalogService(session, clock)
    form_ids: dict[str, UUID] = {}

    for form in catalog.forms:
        info = service.register_form(
            form.form_code,
            form.form_name,
            form.category_code,
            category_name=form.category_name,
            form_name_eng=form.form_name_eng,
            description=form.description,
            field_schema=form.field_schema,
            required_fields=form.required_fields,
            default_line=form.default_line,
            max_levels=form.max_levels,
            display_order=form.display_order,
            is_active=form.is_active,
        )
        form_ids[form.form_code] = info.form_id
        if form.default_line:
            service.register_setting(
                form.default_line,
                priority=DEFAULT_LINE_PRIORITY,
                form_id=info.form_id,
                setting_key=default_setting_key(form.form_code),
                description=f"Default line of {form.form_code}",
            )

    for setting in catalog.settings:
        service.register_setting(
            setting.template,
            priority=setting.priority,
            form_id=form_ids[setting.form_code] if setting.form_code else None,
            company_id=UUID(setting.company_id) if setting.company_id else None,
            department_id=UUID(setting.department_id) if setting.department_id else None,
            amount_min=setting.amount_min,
            amount_max=setting.amount_max,
            setting_key=setting.setting_key,
            description=setting.description,
        )

    logger.info(
        "catalog_seeded",
        extra={
            "checksum": catalog.checksum,
            "form_count": len(catalog.forms),
            "setting_count": len(catalog.settings),
        },
    )
    return form_ids
