"""
Configuration schema (``approval_config.schema``).

Frozen dataclasses produced by the YAML loader: engine settings and the
form catalog with its approval-setting templates.  No I/O; no behaviour
beyond a few derived properties.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from approval_kernel.domain.line import TemplateStep


@dataclass(frozen=True)
class EngineConfig:
    """Runtime settings for the approval engine."""

    database_url: str = "sqlite:///approval.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    admin_roles: tuple[str, ...] = ("ADMIN", "HR_ADMIN")
    default_page_size: int = 20
    max_page_size: int = 100
    title_max_length: int = 200
    comment_max_length: int = 1000
    reason_max_length: int = 500


@dataclass(frozen=True)
class FormDef:
    """One approval form as declared in configuration."""

    form_code: str
    form_name: str
    category_code: str
    category_name: str | None = None
    form_name_eng: str | None = None
    description: str | None = None
    field_schema: dict[str, Any] | None = None
    required_fields: tuple[str, ...] = ()
    default_line: tuple[TemplateStep, ...] = ()
    max_levels: int = 5
    display_order: int = 0
    is_active: bool = True


@dataclass(frozen=True)
class SettingDef:
    """One approval setting as declared in configuration."""

    setting_key: str
    template: tuple[TemplateStep, ...]
    priority: int = 0
    form_code: str | None = None
    company_id: str | None = None
    department_id: str | None = None
    amount_min: Decimal | None = None
    amount_max: Decimal | None = None
    description: str | None = None


@dataclass(frozen=True)
class CatalogDef:
    """Forms and settings loaded from one configuration file."""

    forms: tuple[FormDef, ...] = ()
    settings: tuple[SettingDef, ...] = ()
    checksum: str = ""
    source: str | None = None

    def form(self, form_code: str) -> FormDef | None:
        return next((f for f in self.forms if f.form_code == form_code), None)


@dataclass(frozen=True)
class ApprovalConfiguration:
    """Everything one configuration file declares."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    catalog: CatalogDef = field(default_factory=CatalogDef)
