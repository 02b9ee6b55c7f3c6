"""
Configuration Loader (``approval_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen dataclasses
of ``approval_config.schema``.  Runtime callers go through
``approval_config.get_engine_config()`` / ``get_catalog()``.

Invariants enforced
-------------------
* Required keys have no silent defaults: a missing ``form_code`` or
  ``setting_key`` raises ``KeyError``.
* Every referenced form code in a setting names a form in the same file.
* ``compute_checksum`` is a deterministic SHA-256 over the canonical JSON
  of the raw document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown form reference or malformed value  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from approval_config.schema import (
    ApprovalConfiguration,
    CatalogDef,
    EngineConfig,
    FormDef,
    SettingDef,
)
from approval_kernel.domain.line import TemplateStep


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load one YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return data or {}


def _decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


def parse_template(data: list[dict[str, Any]] | None) -> tuple[TemplateStep, ...]:
    return tuple(TemplateStep.from_dict(step) for step in (data or ()))


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    defaults = EngineConfig()
    return EngineConfig(
        database_url=data.get("database_url", defaults.database_url),
        echo=bool(data.get("echo", defaults.echo)),
        pool_size=int(data.get("pool_size", defaults.pool_size)),
        max_overflow=int(data.get("max_overflow", defaults.max_overflow)),
        admin_roles=tuple(data.get("admin_roles", defaults.admin_roles)),
        default_page_size=int(data.get("default_page_size", defaults.default_page_size)),
        max_page_size=int(data.get("max_page_size", defaults.max_page_size)),
        title_max_length=int(data.get("title_max_length", defaults.title_max_length)),
        comment_max_length=int(data.get("comment_max_length", defaults.comment_max_length)),
        reason_max_length=int(data.get("reason_max_length", defaults.reason_max_length)),
    )


def parse_form(data: dict[str, Any]) -> FormDef:
    return FormDef(
        form_code=data["form_code"],
        form_name=data["form_name"],
        category_code=data["category_code"],
        category_name=data.get("category_name"),
        form_name_eng=data.get("form_name_eng"),
        description=data.get("description"),
        field_schema=data.get("field_schema"),
        required_fields=tuple(data.get("required_fields", ())),
        default_line=parse_template(data.get("default_line")),
        max_levels=int(data.get("max_levels", 5)),
        display_order=int(data.get("display_order", 0)),
        is_active=bool(data.get("is_active", True)),
    )


def parse_setting(data: dict[str, Any]) -> SettingDef:
    template = parse_template(data["template"])
    if not template:
        raise ValueError(f"setting {data['setting_key']} has an empty template")
    return SettingDef(
        setting_key=data["setting_key"],
        template=template,
        priority=int(data.get("priority", 0)),
        form_code=data.get("form_code"),
        company_id=data.get("company_id"),
        department_id=data.get("department_id"),
        amount_min=_decimal(data.get("amount_min")),
        amount_max=_decimal(data.get("amount_max")),
        description=data.get("description"),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_configuration(data: dict[str, Any], source: str | None = None) -> ApprovalConfiguration:
    forms = tuple(parse_form(f) for f in data.get("forms", ()))
    settings = tuple(parse_setting(s) for s in data.get("settings", ()))

    codes = {f.form_code for f in forms}
    if len(codes) != len(forms):
        raise ValueError("duplicate form_code in configuration")
    keys = [s.setting_key for s in settings]
    if len(set(keys)) != len(keys):
        raise ValueError("duplicate setting_key in configuration")
    for setting in settings:
        if setting.form_code is not None and setting.form_code not in codes:
            raise ValueError(
                f"setting {setting.setting_key} references unknown form {setting.form_code}"
            )

    return ApprovalConfiguration(
        engine=parse_engine_config(data.get("engine", {})),
        catalog=CatalogDef(
            forms=forms,
            settings=settings,
            checksum=compute_checksum({
                "forms": data.get("forms", []),
                "settings": data.get("settings", []),
            }),
            source=source,
        ),
    )


def load_configuration(path: Path) -> ApprovalConfiguration:
    return parse_configuration(load_yaml_file(path), source=str(path))
