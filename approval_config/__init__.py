"""
approval_config -- public entrypoints for approval engine configuration.

Responsibility:
    ``get_engine_config()`` and ``get_catalog()`` are the only ways runtime
    code obtains configuration.  YAML parsing stays in ``loader``.

Architecture position:
    Configuration -- sits above ``approval_kernel`` and below
    ``approval_services``.  The kernel never imports from this package.

Invariants enforced:
    - ``APPROVAL_DATABASE_URL`` overrides the configured database URL.
    - Every load emits an ``APPROVAL_CONFIG_TRACE`` log record carrying
      the source and the catalog checksum.

Failure modes:
    - ``FileNotFoundError`` for a missing configuration file.
    - ``ValueError`` / ``KeyError`` for structurally invalid configuration.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from approval_config.loader import load_configuration
from approval_config.schema import (
    ApprovalConfiguration,
    CatalogDef,
    EngineConfig,
    FormDef,
    SettingDef,
)

_logger = logging.getLogger("approval_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

DATABASE_URL_ENV = "APPROVAL_DATABASE_URL"


def _load(config_path: Path | None) -> ApprovalConfiguration:
    path = config_path or DEFAULT_CONFIG_PATH
    config = load_configuration(path)
    _logger.info(
        "APPROVAL_CONFIG_TRACE",
        extra={
            "trace_type": "APPROVAL_CONFIG_TRACE",
            "source": str(path),
            "checksum": config.catalog.checksum,
            "form_count": len(config.catalog.forms),
            "setting_count": len(config.catalog.settings),
        },
    )
    return config


def get_engine_config(config_path: Path | None = None) -> EngineConfig:
    """Engine settings, with the database URL environment override applied."""
    engine = _load(config_path).engine
    override = os.environ.get(DATABASE_URL_ENV)
    if override:
        engine = dataclasses.replace(engine, database_url=override)
    return engine


def get_catalog(config_path: Path | None = None) -> CatalogDef:
    """Forms and approval settings to seed into the catalog."""
    return _load(config_path).catalog


__all__ = [
    "ApprovalConfiguration",
    "CatalogDef",
    "DATABASE_URL_ENV",
    "DEFAULT_CONFIG_PATH",
    "EngineConfig",
    "FormDef",
    "SettingDef",
    "get_catalog",
    "get_engine_config",
]
