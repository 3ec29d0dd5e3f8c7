"""
ledger_config -- single entrypoint for ledger configuration.

Responsibility:
    ``load_settings()`` is the one way to obtain configuration at runtime.
    It reads a YAML file (``yaml.safe_load``) into frozen settings
    dataclasses and applies environment overrides.

Architecture position:
    Configuration -- sits above ``ledger_kernel`` and ``ledger_engines``.
    The kernel MUST NEVER import from ``ledger_config``; ``bridges``
    translates settings into kernel and engine inputs.

File selection, first match wins:
    1. the ``path`` argument
    2. the ``LEDGER_CONFIG`` environment variable
    3. the packaged ``defaults.yaml``

``DATABASE_URL``, when set, replaces ``database.url``.

Failure modes:
    - ``FileNotFoundError`` -- the selected file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from ledger_config.loader import load_yaml_file, parse_configuration
from ledger_config.schema import (
    AgingSettings,
    BucketSettings,
    DatabaseSettings,
    LedgerConfiguration,
    LedgerSettings,
    ReportingSettings,
)

_logger = logging.getLogger("ledger_kernel.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_ENV_VAR = "LEDGER_CONFIG"
DATABASE_URL_ENV_VAR = "DATABASE_URL"


def load_settings(
    path: str | Path | None = None,
    environ: dict[str, str] | None = None,
) -> LedgerConfiguration:
    """
    Load and validate the active configuration.

    Args:
        path: Explicit YAML file; overrides LEDGER_CONFIG.
        environ: Environment mapping (``os.environ`` when None).
    """
    env = os.environ if environ is None else environ
    selected = Path(path) if path is not None else Path(env.get(CONFIG_ENV_VAR) or DEFAULTS_PATH)

    settings = parse_configuration(load_yaml_file(selected), source=str(selected))

    database_url = env.get(DATABASE_URL_ENV_VAR)
    if database_url:
        settings = dataclasses.replace(
            settings,
            database=dataclasses.replace(settings.database, url=database_url),
        )

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "config_source": str(selected),
            "checksum": settings.checksum,
            "default_currency": settings.ledger.default_currency,
            "database_url_overridden": bool(database_url),
        },
    )
    return settings


__all__ = [
    "AgingSettings",
    "BucketSettings",
    "DatabaseSettings",
    "LedgerConfiguration",
    "LedgerSettings",
    "ReportingSettings",
    "load_settings",
]
