"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Reads a YAML file and parses it into the frozen ``ledger_config.schema``
dataclasses.  Callers go through ``ledger_config.load_settings()``, which
also applies environment overrides.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown section or key, or a value of the wrong type  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    AgingSettings,
    BucketSettings,
    DatabaseSettings,
    LedgerConfiguration,
    LedgerSettings,
    ReportingSettings,
)

_SECTIONS = ("database", "ledger", "reporting", "aging")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load one YAML file; an empty file gives an empty dict."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of the parsed document."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _section(data: dict[str, Any], name: str, allowed: tuple[str, ...]) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"{name}: expected a mapping, got {type(section).__name__}")
    unknown = sorted(set(section) - set(allowed))
    if unknown:
        raise ValueError(f"{name}: unknown keys {unknown}")
    return section


def _bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{key}: expected true or false, got {value!r}")
    return value


def _int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key}: expected an integer, got {value!r}")
    return value


def _optional_int(value: Any, key: str) -> int | None:
    return None if value is None else _int(value, key)


def _str_tuple(value: Any, key: str) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValueError(f"{key}: expected a list of strings, got {value!r}")
    return tuple(str(item).lower() for item in value)


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    section = _section(data, "database", ("url", "echo", "pool_size"))
    defaults = DatabaseSettings()
    return DatabaseSettings(
        url=str(section.get("url", defaults.url)),
        echo=_bool(section.get("echo", defaults.echo), "database.echo"),
        pool_size=_int(section.get("pool_size", defaults.pool_size), "database.pool_size"),
    )


def parse_ledger(data: dict[str, Any]) -> LedgerSettings:
    section = _section(data, "ledger", ("default_currency", "enforce_entry_currency"))
    defaults = LedgerSettings()
    return LedgerSettings(
        default_currency=str(section.get("default_currency", defaults.default_currency)).upper(),
        enforce_entry_currency=_bool(
            section.get("enforce_entry_currency", defaults.enforce_entry_currency),
            "ledger.enforce_entry_currency",
        ),
    )


def parse_reporting(data: dict[str, Any]) -> ReportingSettings:
    section = _section(
        data,
        "reporting",
        (
            "entity_name",
            "include_zero_balances",
            "cash_sub_groups",
            "investing_keywords",
            "financing_keywords",
        ),
    )
    defaults = ReportingSettings()
    return ReportingSettings(
        entity_name=str(section.get("entity_name", defaults.entity_name)),
        include_zero_balances=_bool(
            section.get("include_zero_balances", defaults.include_zero_balances),
            "reporting.include_zero_balances",
        ),
        cash_sub_groups=_str_tuple(
            section.get("cash_sub_groups", defaults.cash_sub_groups),
            "reporting.cash_sub_groups",
        ),
        investing_keywords=_str_tuple(
            section.get("investing_keywords", defaults.investing_keywords),
            "reporting.investing_keywords",
        ),
        financing_keywords=_str_tuple(
            section.get("financing_keywords", defaults.financing_keywords),
            "reporting.financing_keywords",
        ),
    )


def parse_aging(data: dict[str, Any]) -> AgingSettings:
    section = _section(data, "aging", ("buckets",))
    raw = section.get("buckets")
    if raw is None:
        return AgingSettings()
    if not isinstance(raw, list) or not raw:
        raise ValueError("aging.buckets: expected a non-empty list")

    buckets = []
    for index, item in enumerate(raw):
        key = f"aging.buckets[{index}]"
        if not isinstance(item, dict) or "name" not in item:
            raise ValueError(f"{key}: expected a mapping with a name")
        buckets.append(
            BucketSettings(
                name=str(item["name"]),
                min_days=_optional_int(item.get("min_days"), f"{key}.min_days"),
                max_days=_optional_int(item.get("max_days"), f"{key}.max_days"),
            )
        )
    return AgingSettings(buckets=tuple(buckets))


def parse_configuration(
    data: dict[str, Any],
    source: str | None = None,
) -> LedgerConfiguration:
    """
    Parse a whole document.

    Raises:
        ValueError: Unknown top-level section or any invalid value.
    """
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"Unknown configuration sections {unknown}")
    return LedgerConfiguration(
        database=parse_database(data),
        ledger=parse_ledger(data),
        reporting=parse_reporting(data),
        aging=parse_aging(data),
        source=source,
        checksum=compute_checksum(data),
    )
