"""
Ledger configuration schema.

Frozen dataclasses produced by ``ledger_config.loader`` from YAML.  Each
section validates itself on construction, so a malformed file fails at
load time with a ValueError naming the bad key.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ledger_kernel.domain.currency import CurrencyRegistry


def _check_currency(value: str, key: str) -> None:
    if not isinstance(value, str) or not CurrencyRegistry.is_valid(value):
        raise ValueError(f"{key}: unknown ISO 4217 currency {value!r}")


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///:memory:"
    echo: bool = False
    pool_size: int = 20

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("database.url must not be empty")
        if self.pool_size < 1:
            raise ValueError("database.pool_size must be at least 1")


@dataclass(frozen=True)
class LedgerSettings:
    default_currency: str = "USD"
    # Every account on an entry must share the entry currency
    enforce_entry_currency: bool = True

    def __post_init__(self) -> None:
        _check_currency(self.default_currency, "ledger.default_currency")


@dataclass(frozen=True)
class ReportingSettings:
    entity_name: str = "Company"
    include_zero_balances: bool = False
    cash_sub_groups: tuple[str, ...] = ("cash", "bank")
    investing_keywords: tuple[str, ...] = ("fixed asset", "equipment")
    financing_keywords: tuple[str, ...] = ("loan", "capital")

    def __post_init__(self) -> None:
        if not self.cash_sub_groups:
            raise ValueError("reporting.cash_sub_groups must name at least one sub-group")


@dataclass(frozen=True)
class BucketSettings:
    name: str
    min_days: int | None
    max_days: int | None


@dataclass(frozen=True)
class AgingSettings:
    buckets: tuple[BucketSettings, ...] = (
        BucketSettings("current", None, -1),
        BucketSettings("0-30", 0, 30),
        BucketSettings("31-60", 31, 60),
        BucketSettings("61-90", 61, 90),
        BucketSettings("90+", 91, None),
    )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerConfiguration:
    """Complete runtime configuration."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    ledger: LedgerSettings = field(default_factory=LedgerSettings)
    reporting: ReportingSettings = field(default_factory=ReportingSettings)
    aging: AgingSettings = field(default_factory=AgingSettings)
    source: str | None = None
    checksum: str = ""
