"""
Reporting Configuration Schema.

Report-wide options and the heuristics the cash flow statement uses to
split movements into operating, investing and financing activities.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Self

from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from ledger_config.schema import LedgerConfiguration

logger = get_logger("modules.reporting.config")


@dataclass
class CashFlowClassification:
    """
    Keyword rules for cash flow buckets.

    An account is investing when its sub-group is in
    ``investing_sub_groups`` or its name contains an investing keyword,
    financing likewise, and operating otherwise.  Matching is
    case-insensitive; investing is checked first.
    """

    investing_keywords: tuple[str, ...] = ("fixed asset", "equipment")
    financing_keywords: tuple[str, ...] = ("loan", "capital")
    investing_sub_groups: tuple[str, ...] = ("fixed_asset",)
    financing_sub_groups: tuple[str, ...] = ("long_term_liability",)

    def matches(self, name: str, sub_group: str | None, keywords, sub_groups) -> bool:
        if sub_group is not None and sub_group in sub_groups:
            return True
        lowered = name.lower()
        return any(keyword in lowered for keyword in keywords)


@dataclass
class ReportingConfig:
    """
    Configuration schema for the reporting module.
    """

    classification: CashFlowClassification = field(
        default_factory=CashFlowClassification,
    )

    # Report currency when the caller names none
    default_currency: str = "USD"

    # Entity name shown on reports
    entity_name: str = "Company"

    # Whether to list accounts with a zero balance
    include_zero_balances: bool = False

    # Sub-groups whose accounts count as cash
    cash_sub_groups: tuple[str, ...] = ("cash", "bank")

    def __post_init__(self):
        if not CurrencyRegistry.is_valid(self.default_currency):
            raise ValueError("default_currency must be a known ISO 4217 code")
        if not self.cash_sub_groups:
            raise ValueError("cash_sub_groups must not be empty")

    @property
    def cash_sub_group_set(self) -> frozenset[str]:
        return frozenset(self.cash_sub_groups)

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        data = dict(data)
        if "classification" in data and isinstance(data["classification"], dict):
            data["classification"] = CashFlowClassification(**data["classification"])
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

    @classmethod
    def from_settings(cls, settings: LedgerConfiguration) -> Self:
        """Create config from loaded ledger settings."""
        reporting = settings.reporting
        logger.info(
            "reporting_config_loading_from_settings",
            extra={"config_source": settings.source},
        )
        return cls(
            classification=CashFlowClassification(
                investing_keywords=reporting.investing_keywords,
                financing_keywords=reporting.financing_keywords,
            ),
            default_currency=settings.ledger.default_currency,
            entity_name=reporting.entity_name,
            include_zero_balances=reporting.include_zero_balances,
            cash_sub_groups=reporting.cash_sub_groups,
        )
