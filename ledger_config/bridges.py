"""
Config -> Kernel / Engine Bridges.

Turn settings into the constructor arguments and objects the kernel and
engines take.  These live here because the kernel must never import
ledger_config.

Usage:
    settings = load_settings()
    init_database(settings)
    journal = JournalService(session, clock, **journal_service_options(settings))
    calculator = AgingCalculator(build_aging_buckets(settings))
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.engine import Engine

from ledger_config.schema import LedgerConfiguration
from ledger_engines.aging import AgeBucket, validate_buckets
from ledger_kernel.db.engine import init_engine_from_url


def journal_service_options(settings: LedgerConfiguration) -> dict[str, Any]:
    """Keyword arguments for JournalService."""
    return {"enforce_entry_currency": settings.ledger.enforce_entry_currency}


def build_aging_buckets(settings: LedgerConfiguration) -> tuple[AgeBucket, ...]:
    """
    Configured aging buckets, checked for full coverage.

    Raises:
        ValueError: The configured buckets leave a gap or overlap.
    """
    return validate_buckets(
        AgeBucket(b.name, b.min_days, b.max_days) for b in settings.aging.buckets
    )


def init_database(settings: LedgerConfiguration) -> Engine:
    """Initialize the kernel engine from the database section."""
    return init_engine_from_url(
        settings.database.url,
        echo=settings.database.echo,
        pool_size=settings.database.pool_size,
    )
