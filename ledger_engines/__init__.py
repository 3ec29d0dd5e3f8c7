"""
Module: ledger_engines
Responsibility:
    Pure calculation engines for the ledger: receivable/payable aging and
    hierarchical balance rollup.

Architecture position:
    Engines -- zero I/O.  May import ledger_kernel domain values,
    exceptions and logging.  MUST NOT import ledger_modules.

Invariants enforced:
    - No clock access: report dates are parameters.
    - Decimal-only arithmetic.
    - Every invocation is traced via ``@traced_engine``.
"""

from ledger_engines.aging import (
    STANDARD_BUCKETS,
    AgeBucket,
    AgedItem,
    AgingCalculator,
    AgingReport,
    EntityAging,
    OpenItem,
    validate_buckets,
)
from ledger_engines.rollup import RolledUpNode, RollupNode, RollupResult, rollup_balances
from ledger_engines.tracer import traced_engine

__all__ = [
    "AgeBucket",
    "AgedItem",
    "AgingCalculator",
    "AgingReport",
    "EntityAging",
    "OpenItem",
    "STANDARD_BUCKETS",
    "validate_buckets",
    "RolledUpNode",
    "RollupNode",
    "RollupResult",
    "rollup_balances",
    "traced_engine",
]
