"""
Module: ledger_engines.aging
Responsibility:
    Classify open receivable and payable items into days-past-due buckets
    and total them per counterparty and overall.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel domain values, exceptions and logging.

Invariants enforced:
    - Purity: the report date is a parameter; no clock access.
    - Conservation: for every counterparty and for the grand total, the
      bucket totals sum to the open item balances.
    - One currency per report; Money arithmetic is exact Decimal.

Failure modes:
    - CurrencyMismatchError when open items carry different currencies.
    - ValueError for a bucket set that leaves a gap or overlaps.

Usage:
    from ledger_engines.aging import AgingCalculator, OpenItem
    from ledger_kernel.domain.values import Money

    report = AgingCalculator().age(
        open_items=[OpenItem("INV-1", "C1", "Acme", date(2024, 1, 1), Money.of("500", "USD"))],
        as_of_date=date(2024, 2, 15),
    )
    report.bucket_total("31-60")  # Money 500 USD
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.values import Money
from ledger_kernel.exceptions import CurrencyMismatchError
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.aging")

DEFAULT_CURRENCY = "USD"


@dataclass(frozen=True)
class AgeBucket:
    """
    A contiguous range of days past due.

    ``min_days=None`` means unbounded below (the ``current`` bucket holds
    items not yet due, i.e. negative ages); ``max_days=None`` means
    unbounded above.
    """

    name: str
    min_days: int | None
    max_days: int | None

    def __post_init__(self) -> None:
        if (
            self.min_days is not None
            and self.max_days is not None
            and self.max_days < self.min_days
        ):
            raise ValueError(f"Bucket {self.name}: max_days cannot be less than min_days")

    def contains(self, age_days: int) -> bool:
        if self.min_days is not None and age_days < self.min_days:
            return False
        if self.max_days is not None and age_days > self.max_days:
            return False
        return True


STANDARD_BUCKETS: tuple[AgeBucket, ...] = (
    AgeBucket("current", None, -1),
    AgeBucket("0-30", 0, 30),
    AgeBucket("31-60", 31, 60),
    AgeBucket("61-90", 61, 90),
    AgeBucket("90+", 91, None),
)


def validate_buckets(buckets: Sequence[AgeBucket]) -> tuple[AgeBucket, ...]:
    """
    Check that ``buckets`` cover every integer age exactly once, in order.

    Raises:
        ValueError: Empty set, open lower end missing, gap or overlap
            between neighbours, or open upper end missing.
    """
    buckets = tuple(buckets)
    if not buckets:
        raise ValueError("At least one aging bucket is required")
    if buckets[0].min_days is not None:
        raise ValueError(f"First bucket {buckets[0].name} must be open below")
    if buckets[-1].max_days is not None:
        raise ValueError(f"Last bucket {buckets[-1].name} must be open above")
    for previous, current in zip(buckets, buckets[1:]):
        if previous.max_days is None or current.min_days is None:
            raise ValueError(f"Bucket {current.name} overlaps {previous.name}")
        if current.min_days != previous.max_days + 1:
            raise ValueError(
                f"Buckets {previous.name} and {current.name} are not contiguous"
            )
    names = [b.name for b in buckets]
    if len(set(names)) != len(names):
        raise ValueError("Bucket names must be unique")
    return buckets


@dataclass(frozen=True)
class OpenItem:
    """An unpaid invoice or bill as seen by the aging engine."""

    item_id: str
    counterparty_id: str | None
    counterparty_name: str | None
    due_date: date
    balance: Money
    document_date: date | None = None
    reference: str | None = None

    @property
    def entity_key(self) -> str:
        return self.counterparty_id or self.counterparty_name or ""


@dataclass(frozen=True)
class AgedItem:
    item: OpenItem
    age_days: int
    bucket: str

    @property
    def is_overdue(self) -> bool:
        return self.age_days > 0


@dataclass(frozen=True)
class EntityAging:
    """
    Bucket totals for one counterparty (or, for the grand total row,
    for everybody).
    """

    counterparty_id: str | None
    counterparty_name: str | None
    bucket_totals: dict[str, Money] = field(default_factory=dict)
    total_unpaid: Money | None = None
    total_overdue: Money | None = None
    item_count: int = 0


@dataclass(frozen=True)
class AgingReport:
    as_of_date: date
    currency: str
    buckets: tuple[AgeBucket, ...]
    items: tuple[AgedItem, ...]
    entities: tuple[EntityAging, ...]
    grand_total: EntityAging

    def bucket_total(self, bucket_name: str) -> Money:
        return self.grand_total.bucket_totals[bucket_name]

    def items_in_bucket(self, bucket_name: str) -> tuple[AgedItem, ...]:
        return tuple(i for i in self.items if i.bucket == bucket_name)

    def for_entity(self, counterparty_key: str) -> EntityAging | None:
        for entity in self.entities:
            if (entity.counterparty_id or entity.counterparty_name) == counterparty_key:
                return entity
        return None


class AgingCalculator:
    """
    Ages open items against a report date.

    Contract:
        Pure -- no I/O, no clock.  ``age`` returns the same report for the
        same inputs.
    """

    def __init__(self, buckets: Sequence[AgeBucket] | None = None):
        self.buckets = validate_buckets(buckets or STANDARD_BUCKETS)

    @staticmethod
    def days_past_due(due_date: date, as_of_date: date) -> int:
        """Whole days from due date to report date; negative if not yet due."""
        return (as_of_date - due_date).days

    def classify(self, age_days: int) -> AgeBucket:
        for bucket in self.buckets:
            if bucket.contains(age_days):
                return bucket
        # validate_buckets guarantees full coverage
        raise ValueError(f"Age {age_days} does not fit any bucket")

    @traced_engine("aging", "1.0", fingerprint_fields=("open_items", "as_of_date"))
    def age(
        self,
        open_items: Sequence[OpenItem],
        as_of_date: date,
        currency: str | None = None,
    ) -> AgingReport:
        """
        Bucket every open item and total per counterparty.

        Args:
            currency: Report currency when ``open_items`` is empty; when
                given with items, every item must be in it.

        Raises:
            CurrencyMismatchError: Items in more than one currency.
        """
        open_items = list(open_items)
        report_currency = self._report_currency(open_items, currency)

        aged = []
        for item in open_items:
            age_days = self.days_past_due(item.due_date, as_of_date)
            aged.append(AgedItem(item=item, age_days=age_days, bucket=self.classify(age_days).name))

        by_entity: dict[str, list[AgedItem]] = {}
        for aged_item in aged:
            by_entity.setdefault(aged_item.item.entity_key, []).append(aged_item)

        entities = [
            self._totals(
                entity_items[0].item.counterparty_id,
                entity_items[0].item.counterparty_name,
                entity_items,
                report_currency,
            )
            for entity_items in by_entity.values()
        ]
        entities.sort(key=lambda e: ((e.counterparty_name or ""), (e.counterparty_id or "")))

        grand_total = self._totals(None, "Total", aged, report_currency)

        logger.info(
            "aging_report_generated",
            extra={
                "as_of_date": as_of_date.isoformat(),
                "item_count": len(aged),
                "entity_count": len(entities),
                "currency": report_currency,
                "total_unpaid": str(grand_total.total_unpaid.amount),
            },
        )

        return AgingReport(
            as_of_date=as_of_date,
            currency=report_currency,
            buckets=self.buckets,
            items=tuple(aged),
            entities=tuple(entities),
            grand_total=grand_total,
        )

    @staticmethod
    def _report_currency(items: list[OpenItem], currency: str | None) -> str:
        expected = currency or (items[0].balance.currency.code if items else DEFAULT_CURRENCY)
        for item in items:
            if item.balance.currency.code != expected:
                raise CurrencyMismatchError(
                    expected, item.balance.currency.code, f"open item {item.item_id}",
                )
        return expected

    def _totals(
        self,
        counterparty_id: str | None,
        counterparty_name: str | None,
        items: list[AgedItem],
        currency: str,
    ) -> EntityAging:
        zero = Money.zero(currency)
        bucket_totals = {bucket.name: zero for bucket in self.buckets}
        total = zero
        overdue = zero
        for aged_item in items:
            balance = aged_item.item.balance
            bucket_totals[aged_item.bucket] = bucket_totals[aged_item.bucket] + balance
            total = total + balance
            if aged_item.is_overdue:
                overdue = overdue + balance
        return EntityAging(
            counterparty_id=counterparty_id,
            counterparty_name=counterparty_name,
            bucket_totals=bucket_totals,
            total_unpaid=total,
            total_overdue=overdue,
            item_count=len(items),
        )
