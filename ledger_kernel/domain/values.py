"""
Values -- Immutable, self-validating monetary value objects.

Responsibility:
    Currency and Money, plus the minor-unit conversions the posting path
    uses to compare debits and credits exactly.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Failure modes:
    - ValueError on construction with an invalid amount or currency.
    - ValueError when arithmetic or comparison mixes currencies.
    - ValueError from to_minor_units when an amount is finer than the
      currency's minor unit.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from functools import total_ordering

from ledger_kernel.domain.currency import CurrencyRegistry


@dataclass(frozen=True, slots=True)
class Currency:
    """
    ISO 4217 currency code value object.

    Guarantees:
        - code is uppercase, stripped, and known to CurrencyRegistry.
    """

    code: str

    def __post_init__(self) -> None:
        normalized = self.code.upper().strip() if self.code else ""
        if not CurrencyRegistry.is_valid(normalized):
            raise ValueError(f"Invalid ISO 4217 currency code: {self.code}")
        object.__setattr__(self, "code", normalized)

    @property
    def decimal_places(self) -> int:
        return CurrencyRegistry.get_decimal_places(self.code)

    @property
    def minor_unit(self) -> Decimal:
        return Decimal(1).scaleb(-self.decimal_places)

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


def to_minor_units(amount: Decimal, currency: str | Currency) -> int:
    """
    Convert a Decimal amount to an integer count of minor units.

    Raises:
        ValueError: If the amount has more precision than the currency
            allows (e.g. 10.005 USD).
    """
    code = currency.code if isinstance(currency, Currency) else currency
    places = CurrencyRegistry.get_decimal_places(code)
    scaled = amount.scaleb(places)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"{amount} is finer than the minor unit of {code} ({places} places)"
        )
    return int(scaled)


def from_minor_units(units: int, currency: str | Currency) -> Decimal:
    """Convert an integer count of minor units back to a Decimal amount."""
    code = currency.code if isinstance(currency, Currency) else currency
    places = CurrencyRegistry.get_decimal_places(code)
    return Decimal(units).scaleb(-places)


def is_representable(amount: Decimal, currency: str | Currency) -> bool:
    """True when ``amount`` is an exact multiple of the currency minor unit."""
    try:
        to_minor_units(amount, currency)
    except ValueError:
        return False
    return True


@total_ordering
@dataclass(frozen=True, slots=True)
class Money:
    """
    A Decimal amount tagged with its Currency.

    Arithmetic and ordering only work between amounts of the same
    currency; there is no conversion and no implicit rounding.
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        if isinstance(self.amount, float):
            raise ValueError(f"Money amount must not be float: {self.amount!r}")
        if not isinstance(self.amount, Decimal):
            try:
                object.__setattr__(self, "amount", Decimal(str(self.amount)))
            except (InvalidOperation, ValueError) as e:
                raise ValueError(f"Invalid amount: {self.amount}") from e
        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(f"currency must be Currency or str, got {type(self.currency)}")

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        if isinstance(amount, (str, int)):
            amount = Decimal(str(amount))
        return cls(amount=amount, currency=currency)

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        return cls(amount=Decimal("0"), currency=currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    @property
    def minor_units(self) -> int:
        """Amount as an integer count of minor units (exact or ValueError)."""
        return to_minor_units(self.amount, self.currency)

    def round(self, rounding: str = ROUND_HALF_UP) -> Money:
        """Round to the currency's decimal places."""
        return self._with(self.amount.quantize(self.currency.minor_unit, rounding=rounding))

    def _with(self, amount: Decimal) -> Money:
        return Money(amount=amount, currency=self.currency)

    def _same_currency(self, other: object, verb: str) -> bool:
        if not isinstance(other, Money):
            return False
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot {verb} Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )
        return True

    def __add__(self, other: Money) -> Money:
        if not self._same_currency(other, "add"):
            return NotImplemented
        return self._with(self.amount + other.amount)

    def __sub__(self, other: Money) -> Money:
        if not self._same_currency(other, "subtract"):
            return NotImplemented
        return self._with(self.amount - other.amount)

    def __neg__(self) -> Money:
        return self._with(-self.amount)

    def __abs__(self) -> Money:
        return self._with(abs(self.amount))

    def __lt__(self, other: Money) -> bool:
        if not self._same_currency(other, "compare"):
            return NotImplemented
        return self.amount < other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.amount!r}, {self.currency!r})"
