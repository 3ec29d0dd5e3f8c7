"""Currency -- ISO 4217 registry and minor-unit precision."""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str

    @property
    def minor_unit(self) -> Decimal:
        """Smallest representable amount (0.01 for USD, 1 for JPY)."""
        return Decimal(1).scaleb(-self.decimal_places)

    @property
    def quantize_string(self) -> str:
        """String for Decimal.quantize() to round to this currency's precision."""
        if self.decimal_places == 0:
            return "1"
        return "0." + "0" * self.decimal_places


class CurrencyRegistry:
    """Registry of ISO 4217 currencies with their minor-unit exponent."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        # Major currencies
        "USD": CurrencyInfo("USD", 2, "US Dollar"),
        "EUR": CurrencyInfo("EUR", 2, "Euro"),
        "GBP": CurrencyInfo("GBP", 2, "Pound Sterling"),
        "CHF": CurrencyInfo("CHF", 2, "Swiss Franc"),
        "CAD": CurrencyInfo("CAD", 2, "Canadian Dollar"),
        "AUD": CurrencyInfo("AUD", 2, "Australian Dollar"),
        "NZD": CurrencyInfo("NZD", 2, "New Zealand Dollar"),
        "CNY": CurrencyInfo("CNY", 2, "Yuan Renminbi"),
        "INR": CurrencyInfo("INR", 2, "Indian Rupee"),
        "SGD": CurrencyInfo("SGD", 2, "Singapore Dollar"),
        "HKD": CurrencyInfo("HKD", 2, "Hong Kong Dollar"),
        "SEK": CurrencyInfo("SEK", 2, "Swedish Krona"),
        "NOK": CurrencyInfo("NOK", 2, "Norwegian Krone"),
        "DKK": CurrencyInfo("DKK", 2, "Danish Krone"),
        "MXN": CurrencyInfo("MXN", 2, "Mexican Peso"),
        "BRL": CurrencyInfo("BRL", 2, "Brazilian Real"),
        # African currencies
        "GHS": CurrencyInfo("GHS", 2, "Ghana Cedi"),
        "NGN": CurrencyInfo("NGN", 2, "Naira"),
        "KES": CurrencyInfo("KES", 2, "Kenyan Shilling"),
        "ZAR": CurrencyInfo("ZAR", 2, "Rand"),
        "EGP": CurrencyInfo("EGP", 2, "Egyptian Pound"),
        "MAD": CurrencyInfo("MAD", 2, "Moroccan Dirham"),
        "TZS": CurrencyInfo("TZS", 2, "Tanzanian Shilling"),
        "UGX": CurrencyInfo("UGX", 0, "Uganda Shilling"),
        "RWF": CurrencyInfo("RWF", 0, "Rwanda Franc"),
        "XOF": CurrencyInfo("XOF", 0, "CFA Franc BCEAO"),
        "XAF": CurrencyInfo("XAF", 0, "CFA Franc BEAC"),
        # Zero decimal currencies
        "JPY": CurrencyInfo("JPY", 0, "Yen"),
        "KRW": CurrencyInfo("KRW", 0, "Won"),
        "CLP": CurrencyInfo("CLP", 0, "Chilean Peso"),
        "ISK": CurrencyInfo("ISK", 0, "Iceland Krona"),
        "VND": CurrencyInfo("VND", 0, "Dong"),
        # Three decimal currencies
        "BHD": CurrencyInfo("BHD", 3, "Bahraini Dinar"),
        "KWD": CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
        "OMR": CurrencyInfo("OMR", 3, "Rial Omani"),
        "JOD": CurrencyInfo("JOD", 3, "Jordanian Dinar"),
        "TND": CurrencyInfo("TND", 3, "Tunisian Dinar"),
    }

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """Check if a currency code is a known ISO 4217 code."""
        if not code or not isinstance(code, str):
            return False
        return code.upper().strip() in cls._CURRENCIES

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        """Get currency information by code."""
        if not code or not isinstance(code, str):
            return None
        return cls._CURRENCIES.get(code.upper().strip())

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        """Get the minor-unit exponent for a currency."""
        info = cls.get_info(code)
        if info is None:
            raise ValueError(f"Invalid ISO 4217 currency code: {code!r}")
        return info.decimal_places

    @classmethod
    def validate(cls, code: str) -> str:
        """Validate and normalize a currency code."""
        if not code or not isinstance(code, str):
            raise ValueError(f"Invalid currency code: {code!r}")

        normalized = code.upper().strip()

        if len(normalized) != 3:
            raise ValueError(f"Currency code must be 3 characters: {code!r}")

        if normalized not in cls._CURRENCIES:
            raise ValueError(f"Invalid ISO 4217 currency code: {code!r}")

        return normalized

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        """Get all valid currency codes."""
        return frozenset(cls._CURRENCIES.keys())
