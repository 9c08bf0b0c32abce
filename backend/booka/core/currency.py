"""Currency helpers for converting between minor and major units."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

# ISO 4217 currencies without a minor unit, as treated by Stripe.
ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "BIF",
        "CLP",
        "DJF",
        "GNF",
        "JPY",
        "KMF",
        "KRW",
        "MGA",
        "PYG",
        "RWF",
        "UGX",
        "VND",
        "VUV",
        "XAF",
        "XOF",
        "XPF",
    }
)

Number = Union[int, float, Decimal, str]


def normalize_currency(currency: str) -> str:
    return (currency or "").strip().upper()


def minor_unit_factor(currency: str) -> int:
    """Return how many minor units make one major unit for ``currency``."""
    return 1 if normalize_currency(currency) in ZERO_DECIMAL_CURRENCIES else 100


def to_major_units(amount_minor: Number, currency: str) -> Decimal:
    """Convert a minor-unit amount (kobo, cents) into major units with 2 decimal places."""
    factor = Decimal(minor_unit_factor(currency))
    major = Decimal(str(amount_minor)) / factor
    return major.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def to_minor_units(amount_major: Number, currency: str) -> int:
    factor = Decimal(minor_unit_factor(currency))
    minor = (Decimal(str(amount_major)) * factor).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(minor)
