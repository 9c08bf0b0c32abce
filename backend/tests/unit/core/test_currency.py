"""Unit tests for minor/major unit conversion."""

from decimal import Decimal

import pytest

from booka.core.currency import minor_unit_factor, normalize_currency, to_major_units, to_minor_units


@pytest.mark.parametrize(
    "amount_major,currency,expected",
    [
        (Decimal("25.00"), "NGN", 2500),
        (Decimal("19.995"), "usd", 2000),
        ("0.01", "USD", 1),
        (Decimal("1500"), "JPY", 1500),
    ],
)
def test_to_minor_units(amount_major, currency, expected):
    assert to_minor_units(amount_major, currency) == expected


def test_to_major_units_keeps_two_places():
    assert to_major_units(250000, "NGN") == Decimal("2500.00")
    assert str(to_major_units(1999, "USD")) == "19.99"
    assert to_major_units(500, "JPY") == Decimal("500.00")


def test_currency_helpers():
    assert normalize_currency(" ngn ") == "NGN"
    assert normalize_currency(None) == ""
    assert minor_unit_factor("krw") == 1
    assert minor_unit_factor("GBP") == 100
