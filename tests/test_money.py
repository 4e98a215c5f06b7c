from decimal import Decimal

import pytest

from fleet_ledger.money import coerce, to_json_number, total


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, Decimal("0")),
        ("abc", Decimal("0")),
        ("12.5", Decimal("12.5")),
        (" 7 ", Decimal("7")),
        ("", Decimal("0")),
        (-3, Decimal("-3")),
        (0.1, Decimal("0.1")),
        (float("nan"), Decimal("0")),
        (float("inf"), Decimal("0")),
        ("NaN", Decimal("0")),
        ("Infinity", Decimal("0")),
        ("1_000", Decimal("0")),
        ("١٢", Decimal("0")),
        ("１２", Decimal("0")),
        ("12,5", Decimal("0")),
        ("-.5", Decimal("-0.5")),
        ("1e3", Decimal("1e3")),
        ("+7.", Decimal("7")),
        (1e20, Decimal("1e20")),
        (Decimal("4.20"), Decimal("4.20")),
        (True, Decimal("1")),
        ([1, 2], Decimal("0")),
        ({"amount": 3}, Decimal("0")),
    ],
)
def test_coerce(value, expected):
    assert coerce(value) == expected


@pytest.mark.parametrize("value", [None, "abc", "12.5", -3, 0.1, float("nan"), "1e3"])
def test_coerce_is_idempotent(value):
    assert coerce(coerce(value)) == coerce(value)


def test_total_skips_unusable_values():
    assert total(["10", None, 2.5, "x", Decimal("1.25")]) == Decimal("13.75")


def test_to_json_number_keeps_integers_integral():
    assert to_json_number(Decimal("100.00")) == 100
    assert isinstance(to_json_number(Decimal("100.00")), int)
    assert to_json_number(Decimal("12.5")) == 12.5
