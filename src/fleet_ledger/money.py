from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable


ZERO = Decimal("0")

_NUMERIC = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")


def coerce(value: Any) -> Decimal:
    """Return ``value`` as a Decimal amount, mapping anything unusable to zero.

    Missing values, non-numeric strings, NaN and infinities all become
    ``Decimal("0")``. Never raises.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = _parse(str(value))
    elif isinstance(value, str):
        amount = _parse(value.strip())
    else:
        return ZERO
    if not amount.is_finite():
        return ZERO
    return amount


def total(values: Iterable[Any]) -> Decimal:
    return sum((coerce(value) for value in values), ZERO)


def to_json_number(amount: Decimal) -> int | float:
    """Render a Decimal the way a JSON number is written by the dashboard."""
    amount = coerce(amount)
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


def _parse(text: str) -> Decimal:
    if not _NUMERIC.fullmatch(text):
        return ZERO
    try:
        return Decimal(text)
    except InvalidOperation:
        return ZERO


__all__ = ["ZERO", "coerce", "total", "to_json_number"]
