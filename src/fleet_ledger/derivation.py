"""Derived amounts on a trip expense.

The five computed fields of a :class:`~fleet_ledger.models.TripExpense` are a
pure function of its raw amounts and of three amounts on the linked trip.
Callers re-run :func:`derive` whenever either input changes and merge the
result into the record before it is saved.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from fleet_ledger.models import Trip, TripExpense
from fleet_ledger.money import ZERO, coerce


# Paid in cash out of the allowance. Excludes poUnioil, autosweep, easytrip
# and the PO discount.
CASH_EXPENSE_FIELDS = (
    "diesel_cash",
    "tollgate_cash",
    "meal",
    "gate_pass",
    "vulcanizing",
    "parking",
    "traffic_violation",
    "carwash",
    "roro",
    "mano",
    "truck_maintenance",
    "other_expenses",
    "ca_driver",
    "ca_helper",
)

# Company cost of the trip on top of driver and helper rates. Excludes cash
# advances and client charges.
TRIP_COST_FIELDS = (
    "po_unioil",
    "autosweep",
    "easytrip",
    "diesel_cash",
    "tollgate_cash",
    "meal",
    "gate_pass",
    "vulcanizing",
    "parking",
    "traffic_violation",
    "carwash",
    "roro",
    "mano",
    "truck_maintenance",
    "other_expenses",
)

RawExpense = Union[TripExpense, Mapping[str, Any]]


@dataclass(frozen=True)
class DerivedExpenseFields:
    total_charges_client: Decimal
    cash_total_expenses: Decimal
    cash_return: Decimal
    total_expenses: Decimal
    total_net: Decimal

    def as_record(self) -> dict[str, Any]:
        """Partial record update keyed the way expense records are stored."""
        partial = TripExpense(
            total_charges_client=self.total_charges_client,
            cash_total_expenses=self.cash_total_expenses,
            cash_return=self.cash_return,
            total_expenses=self.total_expenses,
            total_net=self.total_net,
        ).to_record()
        return {key: partial[key] for key in _DERIVED_KEYS}


_DERIVED_KEYS = tuple(TripExpense.record_key(name) for name in TripExpense.amount_fields(derived=True))


def derive(raw: RawExpense, trip: Optional[Trip] = None) -> DerivedExpenseFields:
    """Compute the derived amounts for one expense.

    ``raw`` is either a :class:`TripExpense` or a stored record mapping
    (camelCase keys, values of any type). Without a linked trip the driver
    rate, helper rate and net rate count as zero.
    """
    amounts = _raw_amounts(raw)

    total_charges_client = amounts["mano_charges_client"] + amounts["other_exp_charges_client"]
    cash_total_expenses = _sum(amounts, CASH_EXPENSE_FIELDS) + total_charges_client
    cash_return = amounts["allowance"] - cash_total_expenses

    driver_rate = trip.driver_rate if trip is not None else ZERO
    helper_rate = trip.helper_rate if trip is not None else ZERO
    net_rate = trip.net_rate if trip is not None else ZERO

    total_expenses = driver_rate + helper_rate + _sum(amounts, TRIP_COST_FIELDS)
    total_net = net_rate - total_expenses

    return DerivedExpenseFields(
        total_charges_client=total_charges_client,
        cash_total_expenses=cash_total_expenses,
        cash_return=cash_return,
        total_expenses=total_expenses,
        total_net=total_net,
    )


def apply(expense: TripExpense, trip: Optional[Trip] = None) -> TripExpense:
    """Return ``expense`` with its derived fields recomputed against ``trip``."""
    derived = derive(expense, trip)
    return replace(
        expense,
        total_charges_client=derived.total_charges_client,
        cash_total_expenses=derived.cash_total_expenses,
        cash_return=derived.cash_return,
        total_expenses=derived.total_expenses,
        total_net=derived.total_net,
    )


def _raw_amounts(raw: RawExpense) -> dict[str, Decimal]:
    if isinstance(raw, TripExpense):
        return {name: coerce(getattr(raw, name)) for name in TripExpense.amount_fields(derived=False)}
    return {
        name: coerce(raw.get(TripExpense.record_key(name)))
        for name in TripExpense.amount_fields(derived=False)
    }


def _sum(amounts: Mapping[str, Decimal], names: tuple[str, ...]) -> Decimal:
    return sum((amounts[name] for name in names), ZERO)


__all__ = [
    "CASH_EXPENSE_FIELDS",
    "TRIP_COST_FIELDS",
    "DerivedExpenseFields",
    "derive",
    "apply",
]
