from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from fleet_ledger.models import Trip, TripExpense
from fleet_ledger.money import ZERO, coerce, to_json_number


TRIP_TOTAL_FIELDS = Trip.amount_fields()

# Read from the linked trip when totalling expenses.
EXPENSE_TRIP_FIELDS = (
    "gross_amount",
    "total_deduction",
    "net_rate",
    "driver_rate",
    "helper_rate",
)

EXPENSE_TOTAL_FIELDS = TripExpense.amount_fields()


@dataclass(frozen=True)
class PeriodTotals:
    """Field-wise sums over a set of records plus the number of records."""

    count: int = 0
    amounts: Mapping[str, Decimal] = field(default_factory=dict)

    @classmethod
    def zero(cls, names: Iterable[str]) -> "PeriodTotals":
        return cls(count=0, amounts={name: ZERO for name in names})

    def __getitem__(self, name: str) -> Decimal:
        return self.amounts[name]

    def __add__(self, other: "PeriodTotals") -> "PeriodTotals":
        if not isinstance(other, PeriodTotals):
            return NotImplemented
        if set(self.amounts) != set(other.amounts):
            raise ValueError("Cannot add totals of different shapes")
        return PeriodTotals(
            count=self.count + other.count,
            amounts={name: value + other.amounts[name] for name, value in self.amounts.items()},
        )

    def to_dict(self) -> dict:
        payload = {"count": self.count}
        payload.update({name: to_json_number(value) for name, value in self.amounts.items()})
        return payload


def aggregate_trips(trips: Iterable[Trip]) -> PeriodTotals:
    count = 0
    sums = dict.fromkeys(TRIP_TOTAL_FIELDS, ZERO)
    for trip in trips:
        count += 1
        for name in TRIP_TOTAL_FIELDS:
            sums[name] += coerce(getattr(trip, name))
    return PeriodTotals(count=count, amounts=sums)


def aggregate_expenses(
    expenses: Iterable[TripExpense],
    trips_by_id: Mapping[str, Trip],
) -> PeriodTotals:
    """Sum expenses together with the trip amounts of their linked trips.

    An expense whose trip cannot be found still counts and adds its own
    amounts; the trip amounts contribute zero.
    """
    count = 0
    sums = dict.fromkeys(EXPENSE_TRIP_FIELDS + EXPENSE_TOTAL_FIELDS, ZERO)
    for expense in expenses:
        count += 1
        trip: Optional[Trip] = trips_by_id.get(expense.trip_id) if expense.trip_id else None
        if trip is not None:
            for name in EXPENSE_TRIP_FIELDS:
                sums[name] += coerce(getattr(trip, name))
        for name in EXPENSE_TOTAL_FIELDS:
            sums[name] += coerce(getattr(expense, name))
    return PeriodTotals(count=count, amounts=sums)


__all__ = [
    "TRIP_TOTAL_FIELDS",
    "EXPENSE_TRIP_FIELDS",
    "EXPENSE_TOTAL_FIELDS",
    "PeriodTotals",
    "aggregate_trips",
    "aggregate_expenses",
]
