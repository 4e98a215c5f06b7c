from .aggregation import PeriodTotals, aggregate_expenses, aggregate_trips
from .derivation import DerivedExpenseFields, derive
from .errors import (
    DuplicateRecordError,
    FleetLedgerError,
    ImportParseError,
    RecordNotFoundError,
    ValidationError,
)
from .models import RateMatrixEntry, Trip, TripExpense
from .money import coerce
from .rate_matrix import RateMatrix, normalize_area

__all__ = [
    "DerivedExpenseFields",
    "DuplicateRecordError",
    "FleetLedgerError",
    "ImportParseError",
    "PeriodTotals",
    "RateMatrix",
    "RateMatrixEntry",
    "RecordNotFoundError",
    "Trip",
    "TripExpense",
    "ValidationError",
    "aggregate_expenses",
    "aggregate_trips",
    "coerce",
    "derive",
    "normalize_area",
]
