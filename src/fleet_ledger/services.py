from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import AbstractSet, Any, Mapping, Optional

from fleet_ledger import derivation
from fleet_ledger.aggregation import PeriodTotals, aggregate_expenses, aggregate_trips
from fleet_ledger.errors import RecordNotFoundError
from fleet_ledger.filters import (
    TRIP_EXPENSES_PERMISSION,
    TRIP_MONITOR_PERMISSION,
    AccessPolicy,
    MappingDirectory,
    PersonnelDirectory,
    in_date_range,
    matches_search,
    within_personnel,
)
from fleet_ledger.models import RateMatrixEntry, Trip, TripExpense
from fleet_ledger.rate_matrix import RateMatrix
from fleet_ledger.repositories import RecordRepository, ReferenceRepository
from fleet_ledger.tabular import TabularSource, read_rows


logger = logging.getLogger(__name__)

TRIPS = "trips"
TRIP_EXPENSES = "trip_expenses"
EMPLOYEES = "employees"

RATE_MATRIX_DOCUMENT = "rate_matrix"


class TripService:
    """Stores trips and keeps the expenses linked to them in step."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.records = RecordRepository(conn)

    def get_trip(self, trip_id: str) -> Optional[Trip]:
        record = self.records.get(TRIPS, trip_id)
        return Trip.from_record(record) if record else None

    def list_trips(self) -> list[Trip]:
        return [Trip.from_record(record) for record in self.records.list(TRIPS)]

    def add_trip(self, record: Mapping[str, Any]) -> Trip:
        trip = Trip.from_record(record)
        with self.conn:
            trip_id = self.records.add(TRIPS, trip.to_record())
        return Trip.from_record({**trip.to_record(), "id": trip_id})

    def update_trip(self, trip_id: str, partial: Mapping[str, Any]) -> Trip:
        with self.conn:
            self.records.update(TRIPS, trip_id, partial)
            trip = self.get_trip(trip_id)
            refreshed = _refresh_linked_expenses(self.records, trip)
        logger.info("Trip %s updated; recomputed %d linked expenses", trip_id, refreshed)
        return trip

    def delete_trip(self, trip_id: str) -> None:
        with self.conn:
            self.records.remove(TRIPS, trip_id)


class ExpenseService:
    """Derives computed amounts on trip expenses before they are saved."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.records = RecordRepository(conn)

    def linked_trip(self, expense: TripExpense) -> Optional[Trip]:
        if not expense.trip_id:
            return None
        record = self.records.get(TRIPS, expense.trip_id)
        return Trip.from_record(record) if record else None

    def preview(self, record: Mapping[str, Any]) -> derivation.DerivedExpenseFields:
        expense = TripExpense.from_record(record)
        return derivation.derive(expense, self.linked_trip(expense))

    def save_expense(self, record: Mapping[str, Any]) -> TripExpense:
        expense = TripExpense.from_record(record)
        expense = derivation.apply(expense, self.linked_trip(expense))
        payload = expense.to_record()
        with self.conn:
            if expense.id:
                self.records.update(TRIP_EXPENSES, expense.id, payload)
                expense_id = expense.id
            else:
                expense_id = self.records.add(TRIP_EXPENSES, payload)
        return TripExpense.from_record({**payload, "id": expense_id})

    def update_expense(self, expense_id: str, partial: Mapping[str, Any]) -> TripExpense:
        current = self.records.get(TRIP_EXPENSES, expense_id)
        if current is None:
            raise RecordNotFoundError(TRIP_EXPENSES, expense_id)
        return self.save_expense({**current, **partial, "id": expense_id})

    def get_expense(self, expense_id: str) -> Optional[TripExpense]:
        record = self.records.get(TRIP_EXPENSES, expense_id)
        return TripExpense.from_record(record) if record else None

    def list_expenses(self) -> list[TripExpense]:
        return [TripExpense.from_record(record) for record in self.records.list(TRIP_EXPENSES)]

    def delete_expense(self, expense_id: str) -> None:
        with self.conn:
            self.records.remove(TRIP_EXPENSES, expense_id)


def _refresh_linked_expenses(records: RecordRepository, trip: Trip) -> int:
    refreshed = 0
    for record in records.list(TRIP_EXPENSES):
        if record.get("tripId") != trip.id:
            continue
        derived = derivation.derive(record, trip)
        records.update(TRIP_EXPENSES, record["id"], derived.as_record())
        refreshed += 1
    return refreshed


class RateMatrixService:
    """Read-modify-write access to the stored rate matrix.

    Every change loads the latest stored table, applies the change in memory
    and writes the whole table back. Concurrent writers overwrite each other.
    """

    def __init__(self, conn: sqlite3.Connection, document: str = RATE_MATRIX_DOCUMENT):
        self.conn = conn
        self.document = document
        self.references = ReferenceRepository(conn)

    def load(self) -> RateMatrix:
        return RateMatrix.from_serialized(self.references.get_values(self.document))

    def upsert(self, entry: RateMatrixEntry) -> RateMatrix:
        table = self.load()
        table.upsert(entry)
        self._save(table)
        return table

    def remove(self, entry: RateMatrixEntry) -> bool:
        table = self.load()
        removed = table.remove(entry)
        if removed:
            self._save(table)
        return removed

    def import_rows(self, rows) -> int:
        merged, applied = self.load().bulk_import(rows)
        self._save(merged)
        logger.info("Imported %d rate matrix rows into %s (%d areas)", applied, self.document, len(merged))
        return applied

    def import_workbook(self, source: TabularSource) -> int:
        return self.import_rows(read_rows(source))

    def _save(self, table: RateMatrix) -> None:
        with self.conn:
            self.references.set_values(self.document, table.to_serialized())


class ReferenceListService:
    """Plain string reference lists such as ``origins`` and ``types``."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.references = ReferenceRepository(conn)

    def values(self, doc_id: str) -> list[str]:
        return self.references.get_values(doc_id)

    def add_value(self, doc_id: str, value: str) -> bool:
        if not value:
            return False
        with self.conn:
            self.references.set_values(doc_id, [*self.values(doc_id), value])
        return True

    def remove_value(self, doc_id: str, value: str) -> None:
        with self.conn:
            self.references.set_values(doc_id, [v for v in self.values(doc_id) if v != value])


@dataclass
class TripView:
    rows: list[Trip]
    totals: PeriodTotals


@dataclass
class ExpenseRow:
    expense: TripExpense
    trip: Trip


@dataclass
class ExpenseView:
    rows: list[ExpenseRow]
    totals: PeriodTotals


class TripMonitorService:
    """Filtered trip and expense listings with their period totals.

    Personnel scope comes from ``allowed`` when given, otherwise from the
    access policy for ``user``. Without either, every trip is in scope.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        directory: Optional[PersonnelDirectory] = None,
        policy: Optional[AccessPolicy] = None,
    ):
        self.records = RecordRepository(conn)
        self._directory = directory
        self.policy = policy

    @property
    def directory(self) -> PersonnelDirectory:
        if self._directory is None:
            return MappingDirectory(
                {
                    str(record["id"]): str(record.get("name", ""))
                    for record in self.records.list(EMPLOYEES)
                }
            )
        return self._directory

    def _scope(
        self,
        user: Any,
        permission_path: str,
        allowed: Optional[AbstractSet[str]],
    ) -> Optional[AbstractSet[str]]:
        if allowed is not None or self.policy is None:
            return allowed
        return self.policy.get_allowed_names(user, permission_path)

    def trip_view(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
        search: Optional[str] = None,
        allowed: Optional[AbstractSet[str]] = None,
        user: Any = None,
    ) -> TripView:
        allowed = self._scope(user, TRIP_MONITOR_PERMISSION, allowed)
        directory = self.directory
        trips = [
            trip
            for trip in (Trip.from_record(record) for record in self.records.list(TRIPS))
            if in_date_range(trip, start, end)
            and within_personnel(trip, allowed, directory)
            and matches_search(trip, search)
        ]
        trips.sort(key=lambda trip: trip.date or "", reverse=True)
        return TripView(rows=trips, totals=aggregate_trips(trips))

    def expense_view(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
        search: Optional[str] = None,
        allowed: Optional[AbstractSet[str]] = None,
        user: Any = None,
    ) -> ExpenseView:
        """Expenses whose trip falls in the range and personnel scope.

        Expenses with a missing trip are kept in the totals (they count and
        add their own amounts) but are not returned as rows.
        """
        allowed = self._scope(user, TRIP_EXPENSES_PERMISSION, allowed)
        directory = self.directory
        trips_by_id = {
            trip.id: trip for trip in (Trip.from_record(record) for record in self.records.list(TRIPS))
        }
        selected: list[TripExpense] = []
        for record in self.records.list(TRIP_EXPENSES):
            expense = TripExpense.from_record(record)
            trip = trips_by_id.get(expense.trip_id) if expense.trip_id else None
            if trip is not None and not (
                in_date_range(trip, start, end) and within_personnel(trip, allowed, directory)
            ):
                continue
            if matches_search(expense, search):
                selected.append(expense)

        rows = [
            ExpenseRow(expense=expense, trip=trips_by_id[expense.trip_id])
            for expense in selected
            if expense.trip_id in trips_by_id
        ]
        return ExpenseView(rows=rows, totals=aggregate_expenses(selected, trips_by_id))
