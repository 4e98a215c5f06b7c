from decimal import Decimal

from fleet_ledger.filters import MappingDirectory, in_date_range, matches_search, within_personnel
from fleet_ledger.models import RateMatrixEntry, Trip, TripExpense


def test_trip_record_mapping():
    trip = Trip.from_record(
        {"id": 17, "date": "2026-01-09", "plateNumber": "ABC-1234", "dropCount": "3", "grossAmount": "1500.75", "jetsComms": None}
    )

    assert trip.id == "17"
    assert trip.plate_number == "ABC-1234"
    assert trip.drop_count == 3
    assert trip.gross_amount == Decimal("1500.75")
    assert trip.jets_comms == Decimal("0")

    record = trip.to_record()
    assert record["grossAmount"] == 1500.75
    assert record["jetsComms"] == 0
    assert "remarks" not in record


def test_expense_amount_fields_split_raw_and_derived():
    derived = TripExpense.amount_fields(derived=True)
    assert derived == ("total_charges_client", "cash_total_expenses", "cash_return", "total_expenses", "total_net")
    assert "cash_return_office" in TripExpense.amount_fields(derived=False)
    assert TripExpense.record_key("cash_total_expenses") == "cashTotalExpenses"


def test_rate_matrix_entry_json():
    entry = RateMatrixEntry.from_dict({"area": "Cebu", "rate": "100", "driverRate": 12.5})
    assert entry.to_json() == '{"area":"Cebu","rate":100,"driverRate":12.5,"helperRate":0}'


def test_date_range_is_inclusive():
    trip = Trip(date="2026-03-31")
    assert in_date_range(trip, "2026-03-01", "2026-03-31")
    assert in_date_range(trip, "2026-03-31", None)
    assert not in_date_range(trip, "2026-04-01", None)
    assert not in_date_range(Trip(), "2026-03-01", None)
    assert in_date_range(Trip(), None, None)


def test_personnel_scope():
    directory = MappingDirectory({"d1": "Juan", "h1": "Pedro"})
    trip = Trip(driver_id="d1", helper_id="h1")

    assert within_personnel(trip, None, directory)
    assert within_personnel(trip, {"Pedro"}, directory)
    assert not within_personnel(trip, {"Maria"}, directory)
    assert not within_personnel(Trip(driver_id="unknown"), {"Juan"}, directory)


def test_search_is_case_insensitive_over_record():
    expense = TripExpense(trip_id="t1", notes_other_exp="Tire Shop Balintawak")
    assert matches_search(expense, "balintawak")
    assert matches_search(expense, "")
    assert matches_search(expense, None)
    assert not matches_search(expense, "cubao")
