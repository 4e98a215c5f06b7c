from decimal import Decimal
import unittest

from fleet_ledger.derivation import apply, derive
from fleet_ledger.models import Trip, TripExpense


def _trip(**amounts):
    return Trip(id="trip-1", date="2026-03-02", **{k: Decimal(str(v)) for k, v in amounts.items()})


class ExpenseDerivationTestCase(unittest.TestCase):
    def test_worked_example(self):
        trip = _trip(driver_rate=500, helper_rate=300, net_rate=5000)
        raw = {
            "tripId": "trip-1",
            "allowance": 1000,
            "dieselCash": 200,
            "tollgateCash": 50,
            "manoChargesClient": 100,
            "otherExpChargesClient": 0,
        }

        derived = derive(raw, trip)

        self.assertEqual(derived.total_charges_client, Decimal("100"))
        self.assertEqual(derived.cash_total_expenses, Decimal("350"))
        self.assertEqual(derived.cash_return, Decimal("650"))
        self.assertEqual(derived.total_expenses, Decimal("1050"))
        self.assertEqual(derived.total_net, Decimal("3950"))

    def test_without_trip_rates_count_as_zero(self):
        derived = derive({"allowance": "500", "meal": "120", "poUnioil": "900"}, None)

        self.assertEqual(derived.cash_total_expenses, Decimal("120"))
        self.assertEqual(derived.cash_return, Decimal("380"))
        self.assertEqual(derived.total_expenses, Decimal("1020"))
        self.assertEqual(derived.total_net, Decimal("-1020"))

    def test_cash_total_and_total_expenses_cover_different_fields(self):
        trip = _trip(driver_rate=0, helper_rate=0, net_rate=0)
        expense = TripExpense(
            po_unioil=Decimal("10"),
            po_unioil_discount=Decimal("99"),
            autosweep=Decimal("20"),
            easytrip=Decimal("30"),
            ca_driver=Decimal("40"),
            ca_helper=Decimal("50"),
            mano_charges_client=Decimal("60"),
            other_exp_charges_client=Decimal("70"),
        )

        derived = derive(expense, trip)

        # electronic payments only reach total expenses
        self.assertEqual(derived.total_expenses, Decimal("60"))
        # cash advances and client charges only reach cash total
        self.assertEqual(derived.cash_total_expenses, Decimal("220"))
        self.assertEqual(derived.total_charges_client, Decimal("130"))

    def test_garbage_inputs_are_zero(self):
        derived = derive({"allowance": "n/a", "meal": None, "parking": "15"}, None)
        self.assertEqual(derived.cash_total_expenses, Decimal("15"))
        self.assertEqual(derived.cash_return, Decimal("-15"))

    def test_apply_is_idempotent_and_keeps_office_return(self):
        trip = _trip(driver_rate=450, helper_rate=350, net_rate=4200)
        expense = TripExpense(
            id="exp-1",
            trip_id="trip-1",
            allowance=Decimal("2000"),
            diesel_cash=Decimal("800.50"),
            roro=Decimal("120"),
            cash_return_office=Decimal("75"),
            remarks="returned late",
        )

        once = apply(expense, trip)
        twice = apply(once, trip)

        self.assertEqual(once, twice)
        self.assertEqual(once.cash_return_office, Decimal("75"))
        self.assertEqual(once.remarks, "returned late")
        self.assertEqual(once.total_net, Decimal("4200") - Decimal("1720.50"))

    def test_stale_derived_values_are_ignored(self):
        derived = derive({"allowance": 100, "cashTotalExpenses": 9999, "totalNet": 5}, None)
        self.assertEqual(derived.cash_total_expenses, Decimal("0"))
        self.assertEqual(derived.cash_return, Decimal("100"))

    def test_as_record_uses_stored_keys(self):
        derived = derive({"allowance": 1000, "dieselCash": 200.25}, None)
        self.assertEqual(
            derived.as_record(),
            {
                "total_charges_client": 0,
                "cashTotalExpenses": 200.25,
                "cashReturn": 799.75,
                "totalExpenses": 200.25,
                "totalNet": -200.25,
            },
        )


if __name__ == "__main__":
    unittest.main()
