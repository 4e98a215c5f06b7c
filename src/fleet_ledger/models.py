from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from decimal import Decimal
from typing import Any, Mapping, Optional

from fleet_ledger.money import ZERO, coerce, to_json_number


def _amount(key: str, derived: bool = False) -> Any:
    return field(default=ZERO, metadata={"key": key, "kind": "amount", "derived": derived})


def _text(key: str) -> Any:
    return field(default=None, metadata={"key": key, "kind": "text"})


def _count(key: str) -> Any:
    return field(default=0, metadata={"key": key, "kind": "count"})


class _RecordFields:
    """Maps snake_case attributes to the keys used by stored records."""

    @classmethod
    def from_record(cls, record: Mapping[str, Any]):
        values: dict[str, Any] = {}
        for f in fields(cls):
            key = f.metadata.get("key", f.name)
            raw = record.get(key)
            kind = f.metadata.get("kind")
            if kind == "amount":
                values[f.name] = coerce(raw)
            elif kind == "count":
                values[f.name] = int(coerce(raw))
            elif raw is not None:
                values[f.name] = str(raw)
        return cls(**values)

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            key = f.metadata.get("key", f.name)
            if f.metadata.get("kind") == "amount":
                record[key] = to_json_number(value)
            elif value is not None:
                record[key] = value
        return record

    @classmethod
    def amount_fields(cls, derived: Optional[bool] = None) -> tuple[str, ...]:
        return tuple(
            f.name
            for f in fields(cls)
            if f.metadata.get("kind") == "amount"
            and (derived is None or f.metadata["derived"] is derived)
        )

    @classmethod
    def record_key(cls, name: str) -> str:
        for f in fields(cls):
            if f.name == name:
                return f.metadata.get("key", name)
        raise AttributeError(f"Unknown field: {name}")


@dataclass(frozen=True)
class Trip(_RecordFields):
    id: Optional[str] = _text("id")
    date: Optional[str] = _text("date")
    trip_code: Optional[str] = _text("tripCode")
    status: Optional[str] = _text("status")
    client: Optional[str] = _text("client")
    plate_number: Optional[str] = _text("plateNumber")
    origin: Optional[str] = _text("origin")
    destination: Optional[str] = _text("destination")
    dr_number: Optional[str] = _text("drNumber")
    drop_count: int = _count("dropCount")
    type_of_trip: Optional[str] = _text("typeOfTrip")
    driver_id: Optional[str] = _text("driverId")
    helper_id: Optional[str] = _text("helperId")
    remarks: Optional[str] = _text("remarks")

    gross_amount: Decimal = _amount("grossAmount")
    vat_amount: Decimal = _amount("vatAmount")
    vat_ex: Decimal = _amount("vatEx")
    less_vat: Decimal = _amount("lessVat")
    withheld: Decimal = _amount("withheld")
    vat2551q: Decimal = _amount("vat2551q")
    jets_comms: Decimal = _amount("jetsComms")
    jbf: Decimal = _amount("jbf")
    total_deduction: Decimal = _amount("totalDeduction")
    net_rate: Decimal = _amount("netRate")
    driver_rate: Decimal = _amount("driverRate")
    helper_rate: Decimal = _amount("helperRate")


@dataclass(frozen=True)
class TripExpense(_RecordFields):
    id: Optional[str] = _text("id")
    trip_id: Optional[str] = _text("tripId")
    date_encoded: Optional[str] = _text("dateEncoded")

    allowance: Decimal = _amount("allowance")
    po_unioil_discount: Decimal = _amount("poUnioilDiscount")
    po_unioil: Decimal = _amount("poUnioil")
    autosweep: Decimal = _amount("autosweep")
    easytrip: Decimal = _amount("easytrip")
    diesel_cash: Decimal = _amount("dieselCash")
    tollgate_cash: Decimal = _amount("tollgateCash")
    meal: Decimal = _amount("meal")
    gate_pass: Decimal = _amount("gatePass")
    vulcanizing: Decimal = _amount("vulcanizing")
    parking: Decimal = _amount("parking")
    traffic_violation: Decimal = _amount("trafficViolation")
    carwash: Decimal = _amount("carwash")
    roro: Decimal = _amount("roro")
    mano: Decimal = _amount("mano")
    truck_maintenance: Decimal = _amount("truckMaintenance")
    notes_truck_maint: Optional[str] = _text("notes_truck_maint")
    other_expenses: Decimal = _amount("otherExpenses")
    notes_other_exp: Optional[str] = _text("notes_other_exp")
    ca_driver: Decimal = _amount("caDriver")
    ca_helper: Decimal = _amount("caHelper")
    mano_charges_client: Decimal = _amount("manoChargesClient")
    other_exp_charges_client: Decimal = _amount("otherExpChargesClient")
    notes_charges_client: Optional[str] = _text("notes_charges_client")
    # Entered by the office when cash comes back; never derived.
    cash_return_office: Decimal = _amount("cashReturnOffice")
    remarks: Optional[str] = _text("remarks")

    total_charges_client: Decimal = _amount("total_charges_client", derived=True)
    cash_total_expenses: Decimal = _amount("cashTotalExpenses", derived=True)
    cash_return: Decimal = _amount("cashReturn", derived=True)
    total_expenses: Decimal = _amount("totalExpenses", derived=True)
    total_net: Decimal = _amount("totalNet", derived=True)


@dataclass(frozen=True)
class RateMatrixEntry:
    area: str
    rate: Decimal = ZERO
    driver_rate: Decimal = ZERO
    helper_rate: Decimal = ZERO

    @classmethod
    def create(cls, area: Any, rate: Any = None, driver_rate: Any = None, helper_rate: Any = None) -> "RateMatrixEntry":
        return cls(
            area="" if area is None else str(area),
            rate=coerce(rate),
            driver_rate=coerce(driver_rate),
            helper_rate=coerce(helper_rate),
        )

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RateMatrixEntry":
        return cls.create(
            payload.get("area"),
            payload.get("rate"),
            payload.get("driverRate"),
            payload.get("helperRate"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "area": self.area,
            "rate": to_json_number(self.rate),
            "driverRate": to_json_number(self.driver_rate),
            "helperRate": to_json_number(self.helper_rate),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)


__all__ = ["Trip", "TripExpense", "RateMatrixEntry"]
