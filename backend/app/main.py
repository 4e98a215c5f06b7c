from __future__ import annotations

import logging
import sqlite3
from functools import lru_cache
from typing import Any, Iterator, Literal, Optional

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from fleet_ledger.config import Settings, configure_logging, load_settings
from fleet_ledger.db import database
from fleet_ledger.errors import DuplicateRecordError, ImportParseError, RecordNotFoundError, ValidationError
from fleet_ledger.models import RateMatrixEntry
from fleet_ledger.services import (
    ExpenseService,
    RateMatrixService,
    ReferenceListService,
    TripMonitorService,
    TripService,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Fleet Ledger API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache
def get_settings() -> Settings:
    settings = load_settings()
    configure_logging(settings)
    logger.info("Using database %s", settings.database_path)
    return settings


def get_connection(settings: Settings = Depends(get_settings)) -> Iterator[sqlite3.Connection]:
    with database(settings) as conn:
        yield conn


def get_rate_matrix_service(
    conn: sqlite3.Connection = Depends(get_connection),
    settings: Settings = Depends(get_settings),
) -> RateMatrixService:
    return RateMatrixService(conn, document=settings.rate_matrix_document)


class RecordPayload(BaseModel):
    model_config = ConfigDict(extra="allow")


class TripPayload(RecordPayload):
    date: str


class ExpensePayload(RecordPayload):
    tripId: Optional[str] = None


class RateMatrixPayload(BaseModel):
    area: str = ""
    rate: Any = None
    driverRate: Any = None
    helperRate: Any = None

    def to_entry(self) -> RateMatrixEntry:
        return RateMatrixEntry.create(self.area, self.rate, self.driverRate, self.helperRate)


class ReferenceValuePayload(BaseModel):
    value: str = ""


ReferenceListName = Literal["origins", "types"]


@app.post("/trips")
def create_trip(payload: TripPayload, conn: sqlite3.Connection = Depends(get_connection)):
    try:
        trip = TripService(conn).add_trip(payload.model_dump(exclude_none=True))
    except DuplicateRecordError:
        raise HTTPException(status_code=409, detail="Trip already exists")
    return trip.to_record()


@app.put("/trips/{trip_id}")
def update_trip(trip_id: str, payload: RecordPayload, conn: sqlite3.Connection = Depends(get_connection)):
    try:
        trip = TripService(conn).update_trip(trip_id, payload.model_dump(exclude_none=True))
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Trip not found")
    return trip.to_record()


@app.delete("/trips/{trip_id}")
def delete_trip(trip_id: str, conn: sqlite3.Connection = Depends(get_connection)):
    TripService(conn).delete_trip(trip_id)
    return {"deleted": trip_id}


@app.get("/trips")
def list_trips(
    start: Optional[str] = None,
    end: Optional[str] = None,
    q: Optional[str] = None,
    conn: sqlite3.Connection = Depends(get_connection),
):
    view = TripMonitorService(conn).trip_view(start=start, end=end, search=q)
    return {
        "rows": [trip.to_record() for trip in view.rows],
        "totals": view.totals.to_dict(),
    }


@app.post("/expenses/preview")
def preview_expense(payload: ExpensePayload, conn: sqlite3.Connection = Depends(get_connection)):
    derived = ExpenseService(conn).preview(payload.model_dump(exclude_none=True))
    return derived.as_record()


@app.post("/expenses")
def create_expense(payload: ExpensePayload, conn: sqlite3.Connection = Depends(get_connection)):
    record = payload.model_dump(exclude_none=True)
    record.pop("id", None)
    expense = ExpenseService(conn).save_expense(record)
    return expense.to_record()


@app.put("/expenses/{expense_id}")
def update_expense(expense_id: str, payload: ExpensePayload, conn: sqlite3.Connection = Depends(get_connection)):
    try:
        expense = ExpenseService(conn).update_expense(expense_id, payload.model_dump(exclude_none=True))
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Expense not found")
    return expense.to_record()


@app.delete("/expenses/{expense_id}")
def delete_expense(expense_id: str, conn: sqlite3.Connection = Depends(get_connection)):
    ExpenseService(conn).delete_expense(expense_id)
    return {"deleted": expense_id}


@app.get("/expenses")
def list_expenses(
    start: Optional[str] = None,
    end: Optional[str] = None,
    q: Optional[str] = None,
    conn: sqlite3.Connection = Depends(get_connection),
):
    view = TripMonitorService(conn).expense_view(start=start, end=end, search=q)
    return {
        "rows": [{"expense": row.expense.to_record(), "trip": row.trip.to_record()} for row in view.rows],
        "totals": view.totals.to_dict(),
    }


@app.get("/references/rate-matrix")
def get_rate_matrix(q: Optional[str] = None, service: RateMatrixService = Depends(get_rate_matrix_service)):
    table = service.load()
    entries = table.search(q) if q else list(table)
    return {"values": [entry.to_dict() for entry in entries]}


@app.put("/references/rate-matrix")
def upsert_rate_matrix_entry(payload: RateMatrixPayload, service: RateMatrixService = Depends(get_rate_matrix_service)):
    try:
        table = service.upsert(payload.to_entry())
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return {"values": [entry.to_dict() for entry in table]}


@app.delete("/references/rate-matrix")
def delete_rate_matrix_entry(payload: RateMatrixPayload, service: RateMatrixService = Depends(get_rate_matrix_service)):
    removed = service.remove(payload.to_entry())
    if not removed:
        raise HTTPException(status_code=404, detail="Rate matrix entry not found")
    return {"deleted": payload.to_entry().to_dict()}


@app.post("/references/rate-matrix/import")
async def import_rate_matrix(
    file: UploadFile = File(...),
    service: RateMatrixService = Depends(get_rate_matrix_service),
):
    content = await file.read()
    try:
        applied = service.import_workbook(content)
    except ImportParseError as exc:
        logger.warning("Rate matrix import of %s failed: %s", file.filename, exc)
        raise HTTPException(status_code=400, detail="Failed to parse Excel.")
    return {"filename": file.filename, "applied": applied}


@app.get("/references/{list_name}")
def get_reference_list(list_name: ReferenceListName, conn: sqlite3.Connection = Depends(get_connection)):
    return {"values": ReferenceListService(conn).values(list_name)}


@app.post("/references/{list_name}")
def add_reference_value(
    list_name: ReferenceListName,
    payload: ReferenceValuePayload,
    conn: sqlite3.Connection = Depends(get_connection),
):
    service = ReferenceListService(conn)
    if not service.add_value(list_name, payload.value.strip()):
        raise HTTPException(status_code=422, detail="Value is required")
    return {"values": service.values(list_name)}


@app.delete("/references/{list_name}/{value}")
def remove_reference_value(list_name: ReferenceListName, value: str, conn: sqlite3.Connection = Depends(get_connection)):
    service = ReferenceListService(conn)
    service.remove_value(list_name, value)
    return {"values": service.values(list_name)}


@app.get("/health")
def health():
    return {"status": "ok"}
