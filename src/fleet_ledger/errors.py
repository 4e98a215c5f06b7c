from __future__ import annotations


class FleetLedgerError(Exception):
    """Base class for errors raised by fleet_ledger."""


class ValidationError(FleetLedgerError, ValueError):
    """Raised when an input violates a precondition; nothing is written."""


class ImportParseError(FleetLedgerError):
    """Raised when a tabular import source cannot be read."""


class RecordNotFoundError(FleetLedgerError, KeyError):
    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection}/{record_id}")
        self.collection = collection
        self.record_id = record_id

    def __str__(self) -> str:
        return f"No record {self.record_id!r} in {self.collection!r}"


class DuplicateRecordError(FleetLedgerError):
    def __init__(self, collection: str, record_id: str):
        super().__init__(f"Record {record_id!r} already exists in {collection!r}")
        self.collection = collection
        self.record_id = record_id
