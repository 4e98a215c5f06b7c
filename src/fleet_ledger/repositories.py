from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional
from uuid import uuid4

from fleet_ledger.errors import DuplicateRecordError, RecordNotFoundError
from fleet_ledger.money import to_json_number


def _normalize_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return to_json_number(value)
    return str(value)


def _dumps(payload: Any) -> str:
    return json.dumps(payload, separators=(",", ":"), default=_normalize_value, ensure_ascii=False)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RecordRepository:
    """Collections of JSON records addressed by ``(collection, id)``."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def add(self, collection: str, record: Mapping[str, Any]) -> str:
        record_id = str(record.get("id") or uuid4().hex)
        payload = dict(record)
        payload["id"] = record_id
        try:
            self.conn.execute(
                "INSERT INTO record(collection, id, payload) VALUES (?, ?, ?)",
                (collection, record_id, _dumps(payload)),
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateRecordError(collection, record_id) from exc
        return record_id

    def update(self, collection: str, record_id: str, partial: Mapping[str, Any]) -> None:
        current = self.get(collection, record_id)
        if current is None:
            raise RecordNotFoundError(collection, record_id)
        current.update(partial)
        current["id"] = record_id
        self.conn.execute(
            "UPDATE record SET payload = ?, updated_at = ? WHERE collection = ? AND id = ?",
            (_dumps(current), _utc_now(), collection, record_id),
        )

    def remove(self, collection: str, record_id: str) -> None:
        self.conn.execute(
            "DELETE FROM record WHERE collection = ? AND id = ?",
            (collection, record_id),
        )

    def get(self, collection: str, record_id: str) -> Optional[dict[str, Any]]:
        row = self.conn.execute(
            "SELECT payload FROM record WHERE collection = ? AND id = ?",
            (collection, record_id),
        ).fetchone()
        return json.loads(row["payload"]) if row else None

    def list(self, collection: str) -> list[dict[str, Any]]:
        rows = self.conn.execute(
            "SELECT payload FROM record WHERE collection = ? ORDER BY created_at, rowid",
            (collection,),
        ).fetchall()
        return [json.loads(row["payload"]) for row in rows]


class ReferenceRepository:
    """Reference documents, each holding a single ``values`` list of strings."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def get_values(self, doc_id: str) -> list[str]:
        row = self.conn.execute(
            "SELECT values_json FROM reference_document WHERE id = ?",
            (doc_id,),
        ).fetchone()
        if row is None:
            return []
        values = json.loads(row["values_json"])
        return [value for value in values if isinstance(value, str)]

    def set_values(self, doc_id: str, values: Iterable[str]) -> None:
        self.conn.execute(
            """
            INSERT INTO reference_document(id, values_json, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(id)
            DO UPDATE SET values_json = excluded.values_json, updated_at = excluded.updated_at
            """,
            (doc_id, json.dumps(list(values), ensure_ascii=False), _utc_now()),
        )
