"""Reference table of standard rates per destination area.

Entries are keyed by the normalized area name (trimmed, lower-cased) while the
entry itself keeps the area as typed. The stored form is a list of compact JSON
strings; :meth:`RateMatrix.from_serialized` and :meth:`RateMatrix.to_serialized`
are the only places that deal with it.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from fleet_ledger.errors import ValidationError
from fleet_ledger.models import RateMatrixEntry


logger = logging.getLogger(__name__)


def normalize_area(area: Any) -> str:
    if area is None:
        return ""
    return str(area).strip().lower()


class RateMatrix:
    def __init__(self, entries: Iterable[RateMatrixEntry] = ()):
        self._entries: Dict[str, RateMatrixEntry] = {}
        for entry in entries:
            self._entries[normalize_area(entry.area)] = entry

    @classmethod
    def from_serialized(cls, values: Iterable[str]) -> "RateMatrix":
        entries: List[RateMatrixEntry] = []
        for value in values:
            entry = _parse_entry(value)
            if entry is None:
                logger.debug("Dropping unreadable rate matrix value: %r", value)
                continue
            entries.append(entry)
        return cls(entries)

    def to_serialized(self) -> List[str]:
        return [entry.to_json() for entry in self._entries.values()]

    def __iter__(self) -> Iterator[RateMatrixEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, area: object) -> bool:
        return normalize_area(area) in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RateMatrix):
            return NotImplemented
        return list(self._entries.items()) == list(other._entries.items())

    def __repr__(self) -> str:
        return f"RateMatrix({list(self._entries.values())!r})"

    def get(self, area: Any) -> Optional[RateMatrixEntry]:
        return self._entries.get(normalize_area(area))

    def search(self, term: str) -> List[RateMatrixEntry]:
        needle = (term or "").lower()
        return [entry for entry in self._entries.values() if needle in entry.area.lower()]

    def copy(self) -> "RateMatrix":
        return RateMatrix(self._entries.values())

    def upsert(self, entry: RateMatrixEntry) -> None:
        """Insert ``entry``, replacing whatever entry shares its normalized area.

        The replaced entry is dropped as a whole and the new one goes to the
        end of the table.
        """
        key = normalize_area(entry.area)
        if not key:
            raise ValidationError("Area/Destination is required.")
        entry = RateMatrixEntry.create(entry.area, entry.rate, entry.driver_rate, entry.helper_rate)
        self._entries.pop(key, None)
        self._entries[key] = entry

    def remove(self, entry: RateMatrixEntry) -> bool:
        """Remove the stored entry only if it serializes exactly like ``entry``."""
        key = normalize_area(entry.area)
        current = self._entries.get(key)
        if current is None or current.to_json() != entry.to_json():
            return False
        del self._entries[key]
        return True

    def bulk_import(self, rows: Sequence[Sequence[Any]]) -> Tuple["RateMatrix", int]:
        """Merge spreadsheet rows into a copy of this table.

        ``rows[0]`` is the header. Each following row is ``(area, rate,
        driverRate, helperRate)``; rows without an area are skipped and a later
        row for the same area overwrites an earlier one. Returns the merged
        table and the number of rows applied.
        """
        working = dict(self._entries)
        applied = 0
        for row in list(rows)[1:]:
            area = _area_cell(row)
            if not area:
                continue
            entry = RateMatrixEntry.create(area, _cell(row, 1), _cell(row, 2), _cell(row, 3))
            working[normalize_area(area)] = entry
            applied += 1
        merged = RateMatrix()
        merged._entries = working
        return merged, applied


def _cell(row: Sequence[Any], index: int) -> Any:
    if row is None or index >= len(row):
        return None
    return row[index]


def _area_cell(row: Sequence[Any]) -> str:
    value = _cell(row, 0)
    if value is None or value == "" or value == 0:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _parse_entry(value: Any) -> Optional[RateMatrixEntry]:
    try:
        payload = json.loads(value)
    except (TypeError, ValueError):
        return None
    if not isinstance(payload, dict) or not payload.get("area"):
        return None
    return RateMatrixEntry.from_dict(payload)


__all__ = ["RateMatrix", "normalize_area"]
