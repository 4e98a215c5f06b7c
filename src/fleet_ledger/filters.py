from __future__ import annotations

import json
from typing import AbstractSet, Any, Mapping, Optional, Protocol

from fleet_ledger.models import Trip, TripExpense


TRIP_MONITOR_PERMISSION = "tripMonitor.monitor"
TRIP_EXPENSES_PERMISSION = "tripMonitor.expenses"


class PersonnelDirectory(Protocol):
    def name_for(self, person_id: Optional[str]) -> Optional[str]:
        ...


class AccessPolicy(Protocol):
    """Decides which personnel a user may see. ``None`` means everyone."""

    def get_allowed_names(self, user: Any, permission_path: str) -> Optional[AbstractSet[str]]:
        ...


class MappingDirectory:
    def __init__(self, names_by_id: Mapping[str, str]):
        self._names = dict(names_by_id)

    def name_for(self, person_id: Optional[str]) -> Optional[str]:
        if person_id is None:
            return None
        return self._names.get(person_id)


def in_date_range(trip: Trip, start: Optional[str], end: Optional[str]) -> bool:
    """Inclusive check on ISO dates; an open bound always passes."""
    if not trip.date:
        return start is None and end is None
    if start is not None and trip.date < start:
        return False
    if end is not None and trip.date > end:
        return False
    return True


def within_personnel(
    trip: Trip,
    allowed: Optional[AbstractSet[str]],
    directory: PersonnelDirectory,
) -> bool:
    if allowed is None:
        return True
    driver = directory.name_for(trip.driver_id)
    helper = directory.name_for(trip.helper_id)
    return (driver is not None and driver in allowed) or (helper is not None and helper in allowed)


def matches_search(record: Trip | TripExpense, term: Optional[str]) -> bool:
    if not term:
        return True
    text = json.dumps(record.to_record(), separators=(",", ":"), ensure_ascii=False)
    return term.lower() in text.lower()


__all__ = [
    "TRIP_MONITOR_PERMISSION",
    "TRIP_EXPENSES_PERMISSION",
    "PersonnelDirectory",
    "AccessPolicy",
    "MappingDirectory",
    "in_date_range",
    "within_personnel",
    "matches_search",
]
