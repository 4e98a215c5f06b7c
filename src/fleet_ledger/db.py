from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from fleet_ledger.config import Settings


def connect_sqlite(path: str | Path = ":memory:", *, check_same_thread: bool = True) -> sqlite3.Connection:
    conn = sqlite3.connect(path, check_same_thread=check_same_thread)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def apply_sqlite_migration(conn: sqlite3.Connection, migration_path: str | Path) -> None:
    conn.executescript(Path(migration_path).read_text(encoding="utf-8"))


def open_database(settings: Settings, *, check_same_thread: bool = True) -> sqlite3.Connection:
    conn = connect_sqlite(settings.database_path, check_same_thread=check_same_thread)
    apply_sqlite_migration(conn, settings.migration_path)
    return conn


@contextmanager
def database(settings: Settings) -> Iterator[sqlite3.Connection]:
    """One connection for one unit of work, closed on exit.

    The connection may be handed between threads but must not be shared by
    concurrent callers; open one per request.
    """
    conn = open_database(settings, check_same_thread=False)
    try:
        yield conn
    finally:
        conn.close()
