from pathlib import Path

import pytest

from fleet_ledger.db import apply_sqlite_migration, connect_sqlite

MIGRATION = Path(__file__).resolve().parents[1] / "migrations" / "sqlite" / "001_initial_schema.sql"


@pytest.fixture
def conn():
    connection = connect_sqlite()
    apply_sqlite_migration(connection, MIGRATION)
    yield connection
    connection.close()
