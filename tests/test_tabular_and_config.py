from io import BytesIO
import os
from pathlib import Path
import sqlite3
import tempfile
import unittest

from openpyxl import Workbook

from fleet_ledger.config import Settings, load_settings
from fleet_ledger.db import database
from fleet_ledger.errors import ImportParseError
from fleet_ledger.tabular import read_rows


class TabularReadTestCase(unittest.TestCase):
    def test_reads_first_sheet_with_header(self):
        wb = Workbook()
        ws = wb.active
        ws.title = "Rates"
        ws.append(["Area", "Rate", "Driver Rate", "Helper Rate"])
        ws.append(["Cebu", 100, 12.5, None])
        other = wb.create_sheet("Ignored")
        other.append(["nope"])
        buffer = BytesIO()
        wb.save(buffer)

        rows = read_rows(buffer.getvalue())

        self.assertEqual(rows[0], ["Area", "Rate", "Driver Rate", "Helper Rate"])
        self.assertEqual(rows[1], ["Cebu", 100, 12.5, None])
        self.assertEqual(len(rows), 2)

    def test_reads_from_path(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "rates.xlsx"
            wb = Workbook()
            wb.active.append(["Area"])
            wb.save(path)

            self.assertEqual(read_rows(path), [["Area"]])

    def test_unreadable_sources_raise_parse_error(self):
        with self.assertRaises(ImportParseError):
            read_rows(b"\x00\x01not-xlsx")
        with self.assertRaises(ImportParseError):
            read_rows(Path("/nonexistent/rates.xlsx"))


class SettingsTestCase(unittest.TestCase):
    def test_defaults_without_file(self):
        previous = os.getcwd()
        with tempfile.TemporaryDirectory() as tmp:
            os.chdir(tmp)
            try:
                settings = load_settings(environ={})
            finally:
                os.chdir(previous)
        self.assertEqual(settings, Settings())

    def test_yaml_and_environment_overrides(self):
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "fleet.yaml"
            config_path.write_text("database_path: data/ledger.db\nlog_level: debug\n", encoding="utf-8")

            settings = load_settings(config_path, environ={"FLEET_LEDGER_DB": ":memory:"})

        self.assertEqual(settings.database_path, ":memory:")
        self.assertEqual(settings.log_level, "debug")
        self.assertEqual(settings.migration_path, "migrations/sqlite/001_initial_schema.sql")

    def test_config_file_selected_from_environment(self):
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "fleet.yaml"
            config_path.write_text("rate_matrix_document: rates_2026\n", encoding="utf-8")

            settings = load_settings(environ={"FLEET_LEDGER_CONFIG": str(config_path)})

        self.assertEqual(settings.rate_matrix_document, "rates_2026")

    def test_invalid_config_files(self):
        with tempfile.TemporaryDirectory() as tmp:
            not_a_mapping = Path(tmp) / "list.yaml"
            not_a_mapping.write_text("- a\n- b\n", encoding="utf-8")
            unknown = Path(tmp) / "unknown.yaml"
            unknown.write_text("colour: teal\n", encoding="utf-8")

            with self.assertRaises(ValueError):
                load_settings(not_a_mapping, environ={})
            with self.assertRaises(ValueError):
                load_settings(unknown, environ={})
            with self.assertRaises(FileNotFoundError):
                load_settings(Path(tmp) / "missing.yaml", environ={})


if __name__ == "__main__":
    unittest.main()


class DatabaseTestCase(unittest.TestCase):
    migration = Path(__file__).resolve().parents[1] / "migrations" / "sqlite" / "001_initial_schema.sql"

    def test_connection_is_closed_after_use(self):
        with tempfile.TemporaryDirectory() as tmp:
            settings = Settings(database_path=str(Path(tmp) / "ledger.db"), migration_path=str(self.migration))
            with database(settings) as conn:
                conn.execute("INSERT INTO reference_document(id, values_json) VALUES ('origins', '[]')")
                conn.commit()

            with self.assertRaises(sqlite3.ProgrammingError):
                conn.execute("SELECT 1")

            with database(settings) as second:
                count = second.execute("SELECT COUNT(*) FROM reference_document").fetchone()[0]
            self.assertEqual(count, 1)
