"""Import a rate matrix workbook into the reference store.

The first worksheet must hold ``Area | Rate | Driver Rate | Helper Rate`` with a
header row. Existing areas are overwritten, other areas are kept.
"""

from __future__ import annotations

from argparse import ArgumentParser
from pathlib import Path

from fleet_ledger.config import configure_logging, load_settings
from fleet_ledger.db import database
from fleet_ledger.errors import ImportParseError
from fleet_ledger.services import RateMatrixService


def main(argv: list[str] | None = None) -> int:
    parser = ArgumentParser(description="Import rate matrix rows from an .xlsx workbook")
    parser.add_argument("workbook", type=Path, help="Workbook with area, rate, driver rate, helper rate columns")
    parser.add_argument("--config", type=Path, default=None, help="Path to a fleet_ledger YAML config")
    args = parser.parse_args(argv)

    settings = load_settings(args.config)
    configure_logging(settings)
    with database(settings) as conn:
        service = RateMatrixService(conn, document=settings.rate_matrix_document)
        try:
            applied = service.import_workbook(args.workbook)
        except ImportParseError as exc:
            print(f"Import failed: {exc}")
            return 1

    print(f"Rate Matrix updated: {applied} rows applied from {args.workbook}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
