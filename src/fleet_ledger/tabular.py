from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Any, BinaryIO, List, Union
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from fleet_ledger.errors import ImportParseError


logger = logging.getLogger(__name__)

TabularSource = Union[bytes, BinaryIO, Path, str]


def read_rows(source: TabularSource) -> List[List[Any]]:
    """Read the first worksheet of an .xlsx workbook as a list of rows.

    The header row is returned as-is; cell values are raw (numbers stay
    numbers, empty cells are ``None``).
    """
    if isinstance(source, (bytes, bytearray)):
        source = BytesIO(source)
    try:
        workbook = load_workbook(source, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError, ValueError) as exc:
        raise ImportParseError(f"Could not read workbook: {exc}") from exc

    try:
        if not workbook.sheetnames:
            raise ImportParseError("Workbook has no worksheets")
        sheet = workbook[workbook.sheetnames[0]]
        rows = [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()

    logger.debug("Read %d rows from worksheet %s", len(rows), sheet.title)
    return rows


__all__ = ["TabularSource", "read_rows"]
