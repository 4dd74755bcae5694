"""
app/services/spreadsheet_reader.py

Loads the first worksheet of an uploaded workbook, or a CSV file, into a
header row plus data rows. Cell values are left as the reader produced
them (numbers stay numbers); typing happens in the row validator.
"""

from __future__ import annotations

import csv
import io
import zipfile
from dataclasses import dataclass
from typing import Any

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from app.domain.errors import UnreadableFile

_ZIP_MAGIC = b"PK\x03\x04"
_CSV_DELIMITERS = ",;\t"


@dataclass(frozen=True)
class SheetData:
    """
    Raw sheet contents. ``header_row_number`` is 1-based, as shown in Excel.
    """

    headers: tuple[Any, ...]
    rows: list[tuple[Any, ...]]
    header_row_number: int = 1
    sheet_name: str | None = None


def read_spreadsheet(content: bytes, *, file_name: str | None = None) -> SheetData:
    """
    Read ``.xlsx`` / ``.xlsm`` bytes with openpyxl, anything else as CSV.

    Raises ``UnreadableFile`` when the bytes cannot be read or hold no
    header row.
    """

    if not content:
        raise UnreadableFile("Uploaded file is empty.")

    if content.startswith(_ZIP_MAGIC):
        raw_rows, sheet_name = _read_workbook(content)
    elif file_name and file_name.lower().endswith((".xlsx", ".xlsm")):
        raise UnreadableFile(f"'{file_name}' is not a valid Excel workbook.")
    else:
        raw_rows, sheet_name = _read_csv(content), None

    for index, row in enumerate(raw_rows):
        if any(not _is_blank(cell) for cell in row):
            return SheetData(
                headers=tuple(row),
                rows=raw_rows[index + 1 :],
                header_row_number=index + 1,
                sheet_name=sheet_name,
            )
    raise UnreadableFile("Spreadsheet has no header row.")


def _read_workbook(content: bytes) -> tuple[list[tuple[Any, ...]], str]:
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as exc:
        raise UnreadableFile(f"Workbook could not be opened: {exc}") from exc

    try:
        if not workbook.worksheets:
            raise UnreadableFile("Workbook contains no worksheets.")
        sheet = workbook.worksheets[0]
        rows = [tuple(row) for row in sheet.iter_rows(values_only=True)]
        return rows, sheet.title
    finally:
        workbook.close()


def _read_csv(content: bytes) -> list[tuple[Any, ...]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise UnreadableFile("CSV must be UTF-8 encoded.") from exc

    try:
        dialect = csv.Sniffer().sniff(text[:4096], delimiters=_CSV_DELIMITERS)
    except csv.Error:
        dialect = csv.excel

    try:
        return [tuple(row) for row in csv.reader(io.StringIO(text, newline=""), dialect)]
    except csv.Error as exc:
        raise UnreadableFile(f"Invalid CSV format: {exc}") from exc


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""
