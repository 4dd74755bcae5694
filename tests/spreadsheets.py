"""
tests/spreadsheets.py

In-memory spreadsheet builders for ingestion tests.
"""

from __future__ import annotations

import io
from collections.abc import Sequence
from typing import Any

import openpyxl


def build_xlsx(rows: Sequence[Sequence[Any]], *, title: str = "Blad1") -> bytes:
    """
    Serialize rows (header first) into an .xlsx workbook.
    """

    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = title
    for row in rows:
        sheet.append(list(row))
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def build_csv(rows: Sequence[Sequence[Any]], *, delimiter: str = ",") -> bytes:
    lines = [delimiter.join("" if cell is None else str(cell) for cell in row) for row in rows]
    return ("\n".join(lines) + "\n").encode("utf-8")
