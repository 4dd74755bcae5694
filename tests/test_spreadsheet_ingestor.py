"""
tests/test_spreadsheet_ingestor.py

Pytest tests for SpreadsheetIngestor: bytes in, metric points and a
validation report out. No database.
"""

from __future__ import annotations

import uuid

import pytest

from app.domain.errors import InvalidPeriodFormat, MissingRequiredColumn, UnreadableFile
from app.services.spreadsheet_ingestor import SpreadsheetIngestor
from tests.spreadsheets import build_csv, build_xlsx


@pytest.fixture()
def ingestor() -> SpreadsheetIngestor:
    return SpreadsheetIngestor(log_row_warnings=False)


def test_long_breakdown_workbook(ingestor: SpreadsheetIngestor) -> None:
    content = build_xlsx(
        [
            ["Period", "Område", "NDI", "Antal svar"],
            ["2024 Q4", "Stockholm", 62.5, 120],
            ["2024 Q4", "Göteborg", 58, 80],
            ["2024 Q4", "Malmö", None, 40],
            [None, None, None, None],
        ]
    )
    file_id = uuid.uuid4()

    parsed = ingestor.parse(content, file_id, "BREAKDOWN", file_name="ndi.xlsx")
    report = parsed.validation_report

    assert parsed.valid_count == 2
    assert [p.group_a for p in parsed.metric_points] == ["Stockholm", "Göteborg"]
    assert {p.period for p in parsed.metric_points} == {"2024Q4"}
    assert parsed.metric_points[0].weight == pytest.approx(120.0)
    assert report.file_id == file_id
    assert report.row_count == 3
    assert report.ignored_rows == 1
    assert report.detected_periods == ["2024Q4"]
    assert report.column_mapping == {
        "value": "NDI",
        "period": "Period",
        "weight": "Antal svar",
        "group_a": "Område",
    }
    assert "Row 4 (value): Empty value cell." in report.warnings


def test_aggregated_total_row_has_no_groups(ingestor: SpreadsheetIngestor) -> None:
    content = build_csv(
        [
            ["Kvartal", "Område", "NDI"],
            ["2024Q3", "NDI", 61],
            ["2024Q3", "Stockholm", 63],
        ]
    )

    parsed = ingestor.parse(content, uuid.uuid4(), "AGGREGATED", file_name="ndi.csv")

    total, stockholm = parsed.metric_points
    assert (total.group_a, total.group_b, total.group_c) == (None, None, None)
    assert total.value == pytest.approx(61.0)
    assert stockholm.group_a == "Stockholm"
    assert all(p.source == "AGGREGATED" for p in parsed.metric_points)


def test_equivalent_period_spellings_detect_one_period(ingestor: SpreadsheetIngestor) -> None:
    content = build_xlsx(
        [
            ["Period", "Område", "NDI"],
            ["2024 Q4", "Stockholm", 62],
            ["2024Q4", "Göteborg", 58],
            ["2024-Q4", "Malmö", 60],
        ]
    )

    parsed = ingestor.parse(content, uuid.uuid4(), "BREAKDOWN", file_name="ndi.xlsx")
    report = parsed.validation_report

    assert report.detected_periods == ["2024Q4"]
    assert {p.period for p in parsed.metric_points} == {"2024Q4"}
    assert report.row_count == 3
    assert report.ignored_rows == 0
    assert not any(w.startswith("Mixed periods") for w in report.warnings)


def test_not_available_value_skips_only_that_row(ingestor: SpreadsheetIngestor) -> None:
    content = build_xlsx(
        [
            ["Period", "Område", "NDI"],
            ["2024Q4", "Stockholm", 62],
            ["2024Q4", "Göteborg", "N/A"],
            ["2024Q4", "Malmö", 60],
        ]
    )

    parsed = ingestor.parse(content, uuid.uuid4(), "BREAKDOWN", file_name="ndi.xlsx")
    report = parsed.validation_report

    assert [p.group_a for p in parsed.metric_points] == ["Stockholm", "Malmö"]
    assert report.ignored_rows == 1
    assert report.ignored_rows + parsed.valid_count == report.row_count
    assert "Row 3 (value): Value is not numeric. Got 'N/A'." in report.warnings


def test_repeated_total_rows_in_wide_sheet_are_averaged(ingestor: SpreadsheetIngestor) -> None:
    content = build_xlsx([["Område", "2024 Q1"], ["Index", 60], ["Index", 70]])

    parsed = ingestor.parse(content, uuid.uuid4(), "AGGREGATED", file_name="ndi.xlsx")

    (total,) = parsed.metric_points
    assert (total.group_a, total.group_b, total.group_c) == (None, None, None)
    assert total.period == "2024Q1"
    assert total.value == pytest.approx(65.0)
    assert "2 total rows for 2024Q1; stored their mean." in parsed.validation_report.warnings


def test_repeated_total_rows_in_long_sheet_keep_group_rows(ingestor: SpreadsheetIngestor) -> None:
    content = build_csv(
        [
            ["Kvartal", "Område", "NDI", "Antal svar"],
            ["2024Q3", "NDI", 61, 100],
            ["2024Q3", "Stockholm", 63, 40],
            ["2024Q3", "NDI", 65, 50],
        ]
    )

    parsed = ingestor.parse(content, uuid.uuid4(), "AGGREGATED", file_name="ndi.csv")

    total, stockholm = parsed.metric_points
    assert total.group_a is None
    assert total.value == pytest.approx(63.0)
    assert total.weight == pytest.approx(150.0)
    assert stockholm.group_a == "Stockholm"
    assert stockholm.value == pytest.approx(63.0)


def test_breakdown_keeps_metric_named_labels(ingestor: SpreadsheetIngestor) -> None:
    content = build_csv([["Kvartal", "Område", "NDI"], ["2024Q3", "NDI", 61]])

    parsed = ingestor.parse(content, uuid.uuid4(), "BREAKDOWN", file_name="ndi.csv")

    assert parsed.metric_points[0].group_a == "NDI"


def test_wide_workbook_yields_one_point_per_quarter_cell(ingestor: SpreadsheetIngestor) -> None:
    content = build_xlsx(
        [
            ["Område", "2024 Q1", "2024 Q2"],
            ["Stockholm", 60, 62],
            ["Göteborg", 55, None],
        ]
    )

    parsed = ingestor.parse(content, uuid.uuid4(), "BREAKDOWN", file_name="wide.xlsx")
    report = parsed.validation_report

    assert [(p.group_a, p.period, p.value) for p in parsed.metric_points] == [
        ("Stockholm", "2024Q1", 60.0),
        ("Stockholm", "2024Q2", 62.0),
        ("Göteborg", "2024Q1", 55.0),
    ]
    assert report.row_count == 4
    assert report.ignored_rows == 1
    assert report.detected_periods == ["2024Q1", "2024Q2"]
    assert "Mixed periods in a single file: 2024Q1, 2024Q2." in report.warnings


def test_quarter_header_dates_a_long_sheet(ingestor: SpreadsheetIngestor) -> None:
    content = build_xlsx(
        [
            ["Mitt konto Q4 2024", "NDI"],
            ["Fakturor", 70],
            ["Bokning", 65],
        ]
    )

    parsed = ingestor.parse(content, uuid.uuid4(), "AGGREGATED", file_name="konto.xlsx")

    assert [(p.group_a, p.period) for p in parsed.metric_points] == [
        ("Fakturor", "2024Q4"),
        ("Bokning", "2024Q4"),
    ]
    assert parsed.validation_report.column_mapping == {"value": "NDI", "group_a": "Mitt konto Q4 2024"}


def test_default_period_dates_rows_without_period_column(ingestor: SpreadsheetIngestor) -> None:
    content = build_csv([["Område", "NDI"], ["Stockholm", "61.2"]])

    parsed = ingestor.parse(content, uuid.uuid4(), "BREAKDOWN", file_name="ndi.csv", default_period="Q2 2024")

    assert parsed.metric_points[0].period == "2024Q2"
    assert parsed.validation_report.warnings == []


def test_no_period_information_yields_no_rows(ingestor: SpreadsheetIngestor) -> None:
    content = build_csv([["Område", "NDI"], ["Stockholm", "61.2"]])

    parsed = ingestor.parse(content, uuid.uuid4(), "BREAKDOWN", file_name="ndi.csv")
    warnings = parsed.validation_report.warnings

    assert parsed.metric_points == []
    assert warnings[0].startswith("No period column detected")
    assert warnings[-1] == "No valid rows found."


def test_header_row_number_counts_leading_blank_rows(ingestor: SpreadsheetIngestor) -> None:
    content = build_csv([["", ""], ["Period", "NDI"], ["2024Q1", "x"]])

    parsed = ingestor.parse(content, uuid.uuid4(), "BREAKDOWN", file_name="ndi.csv")

    assert "Row 3 (value): Value is not numeric. Got 'x'." in parsed.validation_report.warnings


def test_warnings_are_capped() -> None:
    ingestor = SpreadsheetIngestor(max_warnings=3, log_row_warnings=False)
    rows = [["Period", "NDI"]] + [["2024Q1", "bad"] for _ in range(6)]

    parsed = ingestor.parse(build_csv(rows), uuid.uuid4(), "BREAKDOWN", file_name="ndi.csv")
    warnings = parsed.validation_report.warnings

    assert len(warnings) == 4
    assert warnings[-1] == "4 further warnings were suppressed."
    assert parsed.validation_report.ignored_rows == 6


def test_missing_value_column_aborts(ingestor: SpreadsheetIngestor) -> None:
    content = build_csv([["Period", "Område"], ["2024Q1", "Stockholm"]])

    with pytest.raises(MissingRequiredColumn):
        ingestor.parse(content, uuid.uuid4(), "BREAKDOWN", file_name="ndi.csv")


@pytest.mark.parametrize(
    "content, file_name",
    [
        (b"PK\x03\x04not really a zip", "ndi.xlsx"),
        (b"Period,NDI\n2024Q1,60\n", "ndi.xlsx"),
        (b"", "ndi.csv"),
        (b"\n\n", "ndi.csv"),
    ],
)
def test_unreadable_files_abort(ingestor: SpreadsheetIngestor, content: bytes, file_name: str) -> None:
    with pytest.raises(UnreadableFile):
        ingestor.parse(content, uuid.uuid4(), "BREAKDOWN", file_name=file_name)


def test_invalid_default_period_aborts(ingestor: SpreadsheetIngestor) -> None:
    content = build_csv([["Period", "NDI"], ["2024Q1", 60]])

    with pytest.raises(InvalidPeriodFormat):
        ingestor.parse(content, uuid.uuid4(), "BREAKDOWN", file_name="ndi.csv", default_period="next quarter")
