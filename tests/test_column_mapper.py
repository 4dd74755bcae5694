from __future__ import annotations

import unittest

from app.domain.errors import MissingRequiredColumn
from app.mappers.column_mapper import is_total_label, map_row, resolve_column_mapping
from app.validators.mapping_validator import MappingValidator


class TestColumnMapper(unittest.TestCase):
    def test_maps_swedish_headers_by_alias(self) -> None:
        headers = ["Period", "Område", "Kategori", "NDI", "Antal svar"]

        mapping = resolve_column_mapping(headers)

        self.assertEqual(
            mapping.as_report_mapping(),
            {
                "value": "NDI",
                "period": "Period",
                "weight": "Antal svar",
                "group_a": "Område",
                "group_b": "Kategori",
            },
        )
        self.assertEqual(mapping.match_strategies["value"], "alias")
        self.assertEqual(mapping.match_strategies["period"], "case_insensitive")
        self.assertFalse(mapping.is_wide)
        self.assertEqual(mapping.warnings, ())

    def test_exact_header_wins_over_alias(self) -> None:
        mapping = resolve_column_mapping(["value", "period", "groupA"])

        self.assertEqual(mapping.match_strategies["value"], "exact")
        self.assertEqual(mapping.match_strategies["group_a"], "exact")

    def test_fuzzy_matches_misspelled_headers(self) -> None:
        mapping = resolve_column_mapping(["Perod", "Värdee"])

        self.assertEqual(mapping.header_for("period"), "Perod")
        self.assertEqual(mapping.header_for("value"), "Värdee")
        self.assertEqual(mapping.match_strategies["value"], "fuzzy")

    def test_missing_value_column_raises(self) -> None:
        with self.assertRaises(MissingRequiredColumn) as ctx:
            resolve_column_mapping(["Period", "Område"])

        self.assertEqual(ctx.exception.field, "value")
        self.assertIn("Område", ctx.exception.message)

    def test_ambiguous_value_columns_use_first_and_warn(self) -> None:
        mapping = resolve_column_mapping(["NDI", "Nöjdhet", "Period"])

        self.assertEqual(mapping.header_for("value"), "NDI")
        self.assertTrue(any("Ambiguous column mapping for value" in w for w in mapping.warnings))

    def test_quarter_headers_make_a_wide_sheet(self) -> None:
        mapping = resolve_column_mapping(["Område", "2024 Q1", "2024 Q2", "Q3 2024"])

        self.assertTrue(mapping.is_wide)
        self.assertEqual([column.period for column in mapping.quarter_columns], ["2024Q1", "2024Q2", "2024Q3"])
        self.assertEqual(mapping.header_for("group_a"), "Område")
        self.assertNotIn("value", mapping.field_to_index)

    def test_wide_sheet_value_header_becomes_row_label(self) -> None:
        mapping = resolve_column_mapping(["NDI", "Q1 2024", "Q2 2024"])

        self.assertTrue(mapping.is_wide)
        self.assertEqual(mapping.header_for("group_a"), "NDI")
        self.assertTrue(any("read as a row label" in w for w in mapping.warnings))

    def test_duplicate_quarter_header_is_ignored_with_warning(self) -> None:
        mapping = resolve_column_mapping(["Område", "2024 Q1", "Q1 2024"])

        self.assertEqual(len(mapping.quarter_columns), 1)
        self.assertTrue(any("repeats quarter 2024Q1" in w for w in mapping.warnings))

    def test_single_quarter_header_labels_every_row(self) -> None:
        mapping = resolve_column_mapping(["Mitt konto Q4 2024", "NDI", "Antal"])

        self.assertFalse(mapping.is_wide)
        self.assertEqual(mapping.header_period, "2024Q4")
        self.assertEqual(mapping.header_for("group_a"), "Mitt konto Q4 2024")
        self.assertEqual(mapping.header_for("weight"), "Antal")

    def test_leftover_headers_fill_group_slots_in_order(self) -> None:
        mapping = resolve_column_mapping(["Stad", "Kanal", "Period", "NDI"])

        self.assertEqual(mapping.header_for("group_a"), "Stad")
        self.assertEqual(mapping.header_for("group_b"), "Kanal")
        self.assertEqual(mapping.match_strategies["group_a"], "positional")

    def test_custom_aliases_replace_defaults(self) -> None:
        mapping = resolve_column_mapping(["Betyg", "Period"], aliases={"value": ("betyg",)})

        self.assertEqual(mapping.header_for("value"), "Betyg")

    def test_custom_validator_can_require_more_fields(self) -> None:
        validator = MappingValidator(required_fields=("value", "weight"))

        with self.assertRaises(MissingRequiredColumn) as ctx:
            resolve_column_mapping(["Period", "NDI"], validator=validator)

        self.assertEqual(ctx.exception.field, "weight")

    def test_map_row_pads_short_rows(self) -> None:
        mapping = resolve_column_mapping(["Period", "NDI", "Antal svar"])

        self.assertEqual(map_row(("2024Q1", 61.0), mapping), {"value": 61.0, "period": "2024Q1", "weight": None})

    def test_total_labels(self) -> None:
        self.assertTrue(is_total_label("NDI"))
        self.assertTrue(is_total_label(" NDI total "))
        self.assertFalse(is_total_label("Stockholm"))
        self.assertFalse(is_total_label(None))


if __name__ == "__main__":
    unittest.main()
