"""
app/mappers/column_mapper.py

Header-to-field mapping for uploaded NDI spreadsheets.

The alias table is plain data; :func:`resolve_column_mapping` is a pure
function over it. Matching runs in tiers per logical field: exact header,
case/whitespace-insensitive header, alias list, then fuzzy. Within a tier
the left-most header wins and any other candidate is reported as an
ambiguous mapping.
"""

from __future__ import annotations

from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Any, Mapping, Sequence

from app.domain.period import normalize_period
from app.validators.mapping_validator import MappingValidator

# Resolution order; groups go last so they never take a value/period column.
LOGICAL_FIELDS: tuple[str, ...] = (
    "value",
    "period",
    "weight",
    "group_a",
    "group_b",
    "group_c",
)

GROUP_FIELDS: tuple[str, ...] = ("group_a", "group_b", "group_c")

REQUIRED_FIELDS: tuple[str, ...] = ("value",)

DEFAULT_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "value": (
        "ndi",
        "ndi total",
        "index",
        "nöjdhet",
        "nöjd index",
        "nöjd digital index",
        "kundnöjdhet",
        "nki",
        "value",
        "värde",
        "score",
    ),
    "weight": ("antal", "antal svar", "svar", "count", "n", "sample", "bas", "weight", "vikt"),
    "period": ("period", "kvartal", "quarter", "tid", "datum", "time", "date", "q", "k"),
    "group_a": ("område", "omrade", "area", "region", "grupp a", "group a", "segment"),
    "group_b": ("kategori", "category", "grupp b", "group b", "dimension"),
    "group_c": ("undergrupp", "subgroup", "grupp c", "group c", "fråga", "question"),
}

# Aliases shorter than this only match whole headers.
_MIN_FUZZY_ALIAS_LENGTH = 3


def normalize_header(header: Any) -> str:
    """
    Normalize a column name for flexible matching.
    """

    if header is None:
        return ""
    return "".join(ch for ch in str(header).strip().lower() if ch.isalnum())


@dataclass(frozen=True)
class QuarterColumn:
    """
    A header that names a quarter in a wide-format sheet.
    """

    index: int
    header: str
    period: str


@dataclass(frozen=True)
class ColumnMapping:
    """
    Final resolved mapping metadata.
    """

    headers: tuple[str, ...]
    field_to_index: dict[str, int]
    match_strategies: dict[str, str]
    quarter_columns: tuple[QuarterColumn, ...] = ()
    header_period: str | None = None
    warnings: tuple[str, ...] = ()

    @property
    def is_wide(self) -> bool:
        return "period" not in self.field_to_index and bool(self.quarter_columns)

    def header_for(self, field: str) -> str | None:
        index = self.field_to_index.get(field)
        return None if index is None else self.headers[index]

    def as_report_mapping(self) -> dict[str, str]:
        return {field: self.headers[index] for field, index in self.field_to_index.items()}


def resolve_column_mapping(
    headers: Sequence[Any],
    *,
    aliases: Mapping[str, Sequence[str]] | None = None,
    validator: MappingValidator | None = None,
    fuzzy_threshold: float = 0.84,
) -> ColumnMapping:
    """
    Resolve logical fields to header positions.

    Raises ``MissingRequiredColumn`` when ``value`` cannot be mapped and the
    sheet is not in wide (one column per quarter) format.
    """

    alias_table = {field: tuple(values) for field, values in (aliases or DEFAULT_COLUMN_ALIASES).items()}
    header_texts = tuple("" if header is None else str(header).strip() for header in headers)

    quarter_columns: list[QuarterColumn] = []
    seen_quarters: set[str] = set()
    warnings: list[str] = []
    candidate_indexes: list[int] = []
    for index, header in enumerate(header_texts):
        if not header:
            continue
        period = normalize_period(header)
        if period is None:
            candidate_indexes.append(index)
            continue
        if period in seen_quarters:
            warnings.append(f"Column '{header}' repeats quarter {period}; it was ignored.")
            continue
        seen_quarters.add(period)
        quarter_columns.append(QuarterColumn(index=index, header=header, period=period))

    resolved: dict[str, int] = {}
    strategies: dict[str, str] = {}
    claims: dict[int, list[str]] = {}
    used: set[int] = set()

    for field in LOGICAL_FIELDS:
        for strategy, matcher in (
            ("exact", _exact_matcher(field)),
            ("case_insensitive", _case_insensitive_matcher(field)),
            ("alias", _alias_matcher(alias_table.get(field, ()))),
        ):
            matches = [index for index in candidate_indexes if matcher(header_texts[index])]
            for index in matches:
                claims.setdefault(index, [])
                if field not in claims[index]:
                    claims[index].append(field)
            available = [index for index in matches if index not in used]
            if available:
                _assign(field, available, strategy, header_texts, resolved, strategies, used, warnings)
                break

    for field in LOGICAL_FIELDS:
        if field not in resolved:
            fuzzy = _best_fuzzy_match(
                field=field,
                aliases=alias_table.get(field, ()),
                header_texts=header_texts,
                candidate_indexes=[index for index in candidate_indexes if index not in used],
                threshold=fuzzy_threshold,
            )
            if fuzzy is not None:
                resolved[field] = fuzzy
                strategies[field] = "fuzzy"
                used.add(fuzzy)

    for index, fields in claims.items():
        if len(fields) > 1:
            mapped_to = next((field for field, position in resolved.items() if position == index), None)
            warnings.append(
                f"Ambiguous column mapping: '{header_texts[index]}' matches "
                f"{', '.join(fields)}; mapped to {mapped_to or 'nothing'}."
            )

    header_period: str | None = None
    if "period" not in resolved and quarter_columns:
        if len(quarter_columns) == 1 and "value" in resolved:
            # One quarter-named header over a long sheet, e.g. "Mitt konto Q4 2024",
            # labels the period of every row and is itself a group column.
            header_period = quarter_columns[0].period
            candidate_indexes = sorted([*candidate_indexes, quarter_columns[0].index])
            quarter_columns = []
        elif "value" in resolved:
            label_index = resolved.pop("value")
            strategies.pop("value")
            used.discard(label_index)
            warnings.append(
                f"Column '{header_texts[label_index]}' is read as a row label; "
                "values come from the quarter columns."
            )

    free_groups = [field for field in GROUP_FIELDS if field not in resolved]
    for index in candidate_indexes:
        if not free_groups:
            break
        if index in used:
            continue
        field = free_groups.pop(0)
        resolved[field] = index
        strategies[field] = "positional"
        used.add(index)

    mapping = ColumnMapping(
        headers=header_texts,
        field_to_index=dict(sorted(resolved.items(), key=lambda item: LOGICAL_FIELDS.index(item[0]))),
        match_strategies=strategies,
        quarter_columns=tuple(quarter_columns),
        header_period=header_period,
        warnings=tuple(warnings),
    )
    (validator or MappingValidator(required_fields=REQUIRED_FIELDS)).validate(mapping)
    return mapping


def map_row(row: Sequence[Any], mapping: ColumnMapping) -> dict[str, Any]:
    """
    Pick the mapped cells of one sheet row, keyed by logical field.
    """

    return {
        field: row[index] if index < len(row) else None
        for field, index in mapping.field_to_index.items()
    }


def is_total_label(label: Any, aliases: Mapping[str, Sequence[str]] | None = None) -> bool:
    """
    True when a row label names the metric itself ("NDI", "NDI total"),
    marking the row as the period total rather than a breakdown group.
    """

    normalized = normalize_header(label)
    if not normalized:
        return False
    value_aliases = (aliases or DEFAULT_COLUMN_ALIASES).get("value", ())
    return normalized in {normalize_header(alias) for alias in value_aliases}


def _assign(
    field: str,
    available: list[int],
    strategy: str,
    header_texts: Sequence[str],
    resolved: dict[str, int],
    strategies: dict[str, str],
    used: set[int],
    warnings: list[str],
) -> None:
    chosen = available[0]
    resolved[field] = chosen
    strategies[field] = strategy
    used.add(chosen)
    if len(available) > 1:
        others = ", ".join(f"'{header_texts[index]}'" for index in available[1:])
        warnings.append(
            f"Ambiguous column mapping for {field}: using '{header_texts[chosen]}', ignoring {others}."
        )


def _exact_matcher(field: str):
    spellings = {field, _camel(field)}
    return lambda header: header in spellings


def _case_insensitive_matcher(field: str):
    target = normalize_header(field)
    return lambda header: normalize_header(header) == target


def _alias_matcher(aliases: Sequence[str]):
    targets = {normalize_header(alias) for alias in aliases if normalize_header(alias)}
    return lambda header: normalize_header(header) in targets


def _best_fuzzy_match(
    *,
    field: str,
    aliases: Sequence[str],
    header_texts: Sequence[str],
    candidate_indexes: Sequence[int],
    threshold: float,
) -> int | None:
    candidates = [
        normalize_header(item)
        for item in (field, *aliases)
        if len(normalize_header(item)) >= _MIN_FUZZY_ALIAS_LENGTH
    ]
    if not candidates:
        return None

    best_index: int | None = None
    best_score = 0.0
    for index in candidate_indexes:
        header_norm = normalize_header(header_texts[index])
        if not header_norm:
            continue
        for candidate in candidates:
            score = SequenceMatcher(None, header_norm, candidate).ratio()
            if candidate in header_norm:
                score = max(score, 0.9)
            if score > best_score:
                best_score = score
                best_index = index

    if best_index is not None and best_score >= threshold:
        return best_index
    return None


def _camel(field: str) -> str:
    head, *rest = field.split("_")
    return head + "".join(part.capitalize() for part in rest)
