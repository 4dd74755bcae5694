"""
tests/test_ndi_metrics_service.py

Pytest tests for NdiMetricsService over a seeded SQLite metric store.

Seed
----
2023Q4  AGGREGATED total 58, Stockholm 55
2024Q2  BREAKDOWN only: 50 (weight 1), 70 (weight 3)   -> 65
2024Q3  AGGREGATED total 60, Stockholm 62
2024Q4  AGGREGATED total 64, Stockholm 66 (w 100), Göteborg 60 (w 50)
"""

from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from app.domain.metric_ingestion import MetricPointInput
from app.repositories.metric_point_repository import MetricPointRepository
from app.services.metric_calculations import percent_change
from app.services.ndi_metrics_service import NdiMetricsService


def _point(period: str, value: float, source: str, group_a: str | None = None, weight: float | None = None):
    return MetricPointInput(
        period=period,
        metric="NDI",
        source=source,
        value=value,
        weight=weight,
        group_a=group_a,
    )


@pytest.fixture()
def service(session: Session) -> NdiMetricsService:
    MetricPointRepository(session).upsert(
        [
            _point("2023Q4", 58.0, "AGGREGATED"),
            _point("2023Q4", 55.0, "AGGREGATED", "Stockholm"),
            _point("2024Q2", 50.0, "BREAKDOWN", "Stockholm", weight=1),
            _point("2024Q2", 70.0, "BREAKDOWN", "Göteborg", weight=3),
            _point("2024Q3", 60.0, "AGGREGATED"),
            _point("2024Q3", 62.0, "AGGREGATED", "Stockholm"),
            _point("2024Q4", 64.0, "AGGREGATED"),
            _point("2024Q4", 66.0, "AGGREGATED", "Stockholm", weight=100),
            _point("2024Q4", 60.0, "AGGREGATED", "Göteborg", weight=50),
        ]
    )
    session.commit()
    return NdiMetricsService(session)


# ---------------------------------------------------------------------------
# Period values
# ---------------------------------------------------------------------------


def test_period_value_prefers_aggregated_total(service: NdiMetricsService) -> None:
    assert service.period_value("2024Q4") == pytest.approx(64.0)


def test_period_value_falls_back_to_weighted_breakdown(service: NdiMetricsService) -> None:
    assert service.period_value("2024Q2") == pytest.approx(65.0)


def test_period_value_falls_back_to_grouped_aggregated_rows(session: Session) -> None:
    MetricPointRepository(session).upsert(
        [
            _point("2023Q1", 40.0, "AGGREGATED", "A", weight=1),
            _point("2023Q1", 80.0, "AGGREGATED", "B", weight=3),
        ]
    )
    session.commit()

    assert NdiMetricsService(session).period_value("2023Q1") == pytest.approx(70.0)


def test_period_value_averages_several_total_rows(session: Session) -> None:
    MetricPointRepository(session).upsert(
        [
            _point("2024Q1", 60.0, "AGGREGATED"),
            _point("2024Q1", 70.0, "AGGREGATED"),
            _point("2024Q1", 90.0, "AGGREGATED", "Stockholm"),
        ]
    )
    session.commit()

    assert NdiMetricsService(session).period_value("2024Q1") == pytest.approx(65.0)


def test_period_value_without_data_is_none(service: NdiMetricsService) -> None:
    assert service.period_value("2024Q1") is None


def test_breakdown_returns_breakdown_rows_only(service: NdiMetricsService) -> None:
    rows = service.breakdown("2024Q2")

    assert [row.group_a for row in rows] == ["Göteborg", "Stockholm"]
    assert service.breakdown("2024Q4") == []


# ---------------------------------------------------------------------------
# Calculation
# ---------------------------------------------------------------------------


def test_calculation_from_aggregated_total(service: NdiMetricsService) -> None:
    calculation = service.calculation("2024Q4")

    assert calculation is not None
    assert calculation.source == "AGGREGATED"
    assert calculation.final_value == pytest.approx(64.0)
    assert calculation.calculation_method == "Direct aggregated value"
    assert [row.group_a for row in calculation.aggregated_rows] == ["Göteborg", "Stockholm", None]
    assert calculation.breakdown_rows == []
    assert calculation.previous_quarter_value == pytest.approx(60.0)
    assert calculation.previous_year_value == pytest.approx(58.0)
    assert calculation.qoq_change == pytest.approx(percent_change(64.0, 60.0))
    assert calculation.yoy_change == pytest.approx(percent_change(64.0, 58.0))


def test_calculation_from_weighted_breakdown(service: NdiMetricsService) -> None:
    calculation = service.calculation("2024Q2")

    assert calculation is not None
    assert calculation.source == "BREAKDOWN"
    assert calculation.final_value == pytest.approx(65.0)
    assert calculation.calculation_method == "Weighted mean of 2 breakdown rows"
    assert [(row.group_a, row.weight) for row in calculation.breakdown_rows] == [("Göteborg", 3.0), ("Stockholm", 1.0)]
    assert calculation.previous_quarter_value is None
    assert calculation.qoq_change is None


def test_calculation_of_several_total_rows(session: Session) -> None:
    MetricPointRepository(session).upsert(
        [_point("2024Q1", 60.0, "AGGREGATED"), _point("2024Q1", 70.0, "AGGREGATED")]
    )
    session.commit()

    calculation = NdiMetricsService(session).calculation("2024Q1")

    assert calculation is not None
    assert calculation.final_value == pytest.approx(65.0)
    assert calculation.calculation_method == "Mean of 2 aggregated total rows"


def test_calculation_without_data_is_none(service: NdiMetricsService) -> None:
    assert service.calculation("2024Q1") is None


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def test_summary_for_latest_period(service: NdiMetricsService) -> None:
    summary = service.summary()

    assert summary is not None
    assert summary.period == "2024Q4"
    assert summary.total == pytest.approx(64.0)
    assert summary.ndi_percent == 64
    assert summary.previous_quarter == "2024Q3"
    assert summary.previous_quarter_value == pytest.approx(60.0)
    assert summary.qoq_change == pytest.approx(6.6667, rel=1e-4)
    assert summary.previous_year == "2023Q4"
    assert summary.previous_year_value == pytest.approx(58.0)
    assert summary.yoy_change == pytest.approx(10.3448, rel=1e-4)
    # 2024Q1 has no data: mean of 64, 60 and 65.
    assert summary.rolling4q == pytest.approx(63.0)


def test_summary_without_baselines(service: NdiMetricsService) -> None:
    summary = service.summary("2023Q4")

    assert summary is not None
    assert summary.previous_quarter_value is None
    assert summary.qoq_change is None
    assert summary.yoy_change is None
    assert summary.rolling4q is None


def test_summary_on_empty_store_is_none(session: Session) -> None:
    assert NdiMetricsService(session).summary() is None
    assert NdiMetricsService(session).latest_period() is None


# ---------------------------------------------------------------------------
# Series and history
# ---------------------------------------------------------------------------


def test_series_filters_range_but_uses_outside_quarters(service: NdiMetricsService) -> None:
    points = service.series("2024Q2", "2024Q4")

    assert [p.period for p in points] == ["2024Q2", "2024Q3", "2024Q4"]
    assert points[0].r4 == pytest.approx(61.5)
    assert points[0].yoy is None
    assert points[1].r4 == pytest.approx(61.0)
    assert points[2].yoy == pytest.approx(58.0)


def test_series_unbounded(service: NdiMetricsService) -> None:
    assert [p.period for p in service.series()] == ["2023Q4", "2024Q2", "2024Q3", "2024Q4"]


def test_breakdown_with_history_matches_groups(service: NdiMetricsService) -> None:
    rows = service.breakdown_with_history("2024Q4")

    assert [row.group_a for row in rows] == ["Göteborg", "Stockholm"]
    goteborg, stockholm = rows
    assert goteborg.previous_quarter_value is None
    assert goteborg.qoq_change is None
    assert stockholm.previous_quarter_value == pytest.approx(62.0)
    assert stockholm.qoq_change == pytest.approx((66 - 62) / 62 * 100)
    assert stockholm.previous_year_value == pytest.approx(55.0)
    assert stockholm.yoy_change == pytest.approx(20.0)
    assert stockholm.weight == pytest.approx(100.0)
