"""
Tests for report row assembly, the scale-up policy and run summaries.
"""

from sqlsizing.analytics.recommendation_engine import recommend
from sqlsizing.analytics.report_assembler import apply_scale_up_policy, build_row, summarize
from sqlsizing.models.sql_models import (
    CapacityUnitKind, CostRecord, RecommendationAction, ResourceType, UtilizationSample
)


def _row(make_descriptor, name, tier, capacity, peak, cost, currency="USD", **kwargs):
    descriptor = make_descriptor(name=name, tier=tier, capacity=capacity, **kwargs)
    record = CostRecord(amount=cost, currency=currency, period="2026-09" if cost else "No data")
    recommendation = recommend(tier, capacity, peak, record.amount, descriptor.unit_kind)
    return build_row(descriptor, UtilizationSample(average_percent=peak, peak_percent=peak), record, recommendation)


def test_build_row_joins_all_inputs(make_descriptor):
    descriptor = make_descriptor(name="pool1", tier="Standard", capacity=100,
                                 resource_type=ResourceType.POOL, pool_name="pool1", database_count=4)
    utilization = UtilizationSample(average_percent=12.5, peak_percent=40.0)
    cost = CostRecord(amount=200.0, currency="EUR", period="2026-09")
    recommendation = recommend("Standard", 100, 40.0, 200.0, CapacityUnitKind.DTU)

    row = build_row(descriptor, utilization, cost, recommendation)

    assert row.resource_type == ResourceType.POOL
    assert row.pool_name == "pool1"
    assert row.database_count == 4
    assert row.avg_utilization == 12.5
    assert row.peak_utilization == 40.0
    assert row.cost_amount == 200.0
    assert row.currency == "EUR"
    assert row.billing_period == "2026-09"
    assert row.recommended_capacity == 50
    assert row.action == RecommendationAction.SCALE_DOWN
    assert row.potential_savings == 100.0
    assert row.resource_id == descriptor.resource_id


def test_scale_up_rows_suppressed_by_default(make_descriptor):
    rows = [
        _row(make_descriptor, "hot", "Premium", 125, 95.0, 400.0),
        _row(make_descriptor, "cold", "Standard", 100, 40.0, 200.0),
    ]
    assert rows[0].action == RecommendationAction.SCALE_UP

    converted = apply_scale_up_policy(rows)

    assert converted == 1
    hot = rows[0]
    assert hot.action == RecommendationAction.NO_CHANGE
    assert hot.recommended_capacity == 125
    assert hot.estimated_cost == 400.0
    assert hot.potential_savings == 0
    assert hot.peak_utilization == 95.0
    assert rows[1].action == RecommendationAction.SCALE_DOWN


def test_scale_up_rows_kept_when_included(make_descriptor):
    rows = [_row(make_descriptor, "hot", "Premium", 125, 95.0, 400.0)]

    converted = apply_scale_up_policy(rows, include_scale_up=True)

    assert converted == 0
    assert rows[0].action == RecommendationAction.SCALE_UP
    assert rows[0].recommended_capacity == 250


def test_suppression_converts_every_scale_up(make_descriptor):
    rows = [
        _row(make_descriptor, f"db{i}", "Standard", 100, peak, 100.0)
        for i, peak in enumerate([85.0, 90.0, 10.0, None, 0.0, 99.0])
    ]
    before = sum(1 for r in rows if r.action == RecommendationAction.SCALE_UP)

    converted = apply_scale_up_policy(rows, include_scale_up=False)

    assert converted == before == 3
    assert all(r.action != RecommendationAction.SCALE_UP for r in rows)


def test_summary(make_descriptor):
    rows = [
        _row(make_descriptor, "unbilled", "Standard", 100, 40.0, 0.0, currency=""),
        _row(make_descriptor, "a", "Standard", 100, 40.0, 200.0, currency="EUR"),
        _row(make_descriptor, "b", "Premium", 125, 95.0, 400.0, currency="EUR"),
        _row(make_descriptor, "c", "Basic", 5, None, 27.0, currency="EUR"),
    ]

    summary = summarize(rows)

    assert summary.total_rows == 4
    assert summary.actions == {"ScaleDown": 2, "ScaleUp": 1, "NoMetrics": 1}
    # the ScaleUp row's negative savings are excluded
    assert summary.total_potential_savings == 100.0
    assert summary.total_cost == 627.0
    assert summary.currency == "EUR"


def test_summary_of_empty_run():
    summary = summarize([])

    assert summary.total_rows == 0
    assert summary.actions == {}
    assert summary.total_potential_savings == 0
    assert summary.currency == ""
