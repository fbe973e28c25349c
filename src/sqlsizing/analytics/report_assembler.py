"""Report row assembly, scale-up policy and run summary."""

from collections import Counter
from typing import List
import structlog

from sqlsizing.core.utils import round_cost
from sqlsizing.models.sql_models import (
    CostRecord, Recommendation, RecommendationAction, ReportRow, ReportSummary,
    ResourceDescriptor, UtilizationSample
)

logger = structlog.get_logger(__name__)


def build_row(descriptor: ResourceDescriptor, utilization: UtilizationSample,
              cost: CostRecord, recommendation: Recommendation) -> ReportRow:
    """Join one resource's inputs and recommendation into a report row."""
    return ReportRow(
        subscription_name=descriptor.subscription_name,
        subscription_id=descriptor.subscription_id,
        resource_group=descriptor.resource_group,
        server_name=descriptor.server_name,
        name=descriptor.name,
        resource_type=descriptor.resource_type,
        pool_name=descriptor.pool_name,
        database_count=descriptor.database_count,
        service_tier=descriptor.service_tier,
        capacity=descriptor.capacity,
        unit_kind=descriptor.unit_kind,
        avg_utilization=utilization.average_percent,
        peak_utilization=utilization.peak_percent,
        cost_amount=cost.amount,
        currency=cost.currency,
        billing_period=cost.period,
        recommended_capacity=recommendation.recommended_capacity,
        action=recommendation.action,
        estimated_cost=recommendation.estimated_cost,
        potential_savings=recommendation.potential_savings,
        tier_change_suggestion=recommendation.tier_change_suggestion,
        tier_change_savings=recommendation.tier_change_savings,
        resource_id=descriptor.resource_id,
    )


def apply_scale_up_policy(rows: List[ReportRow], include_scale_up: bool = False) -> int:
    """Rewrite ScaleUp rows in place to NoChange unless scale-ups are included.

    The resource stays in the report; only the actionable columns are reset.
    Returns the number of rows rewritten.
    """
    if include_scale_up:
        return 0

    converted = 0
    for row in rows:
        if row.action != RecommendationAction.SCALE_UP:
            continue
        row.action = RecommendationAction.NO_CHANGE
        row.recommended_capacity = row.capacity
        row.estimated_cost = row.cost_amount
        row.potential_savings = 0.0
        converted += 1

    if converted:
        logger.info("Suppressed scale-up suggestions", rows=converted)
    return converted


def summarize(rows: List[ReportRow], suppressed_scale_ups: int = 0) -> ReportSummary:
    """Counts by action, positive savings, total cost and first currency seen."""
    actions = Counter(row.action.value for row in rows)
    return ReportSummary(
        total_rows=len(rows),
        actions=dict(actions),
        total_potential_savings=round_cost(sum(r.potential_savings for r in rows if r.potential_savings > 0)),
        total_cost=round_cost(sum(r.cost_amount for r in rows)),
        currency=next((r.currency for r in rows if r.currency), ""),
        suppressed_scale_ups=suppressed_scale_ups,
    )
