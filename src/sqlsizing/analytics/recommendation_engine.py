"""
Capacity recommendation engine.

Maps (service tier, current capacity, peak utilization, current cost, unit kind)
to a recommended capacity, an action and a cost estimate. Pure and deterministic:
all decisions come from the static tables below.

Cost estimates scale linearly with capacity and tier-change savings are fixed
ratios of the current cost. Both are approximations, not live pricing.
"""

import math
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from sqlsizing.core.utils import round_cost
from sqlsizing.models.sql_models import (
    CapacityUnitKind, Recommendation, RecommendationAction, ServiceTier
)

TARGET_UTILIZATION = 80.0
LOW_UTILIZATION_THRESHOLD = 20.0

DTU_CAPACITIES: Mapping[ServiceTier, Tuple[int, ...]] = MappingProxyType({
    ServiceTier.BASIC: (5,),
    ServiceTier.STANDARD: (10, 20, 50, 100, 200, 400, 800, 1600, 3000),
    ServiceTier.PREMIUM: (125, 250, 500, 1000, 1750, 4000),
})

VCORE_CAPACITIES: Tuple[int, ...] = (1, 2, 4, 6, 8, 10, 12, 14, 16, 18, 20, 24, 32, 40, 80)

DTU_MINIMUMS: Mapping[ServiceTier, int] = MappingProxyType({
    ServiceTier.BASIC: 5,
    ServiceTier.STANDARD: 10,
    ServiceTier.PREMIUM: 125,
})

VCORE_MINIMUM = 1

# (suggestion, savings ratio of current cost) for DTU tiers sitting at their minimum
DTU_TIER_CHANGES: Mapping[ServiceTier, Tuple[str, float]] = MappingProxyType({
    ServiceTier.STANDARD: ("Consider Basic (5 DTU)", 0.65),
    ServiceTier.PREMIUM: ("Consider Standard (100 DTU)", 0.80),
})

VCORE_TIER_CHANGE = ("Consider DTU model (Standard 100 DTU)", 0.70)
VCORE_TIER_CHANGE_MIN_COST = 100.0


def legal_capacities(tier: Optional[str], unit_kind: CapacityUnitKind) -> Optional[Tuple[int, ...]]:
    """Ordered legal capacity values for a (tier, unit) pair, None if unknown."""
    if unit_kind == CapacityUnitKind.VCORE:
        return VCORE_CAPACITIES
    parsed = ServiceTier.parse(tier)
    return DTU_CAPACITIES.get(parsed) if parsed else None


def minimum_capacity(tier: Optional[str], unit_kind: CapacityUnitKind) -> Optional[int]:
    if unit_kind == CapacityUnitKind.VCORE:
        return VCORE_MINIMUM
    parsed = ServiceTier.parse(tier)
    return DTU_MINIMUMS.get(parsed) if parsed else None


def scale_cost(current_cost: float, current_capacity: int, new_capacity: int) -> float:
    """Linear cost estimate for a new capacity; unscaled when capacity is zero."""
    if not current_capacity:
        return round_cost(current_cost)
    return round_cost(current_cost * new_capacity / current_capacity)


def select_capacity(capacities: Tuple[int, ...], needed: int) -> int:
    """Smallest legal capacity covering the need, capped at the table maximum."""
    for capacity in capacities:
        if capacity >= needed:
            return capacity
    return capacities[-1]


def _build(recommended: int, action: RecommendationAction, current_cost: float,
           estimated_cost: float) -> Recommendation:
    return Recommendation(
        recommended_capacity=recommended,
        action=action,
        estimated_cost=estimated_cost,
        potential_savings=round_cost(current_cost - estimated_cost),
    )


def _classify(recommended: int, current: int) -> RecommendationAction:
    if recommended < current:
        return RecommendationAction.SCALE_DOWN
    if recommended > current:
        return RecommendationAction.SCALE_UP
    return RecommendationAction.NO_CHANGE


def tier_change(tier: Optional[str], capacity: int, current_cost: float,
                unit_kind: CapacityUnitKind) -> Optional[Tuple[str, float]]:
    """Cheaper-tier suggestion for a resource held at its tier minimum."""
    if capacity != minimum_capacity(tier, unit_kind):
        return None

    if unit_kind == CapacityUnitKind.VCORE:
        if current_cost <= VCORE_TIER_CHANGE_MIN_COST:
            return None
        suggestion, ratio = VCORE_TIER_CHANGE
    else:
        change = DTU_TIER_CHANGES.get(ServiceTier.parse(tier))
        if change is None:
            return None
        suggestion, ratio = change

    return suggestion, round_cost(current_cost * ratio)


def recommend(tier: Optional[str], current_capacity: int, peak_utilization: Optional[float],
              current_cost: float, unit_kind: CapacityUnitKind) -> Recommendation:
    """Recommend a capacity for one resource.

    Args:
        tier: Service tier name (case-insensitive).
        current_capacity: Current DTU or vCore capacity.
        peak_utilization: Average of daily peaks in percent, None when no data.
        current_cost: Billed cost for the last full month.
        unit_kind: Unit of ``current_capacity``.
    """
    current_cost = round_cost(current_cost)

    if peak_utilization is None:
        return _build(current_capacity, RecommendationAction.NO_METRICS, current_cost, current_cost)

    capacities = legal_capacities(tier, unit_kind)
    if capacities is None:
        return _build(current_capacity, RecommendationAction.NO_CHANGE, current_cost, current_cost)

    if peak_utilization == 0:
        minimum = minimum_capacity(tier, unit_kind)
        action = (RecommendationAction.SCALE_DOWN_UNUSED if minimum < current_capacity
                  else RecommendationAction.UNUSED)
        return _build(minimum, action, current_cost,
                      scale_cost(current_cost, current_capacity, minimum))

    needed = math.ceil(current_capacity * peak_utilization / TARGET_UTILIZATION)
    recommended = select_capacity(capacities, needed)
    if peak_utilization < TARGET_UTILIZATION and recommended > current_capacity:
        recommended = current_capacity

    action = _classify(recommended, current_capacity)
    result = _build(recommended, action, current_cost,
                    scale_cost(current_cost, current_capacity, recommended))

    if action == RecommendationAction.NO_CHANGE and peak_utilization < LOW_UTILIZATION_THRESHOLD:
        change = tier_change(tier, current_capacity, current_cost, unit_kind)
        if change:
            suggestion, savings = change
            result = result.model_copy(update={
                "tier_change_suggestion": suggestion,
                "tier_change_savings": savings,
            })

    return result
