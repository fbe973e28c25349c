"""CSV report sink."""

import csv
import json
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union
import structlog

from sqlsizing.models.sql_models import ReportRow, ReportSummary

logger = structlog.get_logger(__name__)

# (column header, row attribute)
REPORT_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ("SubscriptionName", "subscription_name"),
    ("SubscriptionId", "subscription_id"),
    ("ResourceGroup", "resource_group"),
    ("ServerName", "server_name"),
    ("Name", "name"),
    ("ResourceType", "resource_type"),
    ("PoolName", "pool_name"),
    ("DatabaseCount", "database_count"),
    ("ServiceTier", "service_tier"),
    ("Capacity", "capacity"),
    ("CapacityUnit", "unit_kind"),
    ("AvgUtilization", "avg_utilization"),
    ("PeakUtilization", "peak_utilization"),
    ("CostAmount", "cost_amount"),
    ("Currency", "currency"),
    ("BillingPeriod", "billing_period"),
    ("RecommendedCapacity", "recommended_capacity"),
    ("Action", "action"),
    ("EstimatedCost", "estimated_cost"),
    ("PotentialSavings", "potential_savings"),
    ("TierChangeSuggestion", "tier_change_suggestion"),
    ("TierChangeSavings", "tier_change_savings"),
    ("ResourceId", "resource_id"),
)


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if hasattr(value, "value"):
        return value.value
    if isinstance(value, float):
        return f"{value:.2f}"
    return value


def write_report(rows: List[ReportRow], output_path: Union[str, Path], include_scale_up: bool = False,
                 summary: Optional[ReportSummary] = None) -> Path:
    """Write one CSV line per resource plus a ``.summary.json`` sidecar."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow([header for header, _ in REPORT_COLUMNS])
        for row in rows:
            writer.writerow([_cell(getattr(row, attr)) for _, attr in REPORT_COLUMNS])

    if summary is not None:
        sidecar = path.with_suffix(".summary.json")
        with open(sidecar, 'w', encoding='utf-8') as f:
            json.dump({"include_scale_up": include_scale_up, **summary.model_dump()}, f, indent=2, default=str)

    logger.info("Report written", path=str(path), rows=len(rows), include_scale_up=include_scale_up)
    return path
