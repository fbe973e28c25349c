from .sql_models import *

__all__ = [
    "CapacityUnitKind",
    "ServiceTier",
    "DTU_TIERS",
    "ResourceType",
    "RecommendationAction",
    "NO_DATA_PERIOD",
    "ResourceDescriptor",
    "UtilizationSample",
    "CostRecord",
    "Recommendation",
    "ReportRow",
    "ReportSummary",
]
