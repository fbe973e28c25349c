"""
SQL right-sizing data models
Resource descriptors, utilization, cost and recommendation records for the advisor
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Optional
from enum import Enum


class CapacityUnitKind(str, Enum):
    """Billing unit that a capacity value is expressed in."""
    DTU = "DTU"
    VCORE = "VCore"


class ServiceTier(str, Enum):
    """Service tiers with a known legal capacity table."""
    BASIC = "Basic"
    STANDARD = "Standard"
    PREMIUM = "Premium"
    GENERAL_PURPOSE = "GeneralPurpose"
    BUSINESS_CRITICAL = "BusinessCritical"
    HYPERSCALE = "Hyperscale"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ServiceTier"]:
        """Case-insensitive lookup; None for tiers without a table."""
        if isinstance(value, cls):
            return value
        normalized = (value or "").replace(" ", "").lower()
        for tier in cls:
            if tier.value.lower() == normalized:
                return tier
        return None


DTU_TIERS = frozenset({ServiceTier.BASIC, ServiceTier.STANDARD, ServiceTier.PREMIUM})


class ResourceType(str, Enum):
    POOL = "Pool"
    STANDALONE = "Standalone"


class RecommendationAction(str, Enum):
    """Action classification of a recommendation."""
    NO_METRICS = "NoMetrics"
    UNUSED = "Unused"
    SCALE_DOWN_UNUSED = "ScaleDown-Unused"
    SCALE_DOWN = "ScaleDown"
    SCALE_UP = "ScaleUp"
    NO_CHANGE = "NoChange"


NO_DATA_PERIOD = "No data"


class ResourceDescriptor(BaseModel):
    """A scorable database or elastic pool as supplied by discovery."""

    model_config = ConfigDict(frozen=True)

    resource_id: str
    name: str
    server_name: str = ""
    service_tier: str
    capacity: int = Field(..., ge=0)
    unit_kind: CapacityUnitKind
    resource_group: str
    subscription_id: str
    subscription_name: str = ""
    resource_type: ResourceType = ResourceType.STANDALONE
    pool_name: Optional[str] = None
    database_count: Optional[int] = None


class UtilizationSample(BaseModel):
    """30-day utilization figures; None means the provider had no data."""

    model_config = ConfigDict(frozen=True)

    average_percent: Optional[float] = Field(None, ge=0, le=100)
    peak_percent: Optional[float] = Field(None, ge=0, le=100, description="Average of daily maxima")

    @property
    def has_data(self) -> bool:
        return self.peak_percent is not None


class CostRecord(BaseModel):
    """Billed cost of one resource for one billing period."""

    model_config = ConfigDict(frozen=True)

    amount: float = Field(0.0, ge=0, description="Cost rounded to 2 decimals")
    currency: str = ""
    period: str = NO_DATA_PERIOD

    @property
    def has_data(self) -> bool:
        return self.period != NO_DATA_PERIOD


class Recommendation(BaseModel):
    """Output of the recommendation engine for one resource."""

    model_config = ConfigDict(frozen=True)

    recommended_capacity: int
    action: RecommendationAction
    estimated_cost: float
    potential_savings: float = Field(..., description="Current minus estimated cost; negative is an increase")
    tier_change_suggestion: Optional[str] = None
    tier_change_savings: Optional[float] = None


class ReportRow(BaseModel):
    """One report line: descriptor, utilization, cost and recommendation joined."""

    subscription_name: str
    subscription_id: str
    resource_group: str
    server_name: str
    name: str
    resource_type: ResourceType
    pool_name: Optional[str] = None
    database_count: Optional[int] = None
    service_tier: str
    capacity: int
    unit_kind: CapacityUnitKind
    avg_utilization: Optional[float] = None
    peak_utilization: Optional[float] = None
    cost_amount: float = 0.0
    currency: str = ""
    billing_period: str = NO_DATA_PERIOD
    recommended_capacity: int
    action: RecommendationAction
    estimated_cost: float
    potential_savings: float
    tier_change_suggestion: Optional[str] = None
    tier_change_savings: Optional[float] = None
    resource_id: str


class ReportSummary(BaseModel):
    """Run-level aggregates over the final rows."""

    total_rows: int = 0
    actions: Dict[str, int] = Field(default_factory=dict)
    total_potential_savings: float = 0.0
    total_cost: float = 0.0
    currency: str = ""
    suppressed_scale_ups: int = 0
