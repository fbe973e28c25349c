# src/sqlsizing/clients/azure/monitor_client.py
"""Azure Monitor client for database and pool utilization."""

from typing import Dict, Any, Iterable, List, Optional
from datetime import datetime, timedelta, timezone
import structlog
from azure.monitor.query import MetricsQueryClient, MetricAggregationType
from azure.core.exceptions import AzureError, ClientAuthenticationError

from sqlsizing.core.base_client import BaseClient
from sqlsizing.core.exceptions import ClientConnectionException, MetricsException
from sqlsizing.models.sql_models import CapacityUnitKind, UtilizationSample

logger = structlog.get_logger(__name__)

METRIC_BY_UNIT = {
    CapacityUnitKind.DTU: "dtu_consumption_percent",
    CapacityUnitKind.VCORE: "cpu_percent",
}


def summarize_daily_points(points: Iterable[Any]) -> UtilizationSample:
    """Mean of daily averages and mean of daily maxima; None without data."""
    averages: List[float] = []
    maxima: List[float] = []
    for point in points:
        if point.average is not None:
            averages.append(float(point.average))
        if point.maximum is not None:
            maxima.append(float(point.maximum))

    return UtilizationSample(
        average_percent=_clamp_percent(sum(averages) / len(averages)) if averages else None,
        peak_percent=_clamp_percent(sum(maxima) / len(maxima)) if maxima else None,
    )


def _clamp_percent(value: float) -> float:
    return round(min(max(value, 0.0), 100.0), 2)


class MonitorClient(BaseClient):
    """Azure Monitor metrics client for SQL utilization."""

    def __init__(self, credential, subscription_id: str, config: Dict[str, Any]):
        super().__init__(credential, subscription_id, config, "MonitorClient")
        self.lookback_days = config.get("lookback_days", 30)
        self._metrics_client = None

    async def connect(self) -> None:
        try:
            self._metrics_client = MetricsQueryClient(credential=self.credential)
            self._connected = True
            self.logger.info("Azure Monitor metrics client connected successfully")
        except ClientAuthenticationError as e:
            raise ClientConnectionException("AzureMonitor", f"Authentication failed: {e}")
        except Exception as e:
            raise ClientConnectionException("AzureMonitor", f"Connection failed: {e}")

    async def disconnect(self) -> None:
        if self._metrics_client and hasattr(self._metrics_client, 'close'):
            self._metrics_client.close()
        self._connected = False
        self.logger.info("Azure Monitor metrics client disconnected")

    async def health_check(self) -> bool:
        return self._connected and self._metrics_client is not None

    async def get_utilization(self, resource_id: str, unit_kind: CapacityUnitKind,
                              now: Optional[datetime] = None) -> UtilizationSample:
        """Daily average and peak utilization over the lookback window.

        A failed query is logged and reported as missing data, never as zero.
        """
        if not self._connected:
            raise MetricsException("Monitor client not connected")

        end_time = now or datetime.now(timezone.utc)
        start_time = end_time - timedelta(days=self.lookback_days)
        metric_name = METRIC_BY_UNIT[unit_kind]

        try:
            response = self._metrics_client.query_resource(
                resource_uri=resource_id,
                metric_names=[metric_name],
                timespan=(start_time, end_time),
                granularity=timedelta(days=1),
                aggregations=[MetricAggregationType.AVERAGE, MetricAggregationType.MAXIMUM]
            )
        except AzureError as e:
            self.logger.warning("Metric query failed", resource_id=resource_id, metric=metric_name, error=str(e))
            return UtilizationSample()

        points = [
            point
            for metric in (response.metrics or [])
            for series in (metric.timeseries or [])
            for point in (series.data or [])
        ]
        sample = summarize_daily_points(points)
        self.logger.debug("Collected utilization", resource_id=resource_id, metric=metric_name,
                          points=len(points), peak=sample.peak_percent)
        return sample
