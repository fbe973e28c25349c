# src/sqlsizing/discovery/orchestrator.py
"""Orchestrator running discovery, cost caching and scoring for every subscription."""

from typing import Any, Callable, Dict, List, Optional, Tuple
import structlog

from sqlsizing.analytics.recommendation_engine import recommend
from sqlsizing.analytics.report_assembler import apply_scale_up_policy, build_row, summarize
from sqlsizing.clients.azure.client_factory import AzureClientFactory
from sqlsizing.clients.azure.cost_client import CostCache, CostClient, lookup_cost
from sqlsizing.clients.azure.monitor_client import MonitorClient
from sqlsizing.clients.azure.sql_client import SqlClient
from sqlsizing.core.exceptions import DiscoveryException, FinOpsException
from sqlsizing.models.sql_models import ReportRow, ReportSummary, ResourceDescriptor

logger = structlog.get_logger(__name__)


class AdvisorOrchestrator:
    """
    Runs one advisory pass over all configured subscriptions.

    Subscriptions are processed one after another. Each one gets a single cost
    cache built from its resource groups before any resource is scored. Rows from
    every subscription accumulate in one list; the scale-up policy and summary are
    applied once at the end.
    """

    def __init__(self, config: Dict[str, Any], factory: Optional[AzureClientFactory] = None,
                 progress: Optional[Callable[[str], None]] = None):
        self.config = config
        self.azure_config = config.get("azure", {})
        self.advisor_config = config.get("advisor", {})
        self.factory = factory or AzureClientFactory({**self.azure_config, **self.advisor_config})
        self.progress = progress or (lambda message: None)
        self.logger = logger.bind(orchestrator="advisor")

    def resolve_subscriptions(self) -> List[Tuple[str, str]]:
        configured = self.azure_config.get("subscription_ids") or []
        if configured:
            subscriptions = [(sub_id, sub_id) for sub_id in configured]
        else:
            subscriptions = self.factory.list_subscriptions()

        if not subscriptions:
            raise DiscoveryException("Subscriptions", "No accessible subscriptions found")
        return subscriptions

    async def run(self) -> Tuple[List[ReportRow], ReportSummary]:
        subscriptions = self.resolve_subscriptions()
        rows: List[ReportRow] = []

        for index, (subscription_id, subscription_name) in enumerate(subscriptions, start=1):
            self.progress(f"[{index}/{len(subscriptions)}] Subscription {subscription_name}")
            try:
                async with self.factory.create_sql_client(subscription_id, subscription_name) as sql_client, \
                        self.factory.create_cost_client(subscription_id) as cost_client, \
                        self.factory.create_monitor_client(subscription_id) as monitor_client:
                    await self.process_subscription(sql_client, cost_client, monitor_client, rows)
            except FinOpsException as e:
                self.logger.warning("Skipping subscription", subscription=subscription_id, error=e.message)
                self.progress(f"  ⚠️  Skipped: {e.message}")

        return self.finalize(rows)

    async def process_subscription(self, sql_client: SqlClient, cost_client: CostClient,
                                   monitor_client: MonitorClient, rows: List[ReportRow]) -> int:
        """Score every pool and standalone database of one subscription into ``rows``."""
        resources = await sql_client.discover_resources()
        if not resources:
            self.logger.info("No SQL resources found", subscription=sql_client.subscription_id)
            return 0

        # resource group names are case-insensitive in ARM
        groups_by_key: Dict[str, str] = {}
        for resource in resources:
            groups_by_key.setdefault(resource.resource_group.lower(), resource.resource_group)
        resource_groups = list(groups_by_key.values())
        cost_cache, unresolved = await cost_client.build_cost_cache(resource_groups)
        if unresolved:
            self.logger.info("Cost rows without a resource id", count=unresolved)

        for resource in resources:
            rows.append(await self.score_resource(resource, cost_cache, monitor_client))

        self.progress(f"  ✓ {len(resources)} resources scored across {len(resource_groups)} resource groups")
        return len(resources)

    async def score_resource(self, resource: ResourceDescriptor, cost_cache: CostCache,
                             monitor_client: MonitorClient) -> ReportRow:
        utilization = await monitor_client.get_utilization(resource.resource_id, resource.unit_kind)
        cost = lookup_cost(cost_cache, resource.resource_id)
        recommendation = recommend(
            resource.service_tier,
            resource.capacity,
            utilization.peak_percent,
            cost.amount,
            resource.unit_kind,
        )
        self.logger.debug("Scored resource", name=resource.name, action=recommendation.action.value)
        return build_row(resource, utilization, cost, recommendation)

    def finalize(self, rows: List[ReportRow]) -> Tuple[List[ReportRow], ReportSummary]:
        suppressed = apply_scale_up_policy(rows, self.advisor_config.get("include_scale_up", False))
        summary = summarize(rows, suppressed)
        self.logger.info(
            "Advisory run completed",
            rows=summary.total_rows,
            potential_savings=summary.total_potential_savings,
            currency=summary.currency
        )
        return rows, summary
