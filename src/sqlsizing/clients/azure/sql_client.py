"""Azure SQL discovery client."""

from collections import Counter
from typing import Dict, Any, List, Optional
import structlog
from azure.mgmt.sql import SqlManagementClient
from azure.core.exceptions import AzureError

from sqlsizing.core.base_client import BaseClient
from sqlsizing.core.exceptions import ClientConnectionException, DiscoveryException
from sqlsizing.core.utils import resource_group_from_id
from sqlsizing.models.sql_models import (
    CapacityUnitKind, DTU_TIERS, ResourceDescriptor, ResourceType, ServiceTier
)

logger = structlog.get_logger(__name__)

SYSTEM_DATABASES = frozenset({"master", "tempdb", "model", "msdb"})


def unit_kind_for_tier(tier: Optional[str]) -> CapacityUnitKind:
    """DTU for Basic/Standard/Premium, vCore for everything else."""
    return CapacityUnitKind.DTU if ServiceTier.parse(tier) in DTU_TIERS else CapacityUnitKind.VCORE


class SqlClient(BaseClient):
    """Discovers elastic pools and standalone databases of one subscription."""

    def __init__(self, credential, subscription_id: str, config: Dict[str, Any],
                 subscription_name: str = ""):
        super().__init__(credential, subscription_id, config, "SqlClient")
        self.subscription_name = subscription_name or subscription_id
        self._client = None

    async def connect(self) -> None:
        try:
            self._client = SqlManagementClient(
                credential=self.credential,
                subscription_id=self.subscription_id
            )
            self._connected = True
            self.logger.info("SQL management client connected successfully")
        except Exception as e:
            raise ClientConnectionException("AzureSql", f"Connection failed: {e}")

    async def disconnect(self) -> None:
        if self._client:
            self._client.close()
        self._connected = False
        self.logger.info("SQL management client disconnected")

    async def health_check(self) -> bool:
        try:
            if not self._connected or not self._client:
                return False
            next(iter(self._client.servers.list()), None)
            return True
        except Exception as e:
            self.logger.warning("SQL management health check failed", error=str(e))
            return False

    async def discover_resources(self) -> List[ResourceDescriptor]:
        """Elastic pools first, then standalone databases, per server."""
        if not self._connected:
            raise DiscoveryException("AzureSql", "Client not connected")

        try:
            servers = list(self._client.servers.list())
        except AzureError as e:
            raise DiscoveryException("AzureSql", f"Failed to list servers: {e}")

        resources: List[ResourceDescriptor] = []
        for server in servers:
            resource_group = resource_group_from_id(server.id)
            if not resource_group:
                self.logger.warning("Skipping server with unparseable id", server_id=server.id)
                continue
            try:
                resources.extend(self._discover_server(server.name, resource_group))
            except AzureError as e:
                self.logger.warning(f"Failed to enumerate server {server.name}", error=str(e))
                continue

        self.logger.info(
            f"Discovered {len(resources)} SQL resources",
            subscription=self.subscription_id,
            servers=len(servers),
            pools=sum(1 for r in resources if r.resource_type == ResourceType.POOL)
        )
        return resources

    def _discover_server(self, server_name: str, resource_group: str) -> List[ResourceDescriptor]:
        pools = list(self._client.elastic_pools.list_by_server(resource_group, server_name))
        databases = [
            db for db in self._client.databases.list_by_server(resource_group, server_name)
            if (db.name or "").lower() not in SYSTEM_DATABASES
        ]

        pool_members = Counter(
            db.elastic_pool_id.lower() for db in databases if db.elastic_pool_id
        )

        resources = []
        for pool in pools:
            resources.append(self._descriptor(
                pool, server_name, resource_group, ResourceType.POOL,
                pool_name=pool.name,
                database_count=pool_members.get(pool.id.lower(), 0)
            ))

        for db in databases:
            if db.elastic_pool_id:
                continue
            resources.append(self._descriptor(db, server_name, resource_group, ResourceType.STANDALONE))

        return resources

    def _descriptor(self, resource, server_name: str, resource_group: str, resource_type: ResourceType,
                    pool_name: Optional[str] = None, database_count: Optional[int] = None) -> ResourceDescriptor:
        sku = resource.sku
        tier = (sku.tier if sku and sku.tier else None) or "Unknown"
        capacity = int(sku.capacity) if sku and sku.capacity else 0
        return ResourceDescriptor(
            resource_id=resource.id,
            name=resource.name,
            server_name=server_name,
            service_tier=tier,
            capacity=capacity,
            unit_kind=unit_kind_for_tier(tier),
            resource_group=resource_group,
            subscription_id=self.subscription_id,
            subscription_name=self.subscription_name,
            resource_type=resource_type,
            pool_name=pool_name,
            database_count=database_count,
        )
