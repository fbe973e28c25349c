# src/sqlsizing/clients/azure/client_factory.py
"""Azure client factory for creating and managing Azure service clients."""

from typing import Dict, Any, List, Tuple
import structlog
from azure.identity import DefaultAzureCredential, ClientSecretCredential
from azure.mgmt.resource import SubscriptionClient
from azure.core.exceptions import AzureError

from sqlsizing.core.exceptions import ClientConnectionException, DiscoveryException
from .cost_client import CostClient
from .monitor_client import MonitorClient
from .sql_client import SqlClient

logger = structlog.get_logger(__name__)


class AzureClientFactory:
    """Factory for creating per-subscription Azure service clients."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.tenant_id = config.get("tenant_id")
        self.client_id = config.get("client_id")
        self.client_secret = config.get("client_secret")

        self._credential = None
        self.logger = logger.bind(factory="azure")

    def _get_credential(self):
        """Get Azure credential based on configuration."""
        if self._credential:
            return self._credential

        try:
            if self.client_id and self.client_secret and self.tenant_id:
                self._credential = ClientSecretCredential(
                    tenant_id=self.tenant_id,
                    client_id=self.client_id,
                    client_secret=self.client_secret
                )
                self.logger.info("Using service principal authentication")
            else:
                # Managed identity, CLI login, environment
                self._credential = DefaultAzureCredential()
                self.logger.info("Using default credential chain")

            return self._credential

        except Exception as e:
            raise ClientConnectionException("Azure", f"Failed to create credential: {e}")

    def list_subscriptions(self) -> List[Tuple[str, str]]:
        """(subscription id, display name) of every enabled subscription."""
        try:
            with SubscriptionClient(self._get_credential()) as client:
                subscriptions = [
                    (sub.subscription_id, sub.display_name or sub.subscription_id)
                    for sub in client.subscriptions.list()
                    if str(sub.state or "Enabled").lower().endswith("enabled")
                ]
        except AzureError as e:
            raise DiscoveryException("Subscriptions", f"Failed to list subscriptions: {e}")

        self.logger.info(f"Found {len(subscriptions)} accessible subscriptions")
        return subscriptions

    def create_cost_client(self, subscription_id: str) -> CostClient:
        return CostClient(
            credential=self._get_credential(),
            subscription_id=subscription_id,
            config=self.config
        )

    def create_sql_client(self, subscription_id: str, subscription_name: str = "") -> SqlClient:
        return SqlClient(
            credential=self._get_credential(),
            subscription_id=subscription_id,
            config=self.config,
            subscription_name=subscription_name
        )

    def create_monitor_client(self, subscription_id: str) -> MonitorClient:
        return MonitorClient(
            credential=self._get_credential(),
            subscription_id=subscription_id,
            config=self.config
        )
