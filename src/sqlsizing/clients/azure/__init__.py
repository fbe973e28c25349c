from .client_factory import AzureClientFactory
from .cost_client import CostCache, CostClient, lookup_cost
from .gateway import RetryGateway
from .monitor_client import MonitorClient
from .sql_client import SqlClient


__all__ = [
    "AzureClientFactory",
    "CostCache",
    "CostClient",
    "lookup_cost",
    "RetryGateway",
    "MonitorClient",
    "SqlClient"
]
