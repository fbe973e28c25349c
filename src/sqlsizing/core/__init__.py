from .exceptions import *
from .base_client import BaseClient
from .utils import *

__all__ = [
    "BaseClient",
    "FinOpsException",
    "DiscoveryException",
    "ClientConnectionException",
    "GatewayException",
    "MetricsException",
    "setup_logging",
    "safe_get",
    "round_cost",
    "resource_group_from_id",
]
