"""Base client interface for the Azure clients of one subscription."""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
import structlog

logger = structlog.get_logger(__name__)


class BaseClient(ABC):
    """Abstract base class for clients scoped to a single Azure subscription."""

    def __init__(self, credential: Any, subscription_id: str, config: Dict[str, Any],
                 name: Optional[str] = None):
        self.credential = credential
        self.subscription_id = subscription_id
        self.config = config
        self.name = name or self.__class__.__name__
        self._connected = False
        self.logger = logger.bind(client=self.name, subscription=subscription_id)

    @abstractmethod
    async def connect(self) -> None:
        """Build the SDK client for the subscription."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the SDK client."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the client can still serve requests."""
        pass

    @property
    def is_connected(self) -> bool:
        """Check if client is connected."""
        return self._connected

    async def __aenter__(self):
        """Connect on entry to ``async with``."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Disconnect on exit, whether or not the block raised."""
        await self.disconnect()
