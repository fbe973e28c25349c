"""Custom exceptions for the SQL sizing advisor."""

from typing import Optional, Dict, Any


class FinOpsException(Exception):
    """Base exception for the advisor."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class DiscoveryException(FinOpsException):
    """Raised when discovery operations fail."""
    
    def __init__(self, discovery_type: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.discovery_type = discovery_type
        super().__init__(f"Discovery failed for {discovery_type}: {message}", details)


class ClientConnectionException(FinOpsException):
    """Raised when client connections fail."""
    
    def __init__(self, client_type: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.client_type = client_type
        super().__init__(f"{client_type} connection failed: {message}", details)


class GatewayException(FinOpsException):
    """Raised when an outbound call fails at the transport level."""
    
    def __init__(self, method: str, path: str, message: str):
        self.method = method
        self.path = path
        super().__init__(f"{method} {path} failed: {message}", {"method": method, "path": path})


class MetricsException(FinOpsException):
    """Raised when metrics collection fails."""
    pass
