from .azure.client_factory import AzureClientFactory

__all__ = ["AzureClientFactory"]
