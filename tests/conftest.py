"""
Shared pytest fixtures for advisor tests.
"""

from typing import Any, Dict, List, Optional

import pytest

from sqlsizing.clients.azure.cost_client import CostClient
from sqlsizing.clients.azure.gateway import RetryGateway
from sqlsizing.models.sql_models import CapacityUnitKind, ResourceDescriptor, ResourceType


class FakeResponse:
    """Minimal stand-in for azure.core.rest.HttpResponse."""

    def __init__(self, status_code: int = 200, body: Optional[Dict[str, Any]] = None,
                 headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self._body = body or {}
        self.headers = headers or {}

    def json(self):
        return self._body

    def text(self):
        return str(self._body)


class FakeArmClient:
    """Replays queued responses (or raises queued exceptions) for send_request."""

    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.requests = []

    def send_request(self, request):
        self.requests.append(request)
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def cost_page(rows: List[list], next_link: Optional[str] = None) -> FakeResponse:
    body = {
        "properties": {
            "nextLink": next_link,
            "columns": [
                {"name": "Cost", "type": "Number"},
                {"name": "BillingMonth", "type": "Datetime"},
                {"name": "ResourceId", "type": "String"},
                {"name": "ResourceType", "type": "String"},
                {"name": "Currency", "type": "String"},
            ],
            "rows": rows,
        }
    }
    return FakeResponse(200, body)


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def make_cost_client(sleep_recorder):
    """Build a connected CostClient backed by a FakeArmClient."""

    def _make(responses: List[Any], max_attempts: int = 5):
        arm = FakeArmClient(responses)
        client = CostClient(credential=None, subscription_id="sub-1", config={})
        client.gateway = RetryGateway(arm, max_attempts=max_attempts, sleep=sleep_recorder)
        client._connected = True
        return client, arm

    return _make


@pytest.fixture
def make_descriptor():
    def _make(name: str = "db1", tier: str = "Standard", capacity: int = 100,
              unit_kind: CapacityUnitKind = CapacityUnitKind.DTU,
              resource_type: ResourceType = ResourceType.STANDALONE, **kwargs) -> ResourceDescriptor:
        resource_group = kwargs.pop("resource_group", "rg-data")
        return ResourceDescriptor(
            resource_id=(f"/subscriptions/sub-1/resourceGroups/{resource_group}/providers/"
                         f"Microsoft.Sql/servers/srv1/databases/{name}"),
            name=name,
            server_name="srv1",
            service_tier=tier,
            capacity=capacity,
            unit_kind=unit_kind,
            resource_group=resource_group,
            subscription_id="sub-1",
            subscription_name="Production",
            resource_type=resource_type,
            **kwargs
        )

    return _make
