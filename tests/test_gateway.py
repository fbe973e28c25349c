"""
Tests for the throttling-aware retry gateway.
"""

import pytest
from azure.core.exceptions import ServiceRequestError

from sqlsizing.clients.azure.gateway import RetryGateway, backoff_delay, retry_after_hint
from sqlsizing.core.exceptions import GatewayException
from tests.conftest import FakeArmClient, FakeResponse


@pytest.mark.asyncio
async def test_success_returns_without_waiting(sleep_recorder):
    arm = FakeArmClient([FakeResponse(200, {"ok": True})])
    gateway = RetryGateway(arm, sleep=sleep_recorder)

    response = await gateway.invoke_with_retry("POST", "/subscriptions/s/query", {"a": 1})

    assert response.status_code == 200
    assert len(arm.requests) == 1
    assert arm.requests[0].method == "POST"
    assert sleep_recorder.delays == []


@pytest.mark.asyncio
async def test_throttled_calls_back_off_exponentially(sleep_recorder):
    arm = FakeArmClient([FakeResponse(429), FakeResponse(429), FakeResponse(200)])
    gateway = RetryGateway(arm, sleep=sleep_recorder)

    response = await gateway.invoke_with_retry("POST", "/path")

    assert response.status_code == 200
    assert sleep_recorder.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_server_retry_hint_is_preferred(sleep_recorder):
    arm = FakeArmClient([
        FakeResponse(429, headers={"Retry-After": "7"}),
        FakeResponse(429, headers={"x-ms-ratelimit-microsoft.costmanagement-entity-retry-after": "12"}),
        FakeResponse(200),
    ])
    gateway = RetryGateway(arm, sleep=sleep_recorder)

    await gateway.invoke_with_retry("GET", "/path")

    assert sleep_recorder.delays == [7.0, 12.0]


@pytest.mark.asyncio
async def test_exhausted_retries_return_last_response(sleep_recorder):
    last = FakeResponse(429, {"error": "throttled"})
    arm = FakeArmClient([FakeResponse(429), FakeResponse(429), last])
    gateway = RetryGateway(arm, max_attempts=3, sleep=sleep_recorder)

    response = await gateway.invoke_with_retry("POST", "/path")

    assert response is last
    assert len(arm.requests) == 3
    assert sleep_recorder.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_per_call_attempt_override(sleep_recorder):
    arm = FakeArmClient([FakeResponse(429), FakeResponse(429)])
    gateway = RetryGateway(arm, max_attempts=5, sleep=sleep_recorder)

    response = await gateway.invoke_with_retry("POST", "/path", max_attempts=2)

    assert response.status_code == 429
    assert len(arm.requests) == 2


@pytest.mark.asyncio
async def test_zero_attempt_override_is_not_the_default(sleep_recorder):
    arm = FakeArmClient([FakeResponse(429) for _ in range(5)])
    gateway = RetryGateway(arm, max_attempts=5, sleep=sleep_recorder)

    response = await gateway.invoke_with_retry("POST", "/path", max_attempts=0)

    # a single call, no retries
    assert response.status_code == 429
    assert len(arm.requests) == 1
    assert sleep_recorder.delays == []


@pytest.mark.asyncio
async def test_other_errors_are_not_retried(sleep_recorder):
    arm = FakeArmClient([FakeResponse(500), FakeResponse(200)])
    gateway = RetryGateway(arm, sleep=sleep_recorder)

    response = await gateway.invoke_with_retry("POST", "/path")

    assert response.status_code == 500
    assert len(arm.requests) == 1


@pytest.mark.asyncio
async def test_transport_failure_raises_immediately(sleep_recorder):
    arm = FakeArmClient([ServiceRequestError("connection reset"), FakeResponse(200)])
    gateway = RetryGateway(arm, sleep=sleep_recorder)

    with pytest.raises(GatewayException) as exc_info:
        await gateway.invoke_with_retry("POST", "/path")

    assert "connection reset" in exc_info.value.message
    assert len(arm.requests) == 1
    assert sleep_recorder.delays == []


@pytest.mark.asyncio
async def test_inter_call_delay(sleep_recorder):
    arm = FakeArmClient([FakeResponse(429), FakeResponse(200)])
    gateway = RetryGateway(arm, call_delay_ms=250, sleep=sleep_recorder)

    await gateway.invoke_with_retry("POST", "/path")

    assert sleep_recorder.delays == [0.25, 1.0, 0.25]


def test_retry_hint_parsing():
    assert retry_after_hint(FakeResponse(429, headers={"retry-after": "3"})) == 3.0
    assert retry_after_hint(FakeResponse(429, headers={"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"})) is None
    assert retry_after_hint(FakeResponse(429)) is None


def test_backoff_delay():
    assert [backoff_delay(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]
