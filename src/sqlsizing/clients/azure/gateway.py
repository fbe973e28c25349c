"""Retrying request gateway for Azure management REST calls."""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog
from azure.core.exceptions import AzureError
from azure.core.rest import HttpRequest
from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt

from sqlsizing.core.exceptions import GatewayException

logger = structlog.get_logger(__name__)

RATE_LIMIT_STATUSES = frozenset({429})

RETRY_AFTER_HEADERS = (
    "retry-after",
    "x-ms-ratelimit-microsoft.costmanagement-entity-retry-after",
    "x-ms-ratelimit-microsoft.costmanagement-tenant-retry-after",
    "x-ms-ratelimit-microsoft.costmanagement-client-retry-after",
    "x-ms-ratelimit-microsoft.costmanagement-qpu-retry-after",
)

BACKOFF_BASE_SECONDS = 2


def is_rate_limited(response: Any) -> bool:
    return getattr(response, "status_code", None) in RATE_LIMIT_STATUSES


def retry_after_hint(response: Any) -> Optional[float]:
    """Server supplied retry delay in seconds, if any."""
    headers = getattr(response, "headers", None) or {}
    lowered = {str(k).lower(): v for k, v in headers.items()}
    for name in RETRY_AFTER_HEADERS:
        value = lowered.get(name)
        if value is None:
            continue
        try:
            seconds = float(value)
        except (TypeError, ValueError):
            # HTTP-date hints fall back to exponential backoff
            continue
        if seconds >= 0:
            return seconds
    return None


def backoff_delay(attempt: int) -> float:
    return float(BACKOFF_BASE_SECONDS ** (attempt - 1))


class RetryGateway:
    """Sends requests through an ARM client, retrying only on throttling.

    Throttled calls are retried up to ``max_attempts`` times, waiting for the
    server hint or ``2 ** (attempt - 1)`` seconds. When attempts run out the last
    throttled response is returned, so callers must check ``status_code``.
    Transport failures are raised as :class:`GatewayException` without retrying.
    """

    def __init__(self, client: Any, max_attempts: int = 5, call_delay_ms: int = 0,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.client = client
        self.max_attempts = max_attempts
        self.call_delay_ms = call_delay_ms
        self._sleep = sleep
        self.logger = logger.bind(component="gateway")

    async def invoke_with_retry(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None,
                                max_attempts: Optional[int] = None) -> Any:
        attempts = self.max_attempts if max_attempts is None else max_attempts
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(attempts, 1)),
            wait=self._wait,
            retry=retry_if_result(is_rate_limited),
            before_sleep=self._log_throttled,
            retry_error_callback=self._give_up,
            sleep=self._sleep,
        )
        return await retrying(self._send, method, path, payload)

    async def _send(self, method: str, path: str, payload: Optional[Dict[str, Any]]) -> Any:
        request = HttpRequest(method, path, json=payload)
        try:
            response = self.client.send_request(request)
        except AzureError as e:
            self.logger.error("Request failed", method=method, path=path, error=str(e))
            raise GatewayException(method, path, str(e))

        if self.call_delay_ms > 0:
            await self._sleep(self.call_delay_ms / 1000.0)
        return response

    @staticmethod
    def _wait(retry_state: RetryCallState) -> float:
        hint = retry_after_hint(retry_state.outcome.result())
        if hint is not None:
            return hint
        return backoff_delay(retry_state.attempt_number)

    def _log_throttled(self, retry_state: RetryCallState) -> None:
        self.logger.warning(
            "Rate limited, backing off",
            attempt=retry_state.attempt_number,
            wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
        )

    def _give_up(self, retry_state: RetryCallState) -> Any:
        self.logger.warning("Still rate limited after all attempts", attempts=retry_state.attempt_number)
        return retry_state.outcome.result()
