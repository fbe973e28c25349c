# src/sqlsizing/clients/azure/cost_client.py
"""Azure Cost Management client building a per-resource cost cache."""

from collections.abc import Mapping
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, quote, urlparse
import structlog
from azure.mgmt.costmanagement import CostManagementClient

from sqlsizing.core.base_client import BaseClient
from sqlsizing.core.exceptions import ClientConnectionException, GatewayException
from sqlsizing.core.utils import round_cost, safe_get
from sqlsizing.clients.azure.gateway import RetryGateway
from sqlsizing.models.sql_models import CostRecord, NO_DATA_PERIOD

logger = structlog.get_logger(__name__)

COST_QUERY_API_VERSION = "2023-03-01"
MAX_PAGES = 50

COST_COLUMNS = ("cost", "pretaxcost", "costusd")
PERIOD_COLUMNS = ("billingmonth", "usagedate")


def previous_month_window(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """First second to last second of the previous calendar month, UTC."""
    now = now or datetime.now(timezone.utc)
    month_start = now.astimezone(timezone.utc).replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    start = (month_start - timedelta(days=1)).replace(day=1)
    end = month_start - timedelta(seconds=1)
    return start, end


def build_cost_query(start: datetime, end: datetime) -> Dict[str, Any]:
    """Monthly cost per resource query body."""
    return {
        "type": "ActualCost",
        "timeframe": "Custom",
        "timePeriod": {
            "from": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "to": end.strftime("%Y-%m-%dT%H:%M:%SZ"),
        },
        "dataset": {
            "granularity": "Monthly",
            "aggregation": {
                "totalCost": {"name": "Cost", "function": "Sum"}
            },
            "grouping": [
                {"type": "Dimension", "name": "ResourceId"},
                {"type": "Dimension", "name": "ResourceType"}
            ]
        }
    }


def skip_token_from_link(next_link: Optional[str]) -> Optional[str]:
    """Continuation token carried by a ``nextLink``."""
    if not next_link:
        return None
    query = parse_qs(urlparse(next_link).query)
    for key, values in query.items():
        if key.lower() == "$skiptoken" and values:
            return values[0]
    return None


def format_period(value: Any, fallback: str) -> str:
    """Billing period label (YYYY-MM) from a BillingMonth/UsageDate cell."""
    if value is None or value == "":
        return fallback
    text = str(int(value)) if isinstance(value, (int, float)) else str(value)
    try:
        if len(text) == 8 and text.isdigit():
            return datetime.strptime(text, "%Y%m%d").strftime("%Y-%m")
        return datetime.fromisoformat(text.replace("Z", "+00:00")).strftime("%Y-%m")
    except ValueError:
        return fallback


class CostCache(Mapping):
    """Read-only cost records keyed by lower-cased resource id."""

    def __init__(self, records: Optional[Dict[str, CostRecord]] = None):
        self._records = {key.lower(): record for key, record in (records or {}).items()}
        self.default_currency = next(
            (record.currency for record in self._records.values() if record.currency), ""
        )

    def __getitem__(self, key: str) -> CostRecord:
        return self._records[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._records

    def __repr__(self) -> str:
        return f"CostCache({len(self._records)} resources, currency={self.default_currency!r})"


def lookup_cost(cache: CostCache, identity: str) -> CostRecord:
    """Cost for a resource; zero with a "No data" period when not billed."""
    record = cache.get((identity or "").lower())
    if record is not None:
        return record
    return CostRecord(amount=0.0, currency=cache.default_currency, period=NO_DATA_PERIOD)


class CostClient(BaseClient):
    """Azure Cost Management client for per-resource monthly costs."""

    def __init__(self, credential, subscription_id: str, config: Dict[str, Any]):
        super().__init__(credential, subscription_id, config, "CostClient")
        self._client = None
        self.gateway: Optional[RetryGateway] = None

    async def connect(self) -> None:
        """Connect to Cost Management service."""
        try:
            # Throttling is retried by the gateway, not the SDK pipeline
            self._client = CostManagementClient(credential=self.credential, retry_total=0)
            self.gateway = RetryGateway(
                self._client,
                max_attempts=self.config.get("retry_attempts", 5),
                call_delay_ms=self.config.get("call_delay_ms", 0),
            )
            self._connected = True
            self.logger.info("Cost Management client connected successfully")
        except Exception as e:
            raise ClientConnectionException("CostManagement", f"Connection failed: {e}")

    async def disconnect(self) -> None:
        """Disconnect from Cost Management service."""
        if self._client:
            self._client.close()
            self._connected = False
            self.logger.info("Cost Management client disconnected")

    async def health_check(self) -> bool:
        return self._connected and self.gateway is not None

    async def build_cost_cache(self, resource_groups: Iterable[str],
                               now: Optional[datetime] = None) -> Tuple[CostCache, int]:
        """Query last month's cost for each resource group and index it by resource id.

        Returns the cache and the number of cost rows that could not be tied to a
        resource. A failing resource group is logged and skipped.
        """
        start, end = previous_month_window(now)
        default_period = start.strftime("%Y-%m")
        records: Dict[str, CostRecord] = {}
        unresolved = 0
        failed_groups = []

        for resource_group in resource_groups:
            scope = f"/subscriptions/{self.subscription_id}/resourceGroups/{resource_group}"
            try:
                rows, columns = await self._query_all_pages(scope, build_cost_query(start, end))
            except GatewayException as e:
                self.logger.warning("Cost query failed, skipping resource group",
                                    resource_group=resource_group, error=e.message)
                failed_groups.append(resource_group)
                continue

            if rows is None:
                failed_groups.append(resource_group)
                continue

            group_unresolved = self._index_rows(rows, columns, default_period, records)
            unresolved += group_unresolved
            self.logger.debug("Indexed cost rows", resource_group=resource_group,
                              rows=len(rows), unresolved=group_unresolved)

        self.logger.info(
            "Cost cache built",
            subscription=self.subscription_id,
            resources=len(records),
            unresolved=unresolved,
            failed_groups=len(failed_groups),
            period=default_period
        )
        return CostCache(records), unresolved

    async def _query_all_pages(self, scope: str,
                               body: Dict[str, Any]) -> Tuple[Optional[List[list]], List[str]]:
        """Follow continuation tokens; None rows when a page fails."""
        base_path = f"{scope}/providers/Microsoft.CostManagement/query?api-version={COST_QUERY_API_VERSION}"
        rows: List[list] = []
        columns: List[str] = []
        seen_tokens = set()
        path = base_path

        for page in range(1, MAX_PAGES + 1):
            response = await self.gateway.invoke_with_retry("POST", path, body)
            if response.status_code != 200:
                self.logger.warning("Cost query returned an error", scope=scope, page=page,
                                    status=response.status_code, body=_error_text(response))
                return None, columns

            try:
                data = response.json() or {}
                if not columns:
                    columns = [str(c.get("name", "")).lower()
                               for c in (safe_get(data, "properties.columns") or [])]
                rows.extend(safe_get(data, "properties.rows") or [])
                token = skip_token_from_link(safe_get(data, "properties.nextLink"))
            except (ValueError, TypeError, AttributeError) as e:
                self.logger.warning("Unexpected cost query response", scope=scope, page=page, error=str(e))
                return None, columns

            if not token:
                return rows, columns
            if token in seen_tokens:
                self.logger.warning("Cost query repeated a continuation token, stopping", scope=scope, page=page)
                return rows, columns
            seen_tokens.add(token)
            path = f"{base_path}&$skiptoken={quote(token, safe='')}"

        self.logger.warning("Cost query hit the page limit", scope=scope, max_pages=MAX_PAGES)
        return rows, columns

    def _index_rows(self, rows: List[list], columns: List[str], default_period: str,
                    records: Dict[str, CostRecord]) -> int:
        """Insert rows into ``records`` (last write wins); returns the unresolved count."""
        cost_idx = _column_index(columns, COST_COLUMNS, 0)
        period_idx = _column_index(columns, PERIOD_COLUMNS, None)
        id_idx = _column_index(columns, ("resourceid",), 2)
        currency_idx = _column_index(columns, ("currency",), None)
        unresolved = 0

        for row in rows:
            try:
                resource_id = row[id_idx] if id_idx < len(row) else None
                if not resource_id or not isinstance(resource_id, str):
                    unresolved += 1
                    continue
                amount = max(round_cost(row[cost_idx]), 0.0)
                period = format_period(row[period_idx], default_period) if period_idx is not None else default_period
                currency = str(row[currency_idx] or "") if currency_idx is not None else ""
            except (ValueError, TypeError, IndexError) as e:
                self.logger.warning(f"Error processing cost row: {e}")
                unresolved += 1
                continue

            records[resource_id.lower()] = CostRecord(amount=amount, currency=currency, period=period)

        return unresolved


def _column_index(columns: List[str], names: Tuple[str, ...], default: Optional[int]) -> Optional[int]:
    for name in names:
        if name in columns:
            return columns.index(name)
    return default


def _error_text(response: Any) -> str:
    try:
        return response.text()[:300]
    except Exception:
        return ""
