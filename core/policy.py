"""Resilience policy.

ResiliencePolicy is the single place that decides what each dashboard
endpoint returns. Every endpoint walks the same ladder and stops at the
first rung that applies:

    1. Demo          DEMO_MODE on -> synthetic dataset, no reads, no network
    2. Unconfigured  integration disabled or no base URL -> empty
    3. Credentials   secret missing -> empty (active outages) or error
    4. Primary       one query through the ExternalFetcher
    5. Fallback      monitoring alerts only, on HTTP 400, exactly once
    6. Terminal      non-2xx, malformed body, timeout or connection
                     failure -> empty (outage panels) or error
                     (everything else)

Outage panels go blank on upstream failure. The other panels surface the
failure as an error.

Each public method is wrapped in _guard(), the endpoint boundary: any
other exception below becomes an internal_error result with a redacted
diagnostic instead of propagating to the HTTP layer.
"""

import logging
import traceback
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

import httpx

from core import demo
from core.config import ConfigResolver, IntegrationConfigProvider
from core.fetcher import ExternalFetcher, FetchResult, public_diagnostic
from core.prober import VendorStatusProber
from core.store import EnvironmentSecrets
from integrations.servicenow import ServiceNowClient
from integrations.solarwinds import SolarWindsClient, gateway_headers
from normalize.alerts import exclude_rows, normalize_alert
from normalize.changes import normalize_changes
from normalize.mapping import MappingTable
from normalize.outages import normalize_outages
from normalize.tickets import normalize_ticket
from queries import monitoring, servicenow as sn_queries
from schemas.integration import ServiceNowConfig
from schemas.result import EndpointResult
from utils.parse import records_from

logger = logging.getLogger(__name__)

Trace = list[dict[str, Any]]

SERVICENOW_CREDS_MISSING = "ServiceNow credentials are not set in the secret store."
SOLARWINDS_CREDS_MISSING = "SolarWinds credentials are not set in the secret store."
INVALID_SERVICENOW_RESPONSE = "Invalid response from ServiceNow."
INVALID_SOLARWINDS_RESPONSE = "Invalid response from SolarWinds."

# Endpoint label -> message shown when the boundary catches an exception.
_UNEXPECTED = {
    "ActiveOutages": "An unexpected error occurred while fetching active outages.",
    "OutageHistory": "An unexpected error occurred while fetching outage history.",
    "MonitoringAlerts": "An unexpected error occurred while fetching SolarWinds data.",
    "Tickets": "An unexpected error occurred while fetching ServiceNow tickets.",
    "ChangesToday": "An unexpected error occurred while fetching ServiceNow changes.",
    "VendorStatus": "An unexpected error occurred while checking vendor status.",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _transport_reason(exc: httpx.TransportError) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return "request timed out"
    return "connection failed"


def _exception_diagnostic(endpoint: str, exc: Exception, trace: Trace) -> dict[str, Any]:
    """Redacted context for an unexpected failure.

    Only the last frame of the traceback is kept: enough to locate the bug
    without shipping the whole stack to the browser.
    """
    frames = traceback.extract_tb(exc.__traceback__)
    last = frames[-1] if frames else None
    return {
        "endpoint": endpoint,
        "error": {
            "type": type(exc).__name__,
            "message": str(exc),
            "location": f"{last.filename}:{last.lineno} in {last.name}" if last else None,
        },
        "lastCall": public_diagnostic(trace[-1]) if trace else None,
    }


class ResiliencePolicy:
    """Per-endpoint fallback ladder over the integrations.

    All collaborators are injected; nothing here reads the environment or
    the store directly, and no state survives between calls.

    Attributes:
        resolver: Flags and strings (DEMO_MODE, SOLARWINDS_UI_BASE, ...).
        configs: Integration configs and vendor list, read per call.
        secrets: Secret store the configs' *_var names resolve against.
        fetcher: Logged HTTP for ServiceNow and SolarWinds.
        prober: Concurrent vendor status checks.
        clock: Returns the current UTC time. Injected for tests.
    """

    def __init__(
        self,
        resolver: ConfigResolver,
        configs: IntegrationConfigProvider,
        secrets: EnvironmentSecrets,
        fetcher: ExternalFetcher,
        prober: VendorStatusProber,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.resolver = resolver
        self.configs = configs
        self.secrets = secrets
        self.fetcher = fetcher
        self.prober = prober
        self.clock = clock or _utcnow

    # ── Endpoint boundary ─────────────────────────────────────────────────────

    async def _guard(
        self,
        endpoint: str,
        handler: Callable[[Trace], Awaitable[EndpointResult]],
    ) -> EndpointResult:
        trace: Trace = []
        try:
            result = await handler(trace)
        except Exception as exc:
            logger.exception("%s failed unexpectedly.", endpoint)
            return EndpointResult.internal_error(
                _UNEXPECTED.get(endpoint, "An unexpected error occurred."),
                _exception_diagnostic(endpoint, exc, trace),
            )

        if result.kind == "empty":
            logger.info("%s: empty result (%s).", endpoint, result.reason)
        elif result.kind == "error":
            logger.warning("%s: error result (%s).", endpoint, result.error)
        return result

    # ── Public endpoints ──────────────────────────────────────────────────────

    async def active_outages(self) -> EndpointResult:
        return await self._guard("ActiveOutages", self._active_outages)

    async def outage_history(self, days: int = sn_queries.DEFAULT_HISTORY_DAYS) -> EndpointResult:
        async def handler(trace: Trace) -> EndpointResult:
            return await self._outage_history(trace, days)
        return await self._guard("OutageHistory", handler)

    async def monitoring_alerts(self) -> EndpointResult:
        return await self._guard("MonitoringAlerts", self._monitoring_alerts)

    async def tickets(self) -> EndpointResult:
        return await self._guard("Tickets", self._tickets)

    async def changes_today(self) -> EndpointResult:
        return await self._guard("ChangesToday", self._changes_today)

    async def vendor_statuses(self) -> EndpointResult:
        return await self._guard("VendorStatus", self._vendor_statuses)

    async def management_enabled(self) -> bool:
        return await self.resolver.get_bool("ENABLE_MANAGEMENT")

    async def demo_mode(self) -> bool:
        return await self.resolver.is_demo_mode()

    # ── ServiceNow ────────────────────────────────────────────────────────────

    def _servicenow_client(self, config: ServiceNowConfig) -> ServiceNowClient | None:
        credentials = self.secrets.credentials(config.username_var, config.password_var)
        if credentials is None:
            return None
        return ServiceNowClient(self.fetcher, config, credentials)

    async def _active_outages(self, trace: Trace) -> EndpointResult:
        now = self.clock()
        if await self.resolver.is_demo_mode():
            return EndpointResult.success(demo.demo_outages(now))

        config = await self.configs.servicenow()
        if not config.is_configured:
            return EndpointResult.empty("ServiceNow not configured")

        client = self._servicenow_client(config)
        if client is None:
            return EndpointResult.empty("ServiceNow credentials missing")

        try:
            result = await client.query("ActiveOutages", sn_queries.active_outages_query(config), trace)
        except httpx.TransportError as exc:
            return EndpointResult.empty(f"ServiceNow unreachable: {_transport_reason(exc)}")
        records = self._servicenow_records(result)
        if records is None:
            return EndpointResult.empty(f"ServiceNow answered {result.status_code} {result.reason}")

        impact_table = MappingTable.from_entries(config.impact_level_mapping)
        return EndpointResult.success(
            normalize_outages(records, config.field_mapping, impact_table, now=now)
        )

    async def _outage_history(self, trace: Trace, days: int) -> EndpointResult:
        now = self.clock()
        if await self.resolver.is_demo_mode():
            return EndpointResult.success(demo.demo_outage_history(now, days))

        config = await self.configs.servicenow()
        if not config.is_configured:
            return EndpointResult.empty("ServiceNow not configured")

        client = self._servicenow_client(config)
        if client is None:
            return EndpointResult.failure(SERVICENOW_CREDS_MISSING)

        query = sn_queries.outage_history_query(config, days=days, now=now)
        try:
            result = await client.query("OutageHistory", query, trace)
        except httpx.TransportError as exc:
            return EndpointResult.empty(f"ServiceNow unreachable: {_transport_reason(exc)}")
        records = self._servicenow_records(result)
        if records is None:
            return EndpointResult.empty(f"ServiceNow answered {result.status_code} {result.reason}")

        impact_table = MappingTable.from_entries(config.impact_level_mapping)
        return EndpointResult.success(
            normalize_outages(records, config.field_mapping, impact_table, require_impact=True, now=now)
        )

    async def _tickets(self, trace: Trace) -> EndpointResult:
        if await self.resolver.is_demo_mode():
            return EndpointResult.success(demo.demo_tickets())

        config = await self.configs.servicenow()
        if not config.is_configured:
            return EndpointResult.empty("ServiceNow not configured")

        client = self._servicenow_client(config)
        if client is None:
            return EndpointResult.failure(SERVICENOW_CREDS_MISSING)

        try:
            result = await client.query("Tickets", sn_queries.tickets_query(config), trace)
        except httpx.TransportError as exc:
            return EndpointResult.failure(f"Failed to fetch tickets from ServiceNow: {_transport_reason(exc)}")
        if not result.ok:
            return EndpointResult.failure(f"Failed to fetch tickets from ServiceNow: {result.reason}")

        records = records_from(result.data, "result")
        if records is None:
            return EndpointResult.failure(INVALID_SERVICENOW_RESPONSE)
        return EndpointResult.success([normalize_ticket(r, config) for r in records])

    async def _changes_today(self, trace: Trace) -> EndpointResult:
        if await self.resolver.is_demo_mode():
            return EndpointResult.success(demo.demo_changes(self.clock()))

        config = await self.configs.servicenow()
        if not config.is_configured:
            return EndpointResult.empty("ServiceNow not configured")

        client = self._servicenow_client(config)
        if client is None:
            return EndpointResult.failure(SERVICENOW_CREDS_MISSING)

        try:
            result = await client.query("ChangesToday", sn_queries.changes_today_query(config), trace)
        except httpx.TransportError as exc:
            return EndpointResult.failure(f"ServiceNow error: {_transport_reason(exc)}")
        if not result.ok:
            return EndpointResult.failure(f"ServiceNow error: {result.reason}")

        records = records_from(result.data, "result")
        if records is None:
            return EndpointResult.failure(INVALID_SERVICENOW_RESPONSE)
        return EndpointResult.success(normalize_changes(records, config))

    @staticmethod
    def _servicenow_records(result: FetchResult) -> list[dict] | None:
        """Result records for an outage query, or None on any terminal failure."""
        if not result.ok:
            return None
        return records_from(result.data, "result")

    # ── SolarWinds ────────────────────────────────────────────────────────────

    async def _monitoring_alerts(self, trace: Trace) -> EndpointResult:
        now = self.clock()
        if await self.resolver.is_demo_mode():
            return EndpointResult.success(demo.demo_alerts(now))

        config = await self.configs.monitoring()
        if not config.is_configured:
            return EndpointResult.empty("SolarWinds not configured")

        credentials = self.secrets.credentials(config.username_var, config.password_var)
        if credentials is None:
            return EndpointResult.failure(SOLARWINDS_CREDS_MISSING)

        client = SolarWindsClient(
            self.fetcher, config, credentials, extra_headers=gateway_headers(config, self.secrets),
        )

        try:
            result = await client.run("MonitoringAlerts", monitoring.alert_query(full=True), trace)
            if result.status_code == 400:
                logger.warning("SolarWinds rejected the full alert query (400), retrying with the minimal query.")
                result = await client.run("MonitoringAlertsFallback", monitoring.alert_query(full=False), trace)
        except httpx.TransportError as exc:
            return EndpointResult.failure(f"Failed to fetch from SolarWinds: {_transport_reason(exc)}")

        if not result.ok:
            return EndpointResult.failure(f"Failed to fetch from SolarWinds: {result.reason}")

        rows = records_from(result.data, "results")
        if rows is None:
            return EndpointResult.failure(INVALID_SOLARWINDS_RESPONSE)

        excluded = await self.resolver.get_list("SOLARWINDS_EXCLUDE_CAPTIONS")
        rows = exclude_rows(rows, [*excluded, *config.exclude_captions])

        ui_base = await self.resolver.get_string("SOLARWINDS_UI_BASE") or config.ui_base
        return EndpointResult.success(
            [normalize_alert(row, ui_base=ui_base, api_url=config.base_url, now=now) for row in rows]
        )

    # ── Vendors ───────────────────────────────────────────────────────────────

    async def _vendor_statuses(self, trace: Trace) -> EndpointResult:
        if await self.resolver.is_demo_mode():
            return EndpointResult.success(demo.demo_vendor_statuses())

        vendors = await self.configs.vendors()
        if not vendors:
            return EndpointResult.empty("No vendors configured")
        return EndpointResult.success(await self.prober.probe_all(vendors))
