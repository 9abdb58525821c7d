"""Vendor status prober.

VendorStatusProber checks every configured vendor concurrently and derives
a VendorStatus for each. It handles timeouts and fault isolation so the
policy does not have to.

The key guarantee: one vendor failing never affects another. Each probe
runs in its own task with its own exception boundary, and a probe that
fails for any reason reports Degraded rather than disappearing.
"""

import asyncio
import logging
import time

import httpx

from normalize.property import lookup
from schemas.integration import VendorProbe
from schemas.vendor import VendorStatus, VendorStatusOption

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10
USER_AGENT = "AegisDashboard/1.0"


def allowed_values(expected_value: str) -> list[str]:
    """Split a comma-separated expected value into trimmed, lower-cased options."""
    return [v.strip().lower() for v in expected_value.split(",")]


def sort_statuses(statuses: list[VendorStatus]) -> list[VendorStatus]:
    """Outage first, then Degraded, then Operational; by name within a group."""
    return sorted(statuses, key=lambda s: (s.status.rank, s.name.casefold()))


class VendorStatusProber:
    """Probes vendor status pages concurrently.

    Uses asyncio.TaskGroup to schedule all probes at once. MANUAL vendors
    (and API vendors missing any of url, path or expected value) are never
    fetched and always report Operational.

    Attributes:
        client: Shared async client used for the status page requests.
        timeout_seconds: Maximum time for a single probe before it is
            cancelled and reported Degraded. Defaults to 10.
    """

    def __init__(self, client: httpx.AsyncClient, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.client = client
        self.timeout_seconds = timeout_seconds

    async def probe_all(self, vendors: list[VendorProbe]) -> list[VendorStatus]:
        """Probe every vendor and return statuses in panel order.

        Args:
            vendors: Configured vendors, typically from
                IntegrationConfigProvider.vendors().

        Returns:
            One VendorStatus per vendor, sorted with sort_statuses(). Never
            shorter than the input.
        """
        if not vendors:
            return []

        async with asyncio.TaskGroup() as tg:
            tasks = [
                tg.create_task(self._probe_safely(vendor), name=vendor.id)
                for vendor in vendors
            ]

        return sort_statuses([t.result() for t in tasks])

    async def _probe_safely(self, vendor: VendorProbe) -> VendorStatus:
        """Run one probe with timeout and exception handling.

        This method never raises. Any failure is logged and reported as
        Degraded, which keeps a single bad status page from propagating
        into the TaskGroup and cancelling the other probes.
        """
        start = time.perf_counter()
        try:
            status = await asyncio.wait_for(self.probe(vendor), timeout=self.timeout_seconds)

        except asyncio.TimeoutError:
            logger.error(
                "Vendor '%s' probe timed out after %.1fs, reporting Degraded.",
                vendor.name,
                time.perf_counter() - start,
            )
            status = VendorStatusOption.DEGRADED

        except Exception as exc:
            logger.error("Vendor '%s' probe failed, reporting Degraded. Error: %s", vendor.name, exc)
            status = VendorStatusOption.DEGRADED

        return VendorStatus(id=vendor.id, name=vendor.name, url=vendor.url, status=status)

    async def probe(self, vendor: VendorProbe) -> VendorStatusOption:
        """Derive one vendor's status.

        Returns:
            Operational for manual vendors or a matching value, Outage for a
            value outside the expected list, Degraded when the status page
            answered non-2xx or the path is missing or holds null.

        Raises:
            httpx.HTTPError: On transport failure.
            ValueError: When the status page body is not JSON.
        """
        if not vendor.is_api_probe:
            return VendorStatusOption.OPERATIONAL

        response = await self.client.get(vendor.api_url, headers={"User-Agent": USER_AGENT})
        if not response.is_success:
            logger.warning("Vendor '%s' status page answered %d.", vendor.name, response.status_code)
            return VendorStatusOption.DEGRADED

        found = lookup(response.json(), vendor.json_path)
        if not found.found:
            logger.warning("Vendor '%s': path '%s' not in status payload.", vendor.name, vendor.json_path)
            return VendorStatusOption.DEGRADED

        actual = str(found.value).strip().lower()
        if actual in allowed_values(vendor.expected_value):
            return VendorStatusOption.OPERATIONAL
        return VendorStatusOption.OUTAGE
