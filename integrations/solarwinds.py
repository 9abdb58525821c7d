"""SolarWinds Information Service client.

Sends SWQL queries as POST {"query": ...} to the SWIS JSON endpoint with
Basic auth. Deployments that expose SWIS through a tunnel or an access
gateway need extra headers; those are resolved from the secret store by the
names in MonitoringConfig and only sent when set.
"""

import json
import logging

import httpx

from core.fetcher import ExternalFetcher, FetchResult, basic_auth
from core.store import Credentials, EnvironmentSecrets
from queries.monitoring import query_url
from schemas.integration import MonitoringConfig

logger = logging.getLogger(__name__)


def gateway_headers(config: MonitoringConfig, secrets: EnvironmentSecrets) -> dict[str, str]:
    """Optional tunnel / access-gateway headers.

    The access-gateway pair is all-or-nothing: a lone client id without
    its secret is not sent.
    """
    headers: dict[str, str] = {}

    tunnel_code = secrets.get(config.tunnel_code_var)
    if tunnel_code:
        headers["X-Tunnel-Code"] = tunnel_code

    client_id = secrets.get(config.access_client_id_var)
    client_secret = secrets.get(config.access_client_secret_var)
    if client_id and client_secret:
        headers["CF-Access-Client-Id"] = client_id
        headers["CF-Access-Client-Secret"] = client_secret

    return headers


class SolarWindsClient:
    """Issues SWQL queries for one request."""

    def __init__(
        self,
        fetcher: ExternalFetcher,
        config: MonitoringConfig,
        credentials: Credentials,
        extra_headers: dict[str, str] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._config = config
        self._headers = {
            "Authorization": basic_auth(credentials.username, credentials.password),
            "Content-Type": "application/json",
            "Accept": "application/json",
            **(extra_headers or {}),
        }

    def build_request(self, swql: str) -> httpx.Request:
        return httpx.Request(
            "POST",
            query_url(self._config.base_url),
            headers=self._headers,
            content=json.dumps({"query": swql}).encode("utf-8"),
        )

    async def run(self, endpoint: str, swql: str, trace: list[dict] | None = None) -> FetchResult:
        logger.debug("SolarWinds %s query: %s", endpoint, " ".join(swql.split()))
        return await self._fetcher.fetch(endpoint, self.build_request(swql), trace)
