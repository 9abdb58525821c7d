"""ServiceNow integration client.

Turns a TableQuery into an authenticated GET and sends it through the
ExternalFetcher. Credentials are resolved by the caller for each request.

Everything about *what* to query lives in queries/servicenow.py, and what
to do with the answer lives in the resilience policy.

ServiceNow REST reference:
https://developer.servicenow.com/dev.do#!/reference/api/latest/rest/c_TableAPI
"""

import logging

import httpx

from core.fetcher import ExternalFetcher, FetchResult, basic_auth
from core.store import Credentials
from queries.servicenow import TableQuery
from schemas.integration import ServiceNowConfig

logger = logging.getLogger(__name__)


class ServiceNowClient:
    """Authenticated Table API access for one request.

    Built per request from the config and credentials read for that
    request, so nothing outlives a config change.

    Attributes:
        config: ServiceNow configuration in force for this request.
    """

    def __init__(self, fetcher: ExternalFetcher, config: ServiceNowConfig, credentials: Credentials) -> None:
        self._fetcher = fetcher
        self._credentials = credentials
        self.config = config

    def build_request(self, query: TableQuery) -> httpx.Request:
        return httpx.Request(
            "GET",
            query.url(self.config.base_url),
            headers={
                "Authorization": basic_auth(self._credentials.username, self._credentials.password),
                "Accept": "application/json",
            },
        )

    async def query(
        self,
        endpoint: str,
        query: TableQuery,
        trace: list[dict] | None = None,
    ) -> FetchResult:
        """Run a table query and return the logged, parsed response."""
        logger.debug("ServiceNow %s query on %s: %s", endpoint, query.table, query.filter)
        return await self._fetcher.fetch(endpoint, self.build_request(query), trace)
