"""External fetcher.

All calls to ServiceNow and SolarWinds go through ExternalFetcher.fetch().
It does three things and nothing else:

1. Sends the request on the shared httpx.AsyncClient.
2. Logs one JSON audit record per call: method, URL, request headers,
   response status, headers and body. Credential headers are replaced with
   a fixed marker before anything is logged.
3. Parses the body as JSON. A body that isn't JSON comes back as
   data=None; whether that means "empty panel" or "error" is decided by
   the resilience policy.

Transport errors (connection refused, timeout) are logged with the same
redacted request record and then re-raised. The resilience policy treats
them like any other upstream failure.
"""

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from utils.parse import parse_json_body

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"

# Longest response body kept in a diagnostic sent back to the browser.
MAX_PUBLIC_BODY_CHARS = 2000

# Header names (lower-case) whose values never reach the logs.
SENSITIVE_HEADERS = frozenset({
    "authorization",
    "cf-access-client-secret",
    "cookie",
    "set-cookie",
    "x-tunnel-code",
})


def basic_auth(username: str, password: str) -> str:
    """Authorization header value for HTTP Basic auth."""
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def redact_headers(headers: httpx.Headers | dict[str, str]) -> dict[str, str]:
    return {
        key: (REDACTED if key.lower() in SENSITIVE_HEADERS else value)
        for key, value in headers.items()
    }


def build_diagnostic(endpoint: str, request: httpx.Request, response: httpx.Response) -> dict[str, Any]:
    """Redacted audit record for one request/response pair."""
    return {
        "type": "ExternalAPICall",
        "endpoint": endpoint,
        "request": {
            "method": request.method,
            "url": str(request.url),
            "headers": redact_headers(request.headers),
        },
        "response": {
            "status": response.status_code,
            "statusText": response.reason_phrase,
            "headers": redact_headers(response.headers),
            "body": response.text,
        },
    }


def build_failure_diagnostic(endpoint: str, request: httpx.Request, exc: httpx.TransportError) -> dict[str, Any]:
    """Redacted audit record for a request that never got a response."""
    return {
        "type": "ExternalAPICall",
        "endpoint": endpoint,
        "request": {
            "method": request.method,
            "url": str(request.url),
            "headers": redact_headers(request.headers),
        },
        "error": {"type": type(exc).__name__, "message": str(exc)},
    }


def public_diagnostic(diagnostic: dict[str, Any] | None) -> dict[str, Any] | None:
    """Copy of an audit record that is safe to return to the browser.

    Headers are redacted when the record is built; here the response body
    is cut to MAX_PUBLIC_BODY_CHARS.
    """
    if diagnostic is None:
        return None
    public = dict(diagnostic)
    response = diagnostic.get("response")
    if response is not None:
        body = response.get("body") or ""
        if len(body) > MAX_PUBLIC_BODY_CHARS:
            dropped = len(body) - MAX_PUBLIC_BODY_CHARS
            body = f"{body[:MAX_PUBLIC_BODY_CHARS]}... [{dropped} chars truncated]"
        public["response"] = {**response, "body": body}
    return public


@dataclass
class FetchResult:
    """Response plus its parsed body.

    Attributes:
        response: The httpx response, body already read.
        data: Parsed JSON, or None when the body was empty or not JSON.
        diagnostic: The redacted audit record that was logged.
    """

    response: httpx.Response
    data: Any
    diagnostic: dict[str, Any]

    @property
    def ok(self) -> bool:
        return self.response.is_success

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def reason(self) -> str:
        return self.response.reason_phrase


class ExternalFetcher:
    """Sends requests, logs redacted diagnostics, parses JSON.

    Holds no per-request state: callers that want the audit records for an
    error payload pass their own trace list.

    Attributes:
        client: Shared async client. Its timeout applies to every call.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def fetch(
        self,
        endpoint: str,
        request: httpx.Request,
        trace: list[dict[str, Any]] | None = None,
    ) -> FetchResult:
        """Send request and return the response with its parsed body.

        Args:
            endpoint: Short label for the audit log (e.g. "ActiveOutages").
            request: Fully built request, auth headers included.
            trace: Optional list the diagnostic is appended to.

        Returns:
            FetchResult. Never raises for HTTP error statuses or bad bodies.

        Raises:
            httpx.TransportError: On transport failure, after logging it.
        """
        try:
            response = await self.client.send(request)
            await response.aread()
        except httpx.TransportError as exc:
            failure = build_failure_diagnostic(endpoint, request, exc)
            if trace is not None:
                trace.append(failure)
            logger.warning(json.dumps(failure))
            raise

        diagnostic = build_diagnostic(endpoint, request, response)
        if trace is not None:
            trace.append(diagnostic)
        logger.info(json.dumps(diagnostic))

        return FetchResult(
            response=response,
            data=parse_json_body(response.content),
            diagnostic=diagnostic,
        )
