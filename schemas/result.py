"""Endpoint result schema.

Every dashboard endpoint resolves to exactly one EndpointResult. The
resilience policy decides which variant applies; the HTTP layer only turns
it into an envelope and a status code. Nothing below the policy raises to
signal "empty" or "error".

Variants:
    success → the integration answered and records were normalized (the
              list may still be empty)
    empty   → nothing to show on purpose: integration disabled, not yet
              configured, or an outage endpoint degrading after a failure
    error   → a configured feature could not be served; carries a short
              human-readable message and, for internal errors, a redacted
              diagnostic payload
"""

from typing import Any, Literal

from pydantic import BaseModel


class EndpointResult(BaseModel):
    """Outcome of one dashboard endpoint call.

    Attributes:
        kind: Which variant this is. See module docstring.
        items: Canonical entities, already converted to wire dicts. Empty
            for "empty" and "error".
        reason: Why an "empty" result was returned. Logged, never shown.
        error: Short message for the panel when kind is "error".
        status_code: HTTP status the API layer should use.
        diagnostic: Redacted context for internal errors (endpoint,
            exception, last outbound call). None otherwise.
    """

    kind: Literal["success", "empty", "error"]
    items: list[dict] = []
    reason: str | None = None
    error: str | None = None
    status_code: int = 200
    diagnostic: dict[str, Any] | None = None

    @classmethod
    def success(cls, items: list) -> "EndpointResult":
        return cls(kind="success", items=[_to_wire(item) for item in items])

    @classmethod
    def empty(cls, reason: str) -> "EndpointResult":
        return cls(kind="empty", reason=reason)

    @classmethod
    def failure(cls, message: str, status_code: int = 400) -> "EndpointResult":
        return cls(kind="error", error=message, status_code=status_code)

    @classmethod
    def internal_error(cls, message: str, diagnostic: dict[str, Any]) -> "EndpointResult":
        return cls(kind="error", error=message, status_code=500, diagnostic=diagnostic)

    @property
    def ok(self) -> bool:
        return self.kind != "error"

    def envelope(self) -> dict[str, Any]:
        """Build the JSON body the dashboard expects.

        Success and empty both report success with a (possibly empty) data
        array, so panels render "nothing to show" instead of an error banner.
        """
        if self.ok:
            return {"success": True, "data": self.items}
        body: dict[str, Any] = {"success": False, "error": self.error}
        if self.diagnostic is not None:
            body["diagnostic"] = self.diagnostic
        return body


def _to_wire(item: Any) -> dict:
    if isinstance(item, dict):
        return item
    return item.to_wire()
