"""Upstream response body parser.

Every external call funnels its body through here. Handles the common
failure modes without raising:
- Non-JSON bodies (HTML login pages from an SSO proxy, maintenance pages)
- Empty bodies
- JSON of the wrong shape (an error object where a result list was due)

The decision whether a bad body means "empty" or "error" belongs to the
resilience policy, so these helpers only report None.
"""

import json
from typing import Any


def parse_json_body(text: str | bytes | None) -> Any | None:
    """Parse a response body as JSON, returning None when it isn't JSON.

    Args:
        text: Raw body as received. Bytes are decoded as UTF-8 with
            replacement so a stray invalid byte can't raise.

    Returns:
        The decoded JSON value, or None for empty or non-JSON bodies.
    """
    if text is None:
        return None
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def records_from(data: Any, key: str) -> list[dict] | None:
    """Return data[key] when it is a list of objects, else None.

    ServiceNow answers {"result": [...]}, SolarWinds {"results": [...]}.
    Non-dict entries inside the list are dropped rather than failing the
    whole response.
    """
    if not isinstance(data, dict):
        return None
    records = data.get(key)
    if not isinstance(records, list):
        return None
    return [r for r in records if isinstance(r, dict)]
