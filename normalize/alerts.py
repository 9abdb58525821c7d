"""Alert normalizer: SolarWinds SWQL row -> MonitoringAlert.

SWQL rows are flat, so fields are read directly through resolve_property
with the column names. Two pieces need real work:

- The title. Operators scan the panel by node, so titles read
  "NODE — issue" with the node upper-cased. When an alert has no related
  node but is itself a node (EntityType "Orion.Nodes"), the entity caption
  doubles as the node name.
- The link. EntityDetailsUrl is often relative, and when it is absolute it
  points at the API host rather than the web console. A configured UI base
  wins; otherwise relative links are anchored on the API host.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any
from urllib.parse import urljoin, urlsplit

from normalize.dates import to_instant
from normalize.property import resolve_property
from schemas.alert import AlertSeverity, MonitoringAlert

NOT_AVAILABLE = "N/A"
NODE_ENTITY_TYPE = "Orion.Nodes"
DEFAULT_CAPTION = "Alert"
# Alerts carry no usable severity yet; every alert renders at this level.
DEFAULT_SEVERITY = AlertSeverity.INFO

_TRUE_STRINGS = frozenset({"true", "1", "yes"})


def _text(row: Mapping[str, Any], column: str, default: str = "") -> str:
    value = resolve_property(row, column)
    return default if value is None else str(value).strip()


def node_and_issue(row: Mapping[str, Any]) -> tuple[str, str]:
    """Return (upper-cased node or "", issue caption)."""
    node = _text(row, "RelatedNodeCaption")
    issue = _text(row, "EntityCaption", DEFAULT_CAPTION) or DEFAULT_CAPTION
    if not node and _text(row, "EntityType") == NODE_ENTITY_TYPE:
        node = issue
    return node.upper(), issue


def alert_title(row: Mapping[str, Any]) -> str:
    node, issue = node_and_issue(row)
    return f"{node} — {issue}" if node else issue


def to_absolute_url(maybe_url: str | None, ui_base: str = "", api_url: str = "") -> str:
    """Resolve an entity link for the browser.

    Args:
        maybe_url: EntityDetailsUrl as returned, relative or absolute.
        ui_base: Web console base. When set, the link's path and query are
            re-homed onto it even if the link was absolute.
        api_url: SWIS base URL, used to anchor relative links when there
            is no UI base.

    Returns:
        An absolute URL, the input unchanged when it can't be resolved, or
        "N/A" for empty input.
    """
    if not maybe_url:
        return NOT_AVAILABLE

    parts = urlsplit(maybe_url)
    is_absolute = parts.scheme in ("http", "https")

    if ui_base:
        if is_absolute:
            path = parts.path + (f"?{parts.query}" if parts.query else "")
            return urljoin(ui_base, path)
        return urljoin(ui_base, maybe_url)

    if is_absolute:
        return maybe_url

    api = urlsplit(api_url)
    if not api.scheme or not api.netloc:
        return maybe_url
    return urljoin(f"{api.scheme}://{api.netloc}", maybe_url)


def is_acknowledged(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def exclude_rows(rows: Iterable[Mapping[str, Any]], terms: Iterable[str]) -> list[Mapping[str, Any]]:
    """Drop rows whose EntityCaption equals or starts with an excluded term.

    Matching is case-insensitive. Blank terms are ignored.
    """
    lowered = [t.strip().lower() for t in terms if t and t.strip()]
    if not lowered:
        return list(rows)

    kept = []
    for row in rows:
        caption = _text(row, "EntityCaption").lower()
        if not any(caption == term or caption.startswith(term) for term in lowered):
            kept.append(row)
    return kept


def normalize_alert(
    row: Mapping[str, Any],
    ui_base: str = "",
    api_url: str = "",
    now: datetime | None = None,
) -> MonitoringAlert:
    node, issue = node_and_issue(row)
    return MonitoringAlert(
        id=str(resolve_property(row, "AlertObjectID") or ""),
        type=alert_title(row),
        affected_system=to_absolute_url(resolve_property(row, "EntityDetailsUrl"), ui_base, api_url),
        timestamp=to_instant(resolve_property(row, "TriggeredDateTime"), now),
        severity=DEFAULT_SEVERITY,
        validated=is_acknowledged(resolve_property(row, "Acknowledged")),
        node_caption=node,
        issue=issue,
    )
