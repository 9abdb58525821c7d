"""SolarWinds (SWQL) alert queries.

The primary query asks for trigger time and acknowledgement state. Some
Orion versions reject those columns on Orion.AlertActive with HTTP 400, so
a reduced fallback query exists that only touches Orion.AlertObjects
columns. The policy issues the fallback at most once, and only after a 400.
"""

QUERY_PATH = "/SolarWinds/InformationService/v3/Json/Query"

_OBJECT_COLUMNS = (
    "aa.AlertObjectID",
    "ao.EntityCaption",
    "ao.RelatedNodeCaption",
    "ao.EntityType",
    "ao.EntityDetailsUrl",
)
_TRIGGER_COLUMNS = (
    "aa.TriggeredDateTime",
    "aa.Acknowledged",
)
_FROM = (
    "FROM Orion.AlertActive AS aa "
    "JOIN Orion.AlertObjects AS ao ON aa.AlertObjectID = ao.AlertObjectID"
)


def alert_query(full: bool = True) -> str:
    """Build the active-alert SWQL query.

    Args:
        full: True for the primary query (newest trigger first), False for
            the reduced fallback (highest object id first, since trigger
            time isn't selected).
    """
    columns = _OBJECT_COLUMNS + _TRIGGER_COLUMNS if full else _OBJECT_COLUMNS
    order = "aa.TriggeredDateTime DESC" if full else "aa.AlertObjectID DESC"
    return f"SELECT {', '.join(columns)} {_FROM} ORDER BY {order}"


def query_url(api_url: str) -> str:
    return f"{api_url.rstrip('/')}{QUERY_PATH}"
