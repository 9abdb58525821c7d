"""ServiceNow Table API query builders.

One builder per data kind. Each turns a ServiceNowConfig into a TableQuery:
an encoded-query filter, the field list to request, and the table. Field
names always come from the config's mappings, so an instance with custom
columns only needs a config change.

Encoded-query cheat sheet (ServiceNow syntax):
    ^        AND
    ^OR      OR with the previous condition
    ^NQ      start a new OR-ed query group
    ORDERBY / ORDERBYDESC   sort, may be chained
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from urllib.parse import quote

from schemas.integration import ServiceNowConfig

# Always requested so records can be identified and deep-linked.
IDENTITY_FIELDS = ("sys_id", "number")

DEFAULT_HISTORY_DAYS = 7
HISTORY_LIMIT = 200
TICKET_LIMIT = 20
CHANGE_LIMIT = 200

# Incident states hidden from the tickets panel: Resolved, Closed, Canceled.
CLOSED_TICKET_STATES = "6,7,8"
# Change states shown today: Review (-2 on some instances), Scheduled,
# Implement, Review.
OPEN_CHANGE_STATES = "-2,-1,0,1"

# Same safe set as JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def request_fields(*groups) -> list[str]:
    """Union of identity fields and every mapped field, first occurrence wins."""
    seen: dict[str, None] = {name: None for name in IDENTITY_FIELDS}
    for group in groups:
        for name in group:
            if name:
                seen.setdefault(name, None)
    return list(seen)


@dataclass(frozen=True)
class TableQuery:
    """A ready-to-send Table API query.

    Attributes:
        table: Table name, e.g. "incident".
        filter: Raw (unencoded) encoded-query string, ordering included.
        fields: Columns to return.
        display_value: "true" for labels only, "all" for labels plus raw
            values on every field.
        limit: sysparm_limit, or None to use the instance default.
    """

    table: str
    filter: str
    fields: list[str] = field(default_factory=list)
    display_value: str = "true"
    limit: int | None = None

    @property
    def encoded_filter(self) -> str:
        return encode_component(self.filter)

    def url(self, instance_url: str) -> str:
        params = [
            f"sysparm_display_value={self.display_value}",
            f"sysparm_query={self.encoded_filter}",
        ]
        if self.limit is not None:
            params.append(f"sysparm_limit={self.limit}")
        params.append(f"sysparm_fields={encode_component(','.join(self.fields))}")
        return f"{instance_url.rstrip('/')}/api/now/table/{self.table}?{'&'.join(params)}"


def active_outages_query(config: ServiceNowConfig) -> TableQuery:
    """Outages still in progress: active with no end time, newest first."""
    mapping = config.field_mapping
    return TableQuery(
        table=config.outage_table,
        filter=f"active=true^{mapping.eta}ISEMPTY^ORDERBYDESC{mapping.start_time}",
        fields=request_fields(mapping.source_fields()),
    )


def outage_history_query(
    config: ServiceNowConfig,
    days: int = DEFAULT_HISTORY_DAYS,
    now: datetime | None = None,
) -> TableQuery:
    """Outages of the configured impact types that are ongoing or ended recently.

    Matches the ServiceNow list filter "type IN (outage, degradation) AND
    (end is empty OR end on or after now - days)", oldest first so the
    trend chart reads left to right.
    """
    mapping = config.field_mapping
    now = now or datetime.now(timezone.utc)
    since = (now - timedelta(days=days)).strftime("%Y-%m-%d %H:%M:%S")
    impact = mapping.impact_level
    values = ",".join(config.history_impact_values)

    return TableQuery(
        table=config.outage_table,
        filter=(
            f"{impact}IN{values}^{impact}ISNOTEMPTY"
            f"^{mapping.eta}ISEMPTY^OR{mapping.eta}>={since}"
            f"^ORDERBY{mapping.start_time}"
        ),
        fields=request_fields(mapping.source_fields()),
        limit=HISTORY_LIMIT,
    )


def tickets_query(config: ServiceNowConfig) -> TableQuery:
    """Open priority-1 tickets, most recently updated first."""
    mapping = config.ticket_field_mapping
    return TableQuery(
        table=config.ticket_table,
        filter=(
            f"stateNOT IN{CLOSED_TICKET_STATES}"
            f"^{mapping.priority}=1"
            f"^ORDERBYDESCsys_updated_on"
        ),
        fields=request_fields(mapping.source_fields()),
        limit=TICKET_LIMIT,
    )


def changes_today_query(config: ServiceNowConfig) -> TableQuery:
    """Open changes whose window overlaps today.

    Records may carry only the concrete window, only the planned window, or
    both, so the overlap predicate is written once per pair and OR-grouped.
    Sorted by concrete start, then planned start.
    """
    m = config.change_field_mapping
    scope = f"active=true^stateIN{OPEN_CHANGE_STATES}"
    concrete = (
        f"{m.start}<=javascript:gs.endOfToday()"
        f"^{m.end}>=javascript:gs.beginningOfToday()"
    )
    planned = (
        f"{m.planned_start}<=javascript:gs.endOfToday()"
        f"^{m.planned_end}>=javascript:gs.beginningOfToday()"
    )
    return TableQuery(
        table=config.change_table,
        filter=f"{scope}^{concrete}^NQ{scope}^{planned}^ORDERBY{m.start}^ORDERBY{m.planned_start}",
        fields=request_fields(m.source_fields()),
        display_value="all",
        limit=CHANGE_LIMIT,
    )
