"""Change normalizer: change_request record -> ScheduledChange.

Changes are fetched with sysparm_display_value=all, so every field is a
{"display_value", "value"} pair. Labels (state, type, offering) come from
display_value; dates and sys_id come from the raw value.
"""

from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote

from normalize.dates import to_optional_instant
from normalize.property import field_at, label_of, raw_of
from schemas.change import ScheduledChange
from schemas.integration import ServiceNowConfig

DEFAULT_TITLE = "Change"

# State labels shown on the panel. Anything mentioning "cancel" is hidden
# even if it also matches one of these.
ALLOWED_STATE_WORDS = ("scheduled", "implement", "review")


def is_visible_state(record: Mapping[str, Any], state_field: str) -> bool:
    state = label_of(field_at(record, state_field)).strip().lower()
    if not state or "cancel" in state:
        return False
    return any(word in state for word in ALLOWED_STATE_WORDS)


def _first_raw(record: Mapping[str, Any], *fields: str) -> Any:
    for name in fields:
        value = raw_of(field_at(record, name))
        if value not in (None, ""):
            return value
    return None


def change_url(instance_url: str, sys_id: Any) -> str:
    target = quote(f"change_request.do?sys_id={sys_id}", safe="")
    return f"{instance_url.rstrip('/')}/nav_to.do?uri={target}"


def normalize_change(record: Mapping[str, Any], config: ServiceNowConfig) -> ScheduledChange:
    m = config.change_field_mapping
    sys_id = raw_of(field_at(record, "sys_id")) or ""
    number = label_of(field_at(record, m.number)) or str(sys_id)
    summary = label_of(field_at(record, m.summary)) or DEFAULT_TITLE

    return ScheduledChange(
        id=str(raw_of(field_at(record, m.number)) or sys_id),
        number=number,
        offering=label_of(field_at(record, m.offering)),
        title=summary,
        summary=summary,
        state=label_of(field_at(record, m.state)),
        type=label_of(field_at(record, m.type)),
        start=to_optional_instant(_first_raw(record, m.start, m.planned_start)),
        end=to_optional_instant(_first_raw(record, m.end, m.planned_end)),
        url=change_url(config.instance_url, sys_id),
    )


def normalize_changes(records: Iterable[Mapping[str, Any]], config: ServiceNowConfig) -> list[ScheduledChange]:
    """Keep changes in a visible state and normalize them, preserving order."""
    state_field = config.change_field_mapping.state
    return [normalize_change(r, config) for r in records if is_visible_state(r, state_field)]
