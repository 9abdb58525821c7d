"""Outage normalizer: ServiceNow outage record -> Outage.

Used by both the active-outage and history endpoints so the two panels can
never disagree about how a record renders. Every canonical field has a
default, so a half-populated record still produces a complete Outage.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from normalize.dates import to_eta, to_instant
from normalize.mapping import DEFAULT_IMPACT, classify_impact
from normalize.property import resolve_property
from schemas.integration import OutageFieldMapping
from schemas.outage import Outage

UNKNOWN_SYSTEM = "Unknown System"
NO_DESCRIPTION = "No description provided."


def record_id(record: Mapping[str, Any]) -> str:
    """Public number when present, else the sys_id."""
    number = resolve_property(record, "number")
    if number:
        return str(number)
    return str(resolve_property(record, "sys_id") or "")


def normalize_outage(
    record: Mapping[str, Any],
    mapping: OutageFieldMapping,
    impact_table: Mapping[str, str],
    now: datetime | None = None,
) -> Outage:
    """Map one outage record onto the canonical Outage.

    Args:
        record: One entry of the Table API "result" array.
        mapping: Canonical field -> source field path.
        impact_table: Normalized impact lookup (see MappingTable).
        now: Clock used for the missing-start-time fallback.
    """
    bridge = resolve_property(record, mapping.teams_bridge_url)
    return Outage(
        id=record_id(record),
        system_name=str(resolve_property(record, mapping.system_name) or UNKNOWN_SYSTEM),
        impact_level=classify_impact(
            resolve_property(record, mapping.impact_level), impact_table, DEFAULT_IMPACT,
        ),
        start_time=to_instant(resolve_property(record, mapping.start_time), now),
        eta=to_eta(resolve_property(record, mapping.eta), now),
        description=str(resolve_property(record, mapping.description) or NO_DESCRIPTION),
        teams_bridge_url=str(bridge) if bridge else None,
    )


def has_impact(record: Mapping[str, Any], mapping: OutageFieldMapping) -> bool:
    """True when the record's impact field holds a non-blank value."""
    raw = resolve_property(record, mapping.impact_level)
    return raw is not None and bool(str(raw).strip())


def normalize_outages(
    records: list[Mapping[str, Any]],
    mapping: OutageFieldMapping,
    impact_table: Mapping[str, str],
    require_impact: bool = False,
    now: datetime | None = None,
) -> list[Outage]:
    """Normalize a result array. With require_impact, drops records whose impact is blank."""
    if require_impact:
        records = [r for r in records if has_impact(r, mapping)]
    return [normalize_outage(r, mapping, impact_table, now) for r in records]
