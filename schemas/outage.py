"""Outage schema.

An Outage is the dashboard's view of one ServiceNow outage record, used by
both the active-outage panel and the trend (history) chart.
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from schemas.base import CanonicalModel

UNKNOWN_ETA = "Unknown"


class ImpactLevel(str, Enum):
    """Canonical outage impact buckets.

    Extends str so values serialize as plain strings ("SEV1", "Degraded").
    Lookup is case-insensitive and accepts the legacy spelling
    "Degradation", which older impact-mapping configs still carry.

    Values:
        SEV1: Full outage of a critical system.
        SEV2: Major impact, partial outage.
        SEV3: Minor impact.
        DEGRADED: Degraded service. Also the default bucket for source
            values that no mapping entry recognises.
    """

    SEV1 = "SEV1"
    SEV2 = "SEV2"
    SEV3 = "SEV3"
    DEGRADED = "Degraded"

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, str):
            return None
        key = value.strip().lower()
        if key == "degradation":
            return cls.DEGRADED
        for member in cls:
            if member.value.lower() == key:
                return member
        return None


class Outage(CanonicalModel):
    """A single outage as rendered on the dashboard.

    Attributes:
        id: Public record number (e.g. "OUT0010023"), or the sys_id when
            the record has no number.
        system_name: Affected system. "Unknown System" when unmapped.
        impact_level: Always an ImpactLevel member, even when the source
            value was unrecognised.
        start_time: When the outage began (UTC). Missing or malformed
            source dates resolve to the time of the request.
        eta: Expected end (UTC), or the "Unknown" sentinel while no end
            has been recorded.
        description: Free text. "No description provided." when unmapped.
        teams_bridge_url: Link to the collaboration bridge, if any.
    """

    id: str
    system_name: str
    impact_level: ImpactLevel
    start_time: datetime
    eta: datetime | Literal["Unknown"]
    description: str
    teams_bridge_url: str | None = None
