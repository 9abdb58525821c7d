"""Monitoring alert schema."""

from datetime import datetime
from enum import Enum

from schemas.base import CanonicalModel


class AlertSeverity(str, Enum):
    CRITICAL = "Critical"
    WARNING = "Warning"
    INFO = "Info"


class MonitoringAlert(CanonicalModel):
    """An active alert from the network-monitoring platform.

    Attributes:
        id: AlertObjectID from SolarWinds, as a string.
        type: Display title, "NODE — issue" when a node is known.
        affected_system: Absolute link to the entity details page, or "N/A".
        timestamp: When the alert triggered (UTC).
        severity: Fixed at Info until a severity mapping is configurable.
        validated: True when the alert has been acknowledged at the source.
        node_caption: Upper-cased node name, empty when the alert has none.
        issue: The entity caption the title was built from.
    """

    id: str
    type: str
    affected_system: str
    timestamp: datetime
    severity: AlertSeverity = AlertSeverity.INFO
    validated: bool = False
    node_caption: str = ""
    issue: str = ""
