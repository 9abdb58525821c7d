"""Synthetic demo datasets.

When DEMO_MODE is on, every read endpoint answers from here instead of
calling out. Timestamps are built relative to the injected clock so the
dashboard always looks live, and so tests can pin them.

The records are built as canonical models, not wire dicts, so they go
through the same validation and serialization as real data.
"""

from datetime import datetime, timedelta, timezone

from schemas.alert import AlertSeverity, MonitoringAlert
from schemas.change import ScheduledChange
from schemas.outage import ImpactLevel, Outage
from schemas.ticket import ServiceNowTicket
from schemas.vendor import VendorStatus, VendorStatusOption

BRIDGE_URL = "https://teams.microsoft.com/l/meetup-join/..."


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


def demo_outages(now: datetime | None = None) -> list[Outage]:
    now = _now(now)
    return [
        Outage(
            id="outage-001",
            system_name="API Gateway (Prod-US-East-1)",
            impact_level=ImpactLevel.SEV1,
            start_time=now - timedelta(minutes=15),
            eta=now + timedelta(hours=1),
            teams_bridge_url=BRIDGE_URL,
            description="Experiencing intermittent 5xx errors. Engineering is investigating.",
        ),
        Outage(
            id="outage-002",
            system_name="Customer Authentication Service",
            impact_level=ImpactLevel.SEV2,
            start_time=now - timedelta(minutes=45),
            eta=now + timedelta(hours=2),
            teams_bridge_url=BRIDGE_URL,
            description="Increased latency on login and token refresh endpoints.",
        ),
        Outage(
            id="outage-003",
            system_name="Internal Citrix VDI",
            impact_level=ImpactLevel.DEGRADED,
            start_time=now - timedelta(minutes=120),
            eta=now + timedelta(hours=4),
            description="Users reporting slow application load times. Root cause analysis in progress.",
        ),
        Outage(
            id="outage-004",
            system_name="Billing Processor Queue",
            impact_level=ImpactLevel.SEV3,
            start_time=now - timedelta(minutes=25),
            eta=now + timedelta(hours=1),
            description="Message processing is delayed. No data loss expected.",
        ),
    ]


# (id, system, impact, days ago)
_HISTORY = [
    ("hist-01", "Data Pipeline", ImpactLevel.SEV2, 1),
    ("hist-02", "Reporting Service", ImpactLevel.SEV3, 1),
    ("hist-03", "Internal DNS", ImpactLevel.SEV1, 2),
    ("hist-04", "VPN Concentrator", ImpactLevel.DEGRADED, 3),
    ("hist-05", "CI/CD Platform", ImpactLevel.SEV3, 3),
    ("hist-06", "Object Storage (EU)", ImpactLevel.SEV2, 5),
    ("hist-07", "Object Storage (EU)", ImpactLevel.SEV3, 5),
    ("hist-08", "API Gateway (Prod-EU-West-1)", ImpactLevel.SEV1, 6),
]


def demo_outage_history(now: datetime | None = None, days: int | None = None) -> list[Outage]:
    """Today's demo outages plus a week of resolved ones.

    Args:
        now: Clock.
        days: When given, drop historical entries older than this window.
    """
    now = _now(now)
    history = [
        Outage(
            id=hist_id,
            system_name=system,
            impact_level=impact,
            start_time=now - timedelta(days=ago),
            eta=now - timedelta(days=ago),
            description="",
        )
        for hist_id, system, impact, ago in _HISTORY
        if days is None or ago <= days
    ]
    return demo_outages(now) + history


def demo_alerts(now: datetime | None = None) -> list[MonitoringAlert]:
    now = _now(now)
    rows = [
        ("alert-01", "High CPU Utilization", "kube-cluster-prod-us-east-1",
         timedelta(minutes=2), AlertSeverity.CRITICAL, True),
        ("alert-02", "Disk Space Low", "db-primary-prod-us-west-2",
         timedelta(minutes=10), AlertSeverity.WARNING, True),
        ("alert-03", "Pod CrashLoopBackOff", "auth-service-pod-xyz123",
         timedelta(minutes=12), AlertSeverity.CRITICAL, False),
        ("alert-04", "Network Latency", "api-gateway-prod-eu-central-1",
         timedelta(minutes=30), AlertSeverity.INFO, True),
        ("alert-05", "SSL Certificate Expiring", "portal.example.com",
         timedelta(hours=2), AlertSeverity.WARNING, False),
    ]
    return [
        MonitoringAlert(
            id=alert_id,
            type=title,
            affected_system=system,
            timestamp=now - ago,
            severity=severity,
            validated=validated,
        )
        for alert_id, title, system, ago, severity, validated in rows
    ]


def demo_tickets() -> list[ServiceNowTicket]:
    rows = [
        ("INC001001", "API Gateway 5xx errors in prod", "API Gateway (Prod-US-East-1)", "In Progress", "NetOps"),
        ("INC001002", "Users reporting slow login times", "Customer Authentication Service", "In Progress", "AppDev-Auth"),
        ("INC001003", "Citrix VDI performance degradation", "Internal Citrix VDI", "New", "Desktop Support"),
        ("INC001004", "Investigate high CPU on kube cluster", "kube-cluster-prod-us-east-1", "On Hold", "SRE"),
    ]
    return [
        ServiceNowTicket(
            id=ticket_id,
            summary=summary,
            affected_ci=ci,
            status=status,
            assigned_team=team,
            ticket_url="#",
        )
        for ticket_id, summary, ci, status, team in rows
    ]


def demo_changes(now: datetime | None = None) -> list[ScheduledChange]:
    """Two changes with windows later today (UTC)."""
    today = _now(now).replace(hour=0, minute=0, second=0, microsecond=0)
    return [
        ScheduledChange(
            id="CHG001234",
            number="CHG001234",
            offering="Customer Authentication Service",
            title="Database patching for auth cluster",
            summary="Database patching for auth cluster",
            state="Scheduled",
            type="Standard",
            start=today + timedelta(hours=9),
            end=today + timedelta(hours=11),
            url="#",
        ),
        ScheduledChange(
            id="CHG001235",
            number="CHG001235",
            offering="API Gateway (Prod-US-East-1)",
            title="Edge cache rollout",
            summary="Edge cache rollout",
            state="Implement",
            type="Emergency",
            start=today + timedelta(hours=13, minutes=30),
            end=today + timedelta(hours=15),
            url="#",
        ),
    ]


def demo_vendor_statuses() -> list[VendorStatus]:
    """Already in panel order: Outage, Degraded, then Operational by name."""
    return [
        VendorStatus(id="vendor-slack", name="Slack", url="https://status.slack.com/",
                     status=VendorStatusOption.OUTAGE),
        VendorStatus(id="vendor-github", name="GitHub", url="https://www.githubstatus.com/",
                     status=VendorStatusOption.DEGRADED),
        VendorStatus(id="vendor-aws", name="AWS", url="https://status.aws.amazon.com/",
                     status=VendorStatusOption.OPERATIONAL),
        VendorStatus(id="vendor-stripe", name="Stripe", url="https://status.stripe.com/",
                     status=VendorStatusOption.OPERATIONAL),
    ]
