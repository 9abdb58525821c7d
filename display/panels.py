"""Rich renderers for a dashboard snapshot.

Each renderer takes one EndpointResult and returns a Rich renderable. The
renderers only read the wire dicts in result.items (camelCase keys), so
what the terminal shows is exactly what the dashboard would receive.

Usage:
    console.print(render_outages(await policy.active_outages()))
"""

from datetime import datetime

from rich.console import RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from schemas.result import EndpointResult


# ── Styles ────────────────────────────────────────────────────────────────────

IMPACT_STYLES = {
    "SEV1":     "bold red",
    "SEV2":     "red",
    "SEV3":     "yellow",
    "Degraded": "yellow",
}

SEVERITY_STYLES = {
    "Critical": "bold red",
    "Warning":  "yellow",
    "Info":     "cyan",
}

VENDOR_STYLES = {
    "Outage":      "bold red",
    "Degraded":    "yellow",
    "Operational": "green",
}


def _styled(value: str, styles: dict[str, str]) -> Text:
    return Text(value, style=styles.get(value, ""))


def _time(raw: str | None) -> str:
    """Short local-agnostic rendering of an ISO timestamp; passes sentinels through."""
    if not raw:
        return "-"
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).strftime("%m-%d %H:%M")
    except ValueError:
        return raw


def _table(title: str) -> Table:
    return Table(title=title, show_lines=False, border_style="bright_black", title_justify="left")


# ── Non-success results ───────────────────────────────────────────────────────

def _unavailable(title: str, result: EndpointResult) -> RenderableType | None:
    """Placeholder panel for error or empty results, None when there is data."""
    if result.kind == "error":
        body = Text(result.error or "Unknown error", style="red")
        if result.diagnostic:
            body.append(f"\n{result.diagnostic.get('endpoint', '')}", style="dim")
        return Panel(body, title=title, border_style="red")
    if not result.items:
        return Panel(Text("Nothing to show.", style="dim"), title=title, border_style="dim")
    return None


# ── Panels ────────────────────────────────────────────────────────────────────

def render_outages(result: EndpointResult, title: str = "Active Outages") -> RenderableType:
    if (placeholder := _unavailable(title, result)) is not None:
        return placeholder

    table = _table(title)
    table.add_column("ID",      style="dim",  no_wrap=True)
    table.add_column("System",  style="bold", min_width=24)
    table.add_column("Impact",  justify="center")
    table.add_column("Started", justify="right")
    table.add_column("ETA",     justify="right")
    table.add_column("Bridge",  justify="center")

    for o in result.items:
        table.add_row(
            o["id"],
            o["systemName"],
            _styled(o["impactLevel"], IMPACT_STYLES),
            _time(o["startTime"]),
            _time(o["eta"]),
            "✓" if o.get("teamsBridgeUrl") else "",
        )
    return table


def render_alerts(result: EndpointResult) -> RenderableType:
    title = "Monitoring Alerts"
    if (placeholder := _unavailable(title, result)) is not None:
        return placeholder

    table = _table(title)
    table.add_column("Alert",     style="bold", min_width=28)
    table.add_column("Severity",  justify="center")
    table.add_column("Triggered", justify="right")
    table.add_column("Ack",       justify="center")

    for a in result.items:
        table.add_row(
            a["type"],
            _styled(a["severity"], SEVERITY_STYLES),
            _time(a["timestamp"]),
            "[green]✓[/green]" if a["validated"] else "",
        )
    return table


def render_tickets(result: EndpointResult) -> RenderableType:
    title = "P1 Tickets"
    if (placeholder := _unavailable(title, result)) is not None:
        return placeholder

    table = _table(title)
    table.add_column("Ticket",  style="dim", no_wrap=True)
    table.add_column("Summary", style="bold", min_width=28)
    table.add_column("CI")
    table.add_column("Status")
    table.add_column("Team",    style="dim")

    for t in result.items:
        table.add_row(t["id"], t["summary"], t["affectedCI"], t["status"], t["assignedTeam"])
    return table


def render_changes(result: EndpointResult) -> RenderableType:
    title = "Changes Today"
    if (placeholder := _unavailable(title, result)) is not None:
        return placeholder

    table = _table(title)
    table.add_column("Change",   style="dim", no_wrap=True)
    table.add_column("Title",    style="bold", min_width=24)
    table.add_column("Offering")
    table.add_column("Window",   justify="right")
    table.add_column("State")
    table.add_column("Type",     style="dim")

    for c in result.items:
        window = f"{_time(c.get('start'))} → {_time(c.get('end'))}"
        table.add_row(c["number"], c["title"], c["offering"], window, c["state"], c["type"])
    return table


def render_vendors(result: EndpointResult) -> RenderableType:
    title = "Vendor Status"
    if (placeholder := _unavailable(title, result)) is not None:
        return placeholder

    table = _table(title)
    table.add_column("Vendor", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Page",   style="dim")

    for v in result.items:
        table.add_row(v["name"], _styled(v["status"], VENDOR_STYLES), v["url"])
    return table
