"""Ticket normalizer: ServiceNow incident record -> ServiceNowTicket."""

from collections.abc import Mapping
from typing import Any

from normalize.property import resolve_property
from schemas.integration import ServiceNowConfig
from schemas.ticket import ServiceNowTicket

# Canonical field -> placeholder when the source field is empty.
TICKET_DEFAULTS = {
    "id": "N/A",
    "summary": "No summary",
    "affected_ci": "N/A",
    "status": "New",
    "assigned_team": "Unassigned",
}


def ticket_url(instance_url: str, table: str, sys_id: Any) -> str:
    """Deep link that opens the record inside the ServiceNow UI frame."""
    return f"{instance_url.rstrip('/')}/nav_to.do?uri={table}.do?sys_id={sys_id}"


def normalize_ticket(record: Mapping[str, Any], config: ServiceNowConfig) -> ServiceNowTicket:
    mapping = config.ticket_field_mapping
    fields = {
        name: str(resolve_property(record, getattr(mapping, name)) or default)
        for name, default in TICKET_DEFAULTS.items()
    }
    sys_id = resolve_property(record, "sys_id") or ""
    return ServiceNowTicket(
        **fields,
        ticket_url=ticket_url(config.instance_url, config.ticket_table, sys_id),
    )
