"""ServiceNow ticket schema."""

from pydantic import Field

from schemas.base import CanonicalModel


class ServiceNowTicket(CanonicalModel):
    """A priority-1 incident ticket shown on the tickets panel.

    Attributes:
        id: Ticket number (e.g. "INC0012345"), "N/A" when unmapped.
        summary: Short description.
        affected_ci: Configuration item display name.
        status: State label as ServiceNow displays it ("New", "In Progress").
        assigned_team: Assignment group display name.
        ticket_url: Deep link into the ServiceNow UI built from the sys_id.

    affected_ci keeps the dashboard's historical "affectedCI" wire name.
    """

    id: str
    summary: str
    affected_ci: str = Field(alias="affectedCI")
    status: str
    assigned_team: str
    ticket_url: str
