"""Scheduled change schema."""

from datetime import datetime

from schemas.base import CanonicalModel


class ScheduledChange(CanonicalModel):
    """A change request whose window overlaps today.

    start and end come from the concrete change window when set, otherwise
    from the planned window. Either may be None: a gap in the schedule is
    rendered as absent rather than as "now".
    """

    id: str
    number: str
    offering: str
    title: str
    summary: str
    state: str
    type: str
    start: datetime | None = None
    end: datetime | None = None
    url: str
