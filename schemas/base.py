"""Shared base for canonical dashboard entities.

Every entity the engine hands to the dashboard is an immutable value object
built fresh for one request. Fields are snake_case in Python and camelCase
on the wire (systemName, impactLevel, ...) because that is what the panels
read.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CanonicalModel(BaseModel):
    """Frozen pydantic model that serializes with camelCase keys.

    populate_by_name lets normalizers and tests construct entities with the
    Python field names while the JSON output keeps the dashboard contract.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict:
        """Return the JSON-ready dict the dashboard consumes."""
        return self.model_dump(mode="json", by_alias=True)
