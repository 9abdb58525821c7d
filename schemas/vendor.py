"""Vendor status schema."""

from enum import Enum

from schemas.base import CanonicalModel


class VendorStatusOption(str, Enum):
    """Derived health of a third-party vendor.

    rank gives the panel ordering: problems first.
    """

    OUTAGE = "Outage"
    DEGRADED = "Degraded"
    OPERATIONAL = "Operational"

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {
    VendorStatusOption.OUTAGE: 0,
    VendorStatusOption.DEGRADED: 1,
    VendorStatusOption.OPERATIONAL: 2,
}


class VendorStatus(CanonicalModel):
    """Status of one configured vendor. Always derived, never stored."""

    id: str
    name: str
    url: str
    status: VendorStatusOption
