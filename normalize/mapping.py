"""Mapping table: source enum value -> canonical value.

Source systems are inconsistent about case and whitespace ("Outage",
" outage", "OUTAGE"), so keys and lookups are both trimmed and lower-cased.
An unmapped value is never an error: it lands in a configured default
bucket so unknown severities still render, conservatively bucketed.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from schemas.integration import ImpactMappingEntry
from schemas.outage import ImpactLevel

DEFAULT_IMPACT = ImpactLevel.DEGRADED


def normalize_key(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def classify(source_value: Any, table: Mapping[str, Any], default: Any) -> Any:
    """Look source_value up in table, falling back to default.

    table keys are expected to be normalized already (see MappingTable).
    """
    return table.get(normalize_key(source_value), default)


class MappingTable(Mapping[str, str]):
    """Read-only lookup with normalized keys.

    Built from configuration rows; later rows win when two rows normalize
    to the same key.
    """

    def __init__(self, pairs: Iterable[tuple[Any, str]] = ()) -> None:
        self._table: dict[str, str] = {}
        for source, target in pairs:
            self._table[normalize_key(source)] = target

    @classmethod
    def from_entries(cls, entries: Iterable[ImpactMappingEntry]) -> "MappingTable":
        return cls((entry.servicenow_value, entry.dashboard_value) for entry in entries)

    def __getitem__(self, key: str) -> str:
        return self._table[key]

    def __iter__(self):
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def classify(self, source_value: Any, default: Any) -> Any:
        return classify(source_value, self._table, default)


def classify_impact(
    source_value: Any,
    table: Mapping[str, str],
    default: ImpactLevel = DEFAULT_IMPACT,
) -> ImpactLevel:
    """Classify a source impact value into an ImpactLevel member.

    Two ways to land in the default bucket: the source value has no row in
    the table, or the row points at a dashboard value that isn't an
    ImpactLevel (a typo in the config, say).
    """
    mapped = classify(source_value, table, None)
    if mapped is None:
        return default
    try:
        return ImpactLevel(mapped)
    except ValueError:
        return default
