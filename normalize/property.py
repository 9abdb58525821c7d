"""Property resolver: the one trusted boundary for untyped external JSON.

External systems hand back records of arbitrary shape. Nothing else in the
engine indexes into those records directly: normalizers ask this module for
a dotted path and always get back either a scalar or None.

ServiceNow in particular returns "reference fields" as objects rather than
scalars, e.g. {"display_value": "Payments API", "value": "a1b2..."} or
{"link": "...", "value": "a1b2..."}. Those are collapsed to one display
string so every mapped field reaches normalization as a scalar regardless
of how the instance is configured.

No function in this module raises.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

# Order in which a structured value is collapsed to a display string.
_REFERENCE_KEYS = ("display_value", "name", "value")


class FieldState(str, Enum):
    """What a lookup found at the end of a path.

    Values:
        PRESENT: Every segment resolved to a non-null value.
        ABSENT: A segment was missing or null.
        UNEXPECTED: The path tried to descend into a scalar (e.g. "a.b"
            where "a" is a string). Treated like ABSENT by callers, but kept
            distinct so it can be logged as a mapping mistake.
    """

    PRESENT = "present"
    ABSENT = "absent"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class FieldLookup:
    """Tagged result of lookup(). value is None unless state is PRESENT."""

    state: FieldState
    value: Any = None

    @property
    def found(self) -> bool:
        return self.state is FieldState.PRESENT


def lookup(record: Any, path: str | None, collapse: bool = True) -> FieldLookup:
    """Walk a dotted path through a record and classify the outcome.

    Dict segments are looked up by key; list segments accept an integer
    index ("components.0.status"). A structured value at the end of the
    path is collapsed with collapse_reference() unless collapse is False.

    Args:
        record: Parsed JSON from an external system. Any type is accepted.
        path: Dotted path such as "cmdb_ci" or "status.indicator". An
            empty or None path resolves to ABSENT.
        collapse: Set to False to get a structured value back as-is, e.g.
            a {"display_value", "value"} pair read with label_of/raw_of.

    Returns:
        A FieldLookup describing what was found.
    """
    if not path:
        return FieldLookup(FieldState.ABSENT)

    current = record
    for segment in path.split("."):
        if current is None:
            return FieldLookup(FieldState.ABSENT)
        if isinstance(current, dict):
            current = current.get(segment)
        elif isinstance(current, list):
            if not segment.isdecimal() or int(segment) >= len(current):
                return FieldLookup(FieldState.ABSENT)
            current = current[int(segment)]
        else:
            return FieldLookup(FieldState.UNEXPECTED)

    if current is None:
        return FieldLookup(FieldState.ABSENT)
    return FieldLookup(FieldState.PRESENT, collapse_reference(current) if collapse else current)


def resolve_property(record: Any, path: str | None) -> Any:
    """Return the scalar at a dotted path, or None when it isn't there."""
    return lookup(record, path).value


def field_at(record: Any, path: str | None) -> Any:
    """Return the value at a dotted path without collapsing it, or None."""
    return lookup(record, path, collapse=False).value


def collapse_reference(value: Any) -> Any:
    """Reduce a structured value to a display string; scalars pass through.

    Preference order: display_value, then name, then value, taking the
    first truthy one. Anything else is JSON-serialized so it still renders.
    """
    if isinstance(value, dict):
        for key in _REFERENCE_KEYS:
            candidate = value.get(key)
            if candidate:
                return candidate
        return json.dumps(value, default=str)
    if isinstance(value, list):
        return json.dumps(value, default=str)
    return value


def label_of(value: Any) -> str:
    """Display label of a field fetched with sysparm_display_value=all.

    With display_value=all every field arrives as
    {"display_value": ..., "value": ...}. Returns "" for absent values.
    """
    if value is None:
        return ""
    if isinstance(value, dict):
        if "display_value" in value:
            return str(value.get("display_value") or "")
        if "value" in value:
            return str(value.get("value") or "")
    return str(value)


def raw_of(value: Any) -> Any:
    """Raw (non-display) value of a field, or the field itself if scalar."""
    if isinstance(value, dict):
        return value.get("value")
    return value
