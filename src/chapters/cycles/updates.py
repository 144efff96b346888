"""Partial update markers for cycle records.

A field in a ``CycleUpdate`` is one of:

- ``NO_CHANGE``: leave the stored value as it is (the default)
- ``SetTo(value)``: store ``value``
- ``UNSET``: clear the stored value

Keeping "leave alone" and "clear" as distinct markers avoids overloading
``None`` with two meanings.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, fields
from typing import Any, Generic, TypeVar, Union

from chapters.cycles.phases import CyclePhase, CycleStatus, PhaseDurations

T = TypeVar("T")


class _Marker(enum.Enum):
    NO_CHANGE = "no_change"
    UNSET = "unset"

    def __repr__(self) -> str:
        return self.name


NO_CHANGE = _Marker.NO_CHANGE
UNSET = _Marker.UNSET


@dataclass(frozen=True)
class SetTo(Generic[T]):
    """Store ``value`` in the field."""

    value: T


FieldChange = Union[_Marker, SetTo[T]]


@dataclass(frozen=True)
class CycleUpdate:
    """Fields to write to a cycle. Omitted fields are left unchanged.

    Only ``selected_book_id`` can be cleared; the other fields are required
    columns and accept ``NO_CHANGE`` or ``SetTo`` only.
    """

    name: FieldChange[str] = NO_CHANGE
    status: FieldChange[CycleStatus] = NO_CHANGE
    current_phase: FieldChange[CyclePhase] = NO_CHANGE
    phase_durations: FieldChange[PhaseDurations] = NO_CHANGE
    phase_timings: FieldChange[dict[CyclePhase, Any]] = NO_CHANGE
    selected_book_id: FieldChange[uuid.UUID] = NO_CHANGE

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if value is UNSET and f.name != "selected_book_id":
                raise ValueError(f"Field {f.name} cannot be unset")
            if value is not NO_CHANGE and value is not UNSET and not isinstance(value, SetTo):
                raise TypeError(
                    f"Field {f.name} must be NO_CHANGE, UNSET or SetTo(...), got {value!r}"
                )

    def changed_fields(self) -> dict[str, Any]:
        """Return the supplied changes keyed by field name.

        Values are the raw new value, or ``None`` for a field being unset.
        """
        changes: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is NO_CHANGE:
                continue
            changes[f.name] = None if value is UNSET else value.value
        return changes

    @property
    def is_empty(self) -> bool:
        return not self.changed_fields()
