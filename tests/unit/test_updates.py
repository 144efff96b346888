"""Unit tests for partial cycle updates."""

from __future__ import annotations

import uuid

import pytest

from chapters.cycles.phases import CyclePhase, CycleStatus
from chapters.cycles.updates import NO_CHANGE, UNSET, CycleUpdate, SetTo


class TestCycleUpdate:
    """Test the NO_CHANGE / SetTo / UNSET markers."""

    def test_default_update_is_empty(self) -> None:
        update = CycleUpdate()
        assert update.is_empty
        assert update.changed_fields() == {}

    def test_set_values_are_reported(self) -> None:
        book_id = uuid.uuid4()
        update = CycleUpdate(
            current_phase=SetTo(CyclePhase.READING),
            selected_book_id=SetTo(book_id),
        )
        assert update.changed_fields() == {
            "current_phase": CyclePhase.READING,
            "selected_book_id": book_id,
        }

    def test_unset_is_reported_as_none(self) -> None:
        update = CycleUpdate(selected_book_id=UNSET)
        assert not update.is_empty
        assert update.changed_fields() == {"selected_book_id": None}

    def test_no_change_is_omitted(self) -> None:
        update = CycleUpdate(status=SetTo(CycleStatus.COMPLETED), name=NO_CHANGE)
        assert list(update.changed_fields()) == ["status"]

    def test_required_fields_cannot_be_unset(self) -> None:
        with pytest.raises(ValueError, match="cannot be unset"):
            CycleUpdate(current_phase=UNSET)

    def test_raw_values_are_rejected(self) -> None:
        with pytest.raises(TypeError):
            CycleUpdate(name="March")  # type: ignore[arg-type]

    def test_none_is_not_a_marker(self) -> None:
        with pytest.raises(TypeError):
            CycleUpdate(selected_book_id=None)  # type: ignore[arg-type]
