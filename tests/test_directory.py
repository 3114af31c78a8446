"""Tests for the tutor directory, its fallback schedule and tutor-owned slots."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from unitutor.schemas.availability import SlotDraft
from unitutor.services.availability import AvailabilitySlot
from unitutor.services.directory import (
    DIRECTORY_ERROR,
    SlotValidationError,
    TutorListing,
    add_slot,
    filter_tutors,
    list_tutor_slots,
    load_directory,
    next_emergency_slot,
    remove_slot,
)


def _tutor(tutor_id: str, **fields) -> dict:
    row = {"id": tutor_id, "full_name": f"Tutor {tutor_id}", "is_listed": True}
    row.update(fields)
    return row


def test_directory_uses_real_rows_when_present(supabase) -> None:
    supabase.tables["public_profiles"] = [_tutor("t1"), _tutor("t2", is_listed=False)]
    supabase.tables["tutor_availability"] = [
        {"id": "a1", "tutor_id": "t1", "start_time": "2024-01-01T10:00:00Z", "end_time": "2024-01-01T11:00:00Z"},
        {"id": "broken", "tutor_id": "t1"},
    ]

    directory = load_directory(supabase)

    assert [t.id for t in directory.tutors] == ["t1"]
    assert [s.id for s in directory.slots] == ["a1"]
    assert directory.slots[0].bookable is True
    assert directory.fallback is False
    assert directory.error is None


def test_directory_falls_back_when_no_slots(supabase) -> None:
    supabase.tables["public_profiles"] = [_tutor("t1"), _tutor("t2")]

    directory = load_directory(supabase)

    assert directory.fallback is True
    assert {s.tutor_id for s in directory.slots} == {"t1", "t2"}
    assert len(directory.slots) == 20
    assert not any(s.bookable for s in directory.slots)


def test_directory_falls_back_when_slot_fetch_fails(supabase) -> None:
    supabase.tables["public_profiles"] = [_tutor("t1")]
    supabase.failures[("tutor_availability", "select")] = RuntimeError("relation does not exist")

    directory = load_directory(supabase)

    assert directory.fallback is True
    assert {s.tutor_id for s in directory.slots} == {"t1"}
    assert directory.error is None


def test_directory_error_uses_placeholder_tutors(supabase) -> None:
    supabase.failures[("public_profiles", "select")] = RuntimeError("timeout")

    directory = load_directory(supabase)

    assert directory.tutors == []
    assert directory.error == DIRECTORY_ERROR
    assert {s.tutor_id for s in directory.slots} == {"demo-1", "demo-2"}


def test_filter_tutors_matches_any_field() -> None:
    tutors = [
        TutorListing(id="1", full_name="Ada", program="Computer Science", courses=["Analysis I"]),
        TutorListing(id="2", full_name="Grace", program="Mechatronics", bio="Loves COBOL"),
    ]

    assert [t.id for t in filter_tutors(tutors, "analysis")] == ["1"]
    assert [t.id for t in filter_tutors(tutors, " cobol ")] == ["2"]
    assert filter_tutors(tutors, "") == tutors
    assert filter_tutors(tutors, None) == tutors
    assert filter_tutors(tutors, "physics") == []


def test_next_emergency_slot_picks_earliest_future_known_tutor() -> None:
    now = datetime(2024, 1, 2, tzinfo=timezone.utc)
    tutors = [TutorListing(id="t1"), TutorListing(id="t2")]

    def slot(slot_id, tutor_id, start, emergency=True):
        return AvailabilitySlot(id=slot_id, tutor_id=tutor_id, start=start, end=start, is_emergency=emergency)

    slots = [
        slot("past", "t1", "2024-01-01T10:00:00.000Z"),
        slot("later", "t1", "2024-01-05T10:00:00.000Z"),
        slot("sooner", "t2", "2024-01-03T10:00:00.000Z"),
        slot("plain", "t2", "2024-01-02T10:00:00.000Z", emergency=False),
    ]

    found = next_emergency_slot(slots, tutors, now=now)

    assert found["slot"].id == "sooner"
    assert found["tutor"].id == "t2"
    assert next_emergency_slot(slots, [TutorListing(id="t1")], now=now) is None
    assert next_emergency_slot([], tutors, now=now) is None


def test_add_slot_validates_and_inserts(supabase) -> None:
    draft = SlotDraft(start="2024-01-01T10:00:00Z", end="2024-01-01T11:30:00Z", mode="in-person", isEmergency=True)

    slots = add_slot(supabase, "t1", draft)

    assert len(slots) == 1
    assert slots[0].mode == "in-person"
    assert slots[0].is_emergency is True
    assert slots[0].end == "2024-01-01T11:30:00.000Z"
    assert slots[0].bookable is True
    stored = supabase.tables["tutor_availability"][0]
    assert stored["start_time"] == "2024-01-01T10:00:00.000Z"


@pytest.mark.parametrize("end", ["2024-01-01T10:00:00Z", "2024-01-01T09:00:00Z"])
def test_add_slot_rejects_non_positive_windows(supabase, end) -> None:
    with pytest.raises(SlotValidationError, match="End time must be after start time"):
        add_slot(supabase, "t1", SlotDraft(start="2024-01-01T10:00:00Z", end=end))
    assert "tutor_availability" not in supabase.tables


def test_list_tutor_slots_orders_by_start(supabase) -> None:
    supabase.tables["tutor_availability"] = [
        {"id": "b", "tutor_id": "t1", "start_time": "2024-01-02T10:00:00Z", "end_time": "2024-01-02T11:00:00Z"},
        {"id": "a", "tutor_id": "t1", "start_time": "2024-01-01T10:00:00Z", "end_time": "2024-01-01T11:00:00Z"},
        {"id": "c", "tutor_id": "t2", "start_time": "2024-01-01T09:00:00Z", "end_time": "2024-01-01T10:00:00Z"},
    ]

    assert [s.id for s in list_tutor_slots(supabase, "t1")] == ["a", "b"]


def test_remove_slot_is_scoped_to_owner(supabase) -> None:
    supabase.tables["tutor_availability"] = [{"id": "a", "tutor_id": "t1"}]

    assert remove_slot(supabase, "t2", "a") is False
    assert remove_slot(supabase, "t1", "a") is True
    assert supabase.tables["tutor_availability"] == []
