import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from unitutor.schemas.availability import SlotDraft
from unitutor.services.availability import (
    AvailabilitySlot,
    coerce_timestamp,
    generate_fallback_slots,
    mark_bookable,
    normalize_slots,
    to_iso,
)

logger = logging.getLogger(__name__)

DIRECTORY_LIMIT = 200
AVAILABILITY_LIMIT = 400
DIRECTORY_ERROR = "We had trouble loading tutors. Refresh the page or try again soon."


class SlotValidationError(ValueError):
    pass


class TutorListing(BaseModel):
    id: str
    full_name: Optional[str] = None
    program: Optional[str] = None
    year: Optional[str] = None
    courses: Optional[List[str]] = None
    rate_cents: Optional[int] = None
    contact: Optional[str] = None
    bio: Optional[str] = None


class Directory(BaseModel):
    tutors: List[TutorListing] = []
    slots: List[AvailabilitySlot] = []
    fallback: bool = False
    error: Optional[str] = None


def _listing(row: Dict[str, Any]) -> TutorListing:
    courses = row.get("courses")
    year = row.get("year")
    return TutorListing(
        id=str(row["id"]),
        full_name=row.get("full_name"),
        program=row.get("program"),
        year=None if year is None else str(year),
        courses=list(courses) if isinstance(courses, list) else None,
        rate_cents=row.get("rate_cents"),
        contact=row.get("contact"),
        bio=row.get("bio"),
    )


# -------- Directory --------

def load_directory(supabase) -> Directory:
    try:
        tutor_rows = supabase \
            .table("public_profiles") \
            .select("*") \
            .eq("is_listed", True) \
            .limit(DIRECTORY_LIMIT) \
            .execute().data or []
        tutors = [_listing(row) for row in tutor_rows]
    except Exception as e:
        logger.error(f"Tutor directory load failed: {str(e)}")
        return Directory(slots=generate_fallback_slots([]), fallback=True, error=DIRECTORY_ERROR)

    try:
        slot_rows = supabase \
            .table("tutor_availability") \
            .select("*") \
            .limit(AVAILABILITY_LIMIT) \
            .execute().data
        slots = mark_bookable(normalize_slots(slot_rows))
    except Exception as e:
        logger.warning(f"Availability load failed, using fallback slots: {str(e)}")
        slots = []

    if not slots:
        logger.warning("No availability rows found, using fallback slots")
        return Directory(tutors=tutors, slots=generate_fallback_slots([t.id for t in tutors]), fallback=True)

    return Directory(tutors=tutors, slots=slots)


def filter_tutors(tutors: List[TutorListing], query: Optional[str]) -> List[TutorListing]:
    needle = (query or "").strip().lower()
    if not needle:
        return tutors

    def haystack(tutor: TutorListing) -> str:
        parts = [tutor.full_name, tutor.program, tutor.year, *(tutor.courses or []), tutor.bio]
        return " ".join(part for part in parts if part).lower()

    return [tutor for tutor in tutors if needle in haystack(tutor)]


def next_emergency_slot(
    slots: List[AvailabilitySlot],
    tutors: List[TutorListing],
    now: Optional[datetime] = None,
) -> Optional[Dict[str, Any]]:
    now = now or datetime.now(timezone.utc)
    upcoming = []
    for slot in slots:
        if not slot.is_emergency:
            continue
        start = coerce_timestamp(slot.start)
        if start is not None and start >= now:
            upcoming.append((start, slot))
    if not upcoming:
        return None

    upcoming.sort(key=lambda item: item[0])
    candidate = upcoming[0][1]
    tutor = next((t for t in tutors if t.id == candidate.tutor_id), None)
    return {"tutor": tutor, "slot": candidate} if tutor else None


# -------- Tutor-owned slots --------

def list_tutor_slots(supabase, tutor_id: str) -> List[AvailabilitySlot]:
    rows = supabase \
        .table("tutor_availability") \
        .select("*") \
        .eq("tutor_id", tutor_id) \
        .order("start_time", desc=False) \
        .execute().data
    return mark_bookable(normalize_slots(rows))


def add_slot(supabase, tutor_id: str, draft: SlotDraft) -> List[AvailabilitySlot]:
    start = coerce_timestamp(draft.start)
    end = coerce_timestamp(draft.end)
    if start is None or end is None:
        raise SlotValidationError("Invalid date or time")
    if end <= start:
        raise SlotValidationError("End time must be after start time")

    supabase.table("tutor_availability").insert({
        "tutor_id": tutor_id,
        "start_time": to_iso(start),
        "end_time": to_iso(end),
        "mode": draft.mode,
        "is_emergency": draft.is_emergency,
    }).execute()
    logger.info(f"Added availability slot for tutor {tutor_id} at {to_iso(start)}")
    return list_tutor_slots(supabase, tutor_id)


def remove_slot(supabase, tutor_id: str, slot_id: str) -> bool:
    existing = supabase \
        .table("tutor_availability") \
        .select("id") \
        .eq("id", slot_id) \
        .eq("tutor_id", tutor_id) \
        .execute()
    if not existing.data:
        return False

    supabase.table("tutor_availability").delete().eq("id", slot_id).eq("tutor_id", tutor_id).execute()
    logger.info(f"Removed availability slot {slot_id} for tutor {tutor_id}")
    return True
