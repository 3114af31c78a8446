import logging
import uuid
from typing import Any, Dict, Optional

from unitutor.schemas.booking import BookingCreate
from unitutor.services.availability import coerce_timestamp, to_iso

logger = logging.getLogger(__name__)


class BookingError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def resolve_availability_id(supabase, tutor_id: str, slot_id: Optional[str]) -> Optional[str]:
    """
    Return the slot id only when it names a persisted tutor_availability row of this tutor.
    Fallback slot ids are not uuids and have no row behind them; they resolve to None
    without a lookup, since the id column would reject them.
    """
    if not slot_id or not _is_uuid(slot_id):
        return None
    res = supabase \
        .table("tutor_availability") \
        .select("id") \
        .eq("id", slot_id) \
        .eq("tutor_id", tutor_id) \
        .execute()
    return str(res.data[0]["id"]) if res.data else None


def create_booking(supabase, student_id: str, booking: BookingCreate) -> Dict[str, Any]:
    if student_id == booking.tutor_id:
        raise BookingError("You cannot book a session with yourself!")

    start = coerce_timestamp(booking.start)
    end = coerce_timestamp(booking.end)
    if end <= start:
        raise BookingError("End time must be after start time")

    try:
        availability_id = resolve_availability_id(supabase, booking.tutor_id, booking.slot_id)
        res = supabase.table("bookings").insert({
            "student_id": student_id,
            "tutor_id": booking.tutor_id,
            "availability_id": availability_id,
            "scheduled_start": to_iso(start),
            "scheduled_end": to_iso(end),
            "mode": booking.mode,
            "status": "pending",
        }).execute()
    except Exception as e:
        logger.error(f"Booking failed: {str(e)}")
        if "relation" in str(e) or getattr(e, "code", None) == "42P01":
            raise BookingError("Bookings system not set up yet.", status_code=503) from e
        raise BookingError("Could not complete booking. Please try again.", status_code=502) from e

    logger.info(f"Booked tutor {booking.tutor_id} for student {student_id} at {to_iso(start)}")
    return res.data[0] if res.data else {}
