import logging
import math
import os
from collections.abc import Mapping
from datetime import datetime, time, timedelta, timezone
from typing import Any, Iterable, List, Literal, Optional
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

SlotMode = Literal["online", "in-person"]

# Upstream rows have gone through several shapes; first present key wins.
TUTOR_ID_KEYS = ("tutor_id", "tutorId", "profile_id", "helper_id", "user_id")
START_KEYS = ("start_time", "startTime", "start", "from", "start_utc")
END_KEYS = ("end_time", "endTime", "end", "to", "end_utc")
EMERGENCY_KEYS = ("is_emergency", "priority", "isEmergency")

PLACEHOLDER_TUTOR_IDS = ["demo-1", "demo-2"]
MAX_FALLBACK_TUTORS = 6
DEFAULT_TIMEZONE = "Europe/Berlin"
# dateutil fills missing date parts from `default`; two distinct defaults expose them.
PARSE_DEFAULTS = (datetime(2000, 1, 1), datetime(2004, 2, 2))


class AvailabilitySlot(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    tutor_id: str = Field(..., alias="tutorId")
    start: str
    end: str
    mode: SlotMode = "online"
    is_emergency: bool = Field(False, alias="isEmergency")
    # Only slots read back from tutor_availability rows may be booked against.
    bookable: bool = Field(False, exclude=True)


def campus_timezone() -> ZoneInfo:
    return ZoneInfo(os.getenv("TUTOR_TIMEZONE", DEFAULT_TIMEZONE))


def coerce_timestamp(value: Any) -> Optional[datetime]:
    """
    Turn a datetime, an epoch in milliseconds or a date string into an aware datetime.
    Returns None for anything that can't be read as an instant, including strings
    without an explicit year, month and day.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        try:
            parsed, other = (date_parser.parse(value, default=default) for default in PARSE_DEFAULTS)
        except (ValueError, OverflowError):
            return None
        # Time-only or partial strings would otherwise pick up a date from the default.
        if parsed != other:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso(value: datetime) -> str:
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S") + f".{utc.microsecond // 1000:03d}Z"


def _first_present(data: Mapping, keys: Iterable[str]) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def normalize_slot(raw: Any) -> Optional[AvailabilitySlot]:
    """
    Map a raw availability record onto the canonical slot shape.

    Records missing a tutor, a start or an end, or carrying unparseable times, are dropped
    by returning None so callers can filter a list and keep the rest.
    """
    if not isinstance(raw, Mapping):
        return None

    tutor_id = _first_present(raw, TUTOR_ID_KEYS)
    start_value = _first_present(raw, START_KEYS)
    end_value = _first_present(raw, END_KEYS)
    if tutor_id is None or start_value is None or end_value is None:
        return None

    start = coerce_timestamp(start_value)
    end = coerce_timestamp(end_value)
    if start is None or end is None:
        return None

    mode_value = raw.get("mode")
    mode_value = mode_value.lower() if isinstance(mode_value, str) else ""
    mode = "in-person" if mode_value in ("in-person", "in_person") else "online"

    start_iso = to_iso(start)
    raw_id = raw.get("id")
    slot_id = str(raw_id) if raw_id is not None else f"{tutor_id}-{start_iso}"

    return AvailabilitySlot(
        id=slot_id,
        tutor_id=str(tutor_id),
        start=start_iso,
        end=to_iso(end),
        mode=mode,
        is_emergency=bool(_first_present(raw, EMERGENCY_KEYS)),
    )


def normalize_slots(rows: Optional[Iterable[Any]]) -> List[AvailabilitySlot]:
    slots = [normalize_slot(row) for row in rows or []]
    return [slot for slot in slots if slot is not None]


def mark_bookable(slots: Iterable[AvailabilitySlot]) -> List[AvailabilitySlot]:
    return [slot.model_copy(update={"bookable": True}) for slot in slots]


def generate_fallback_slots(
    tutor_ids: List[str],
    days: int = 10,
    now: Optional[datetime] = None,
    tz: Optional[ZoneInfo] = None,
) -> List[AvailabilitySlot]:
    """
    Build a demo schedule for when the store has no availability rows.

    One hour-long slot per tutor per day, for at most six tutors, starting at
    10:00, 12:00, 14:00 or 16:00 campus time depending on the tutor's position.
    Only the first tutor's first day is flagged as an emergency slot.
    These slots are display-only and never bookable.
    """
    ids = list(tutor_ids) if tutor_ids else list(PLACEHOLDER_TUTOR_IDS)
    tz = tz or campus_timezone()
    base = (now or datetime.now(tz)).astimezone(tz)

    slots = []
    for index, tutor_id in enumerate(ids[:MAX_FALLBACK_TUTORS]):
        hour = 10 + (index % 4) * 2
        for day_offset in range(days):
            day = base.date() + timedelta(days=day_offset)
            start = datetime.combine(day, time(hour), tzinfo=tz)
            end = datetime.combine(day, time(hour + 1), tzinfo=tz)
            slots.append(
                AvailabilitySlot(
                    id=f"{tutor_id}-{day_offset}-{index}",
                    tutor_id=str(tutor_id),
                    start=to_iso(start),
                    end=to_iso(end),
                    mode="online" if index % 2 == 0 else "in-person",
                    is_emergency=day_offset == 0 and index == 0,
                )
            )

    logger.info(f"Generated {len(slots)} fallback slots for {min(len(ids), MAX_FALLBACK_TUTORS)} tutors")
    return slots
