import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from unitutor.schemas.profile import ProfileUpdate

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = "id, full_name, program, year, courses, rate_cents, contact, preferred_role"
DIRECTORY_FIELDS = ("full_name", "program", "year", "courses", "rate_cents", "contact")


class Role(str, Enum):
    LEARNER = "learner"
    TUTOR = "tutor"


class RolePhase(str, Enum):
    LEARNER = "learner"
    TUTOR = "tutor"
    PENDING = "pending"


# --- Errors ---

class RoleSyncError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ProfileLoadError(RoleSyncError):
    pass


class NotSignedInError(RoleSyncError):
    pass


class RoleSwitchError(RoleSyncError):
    pass


# --- Profiles ---

def can_list(courses: Optional[List[str]], contact: Optional[str]) -> bool:
    return bool(courses) and bool(contact)


class RoleProfile(BaseModel):
    id: str
    full_name: Optional[str] = None
    program: Optional[str] = None
    year: Optional[str] = None
    courses: Optional[List[str]] = None
    rate_cents: Optional[int] = Field(None, ge=0)
    contact: Optional[str] = None
    preferred_role: Role = Role.LEARNER

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RoleProfile":
        # Anything but the literal "tutor" is a learner, legacy values included.
        preferred = Role.TUTOR if row.get("preferred_role") == Role.TUTOR.value else Role.LEARNER
        courses = row.get("courses")
        rate = row.get("rate_cents")
        return cls(
            id=str(row["id"]),
            full_name=row.get("full_name"),
            program=row.get("program"),
            year=None if row.get("year") is None else str(row.get("year")),
            courses=list(courses) if isinstance(courses, list) else None,
            rate_cents=rate if isinstance(rate, int) and not isinstance(rate, bool) and rate >= 0 else None,
            contact=row.get("contact"),
            preferred_role=preferred,
        )

    def is_listable(self) -> bool:
        return can_list(self.courses, self.contact)


def directory_payload(user_id: str, profile: Optional[RoleProfile], is_listed: bool) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"id": user_id}
    for field in DIRECTORY_FIELDS:
        payload[field] = getattr(profile, field) if profile else None
    payload["is_listed"] = is_listed
    return payload


def profile_completeness(profile: Optional[RoleProfile], role: Role) -> int:
    if profile is None:
        return 0
    fields = [profile.full_name, profile.program, profile.year, profile.contact]
    if role == Role.TUTOR:
        fields += [profile.courses, profile.rate_cents]
    filled = len([value for value in fields if value or value == 0])
    return round(filled / len(fields) * 100)


class RoleSession:
    """
    Client-side view of the signed-in principal's role and profile.

    `refresh()` is the only place local state is overwritten from the store. `switch_role()`
    flips the local role optimistically, writes the profile and directory rows in order, and
    rolls the local role back if any of those writes fails. Remote writes that already landed
    are left as they are; the next `refresh()` reconciles.
    """

    def __init__(self, supabase, access_token: Optional[str] = None):
        self.supabase = supabase
        self.access_token = access_token
        self.role: Role = Role.LEARNER
        self.profile: Optional[RoleProfile] = None
        self.loading = False
        self.switching = False

    @property
    def phase(self) -> RolePhase:
        if self.switching:
            return RolePhase.PENDING
        return RolePhase(self.role.value)

    def _principal(self):
        res = self.supabase.auth.get_user(self.access_token)
        return res.user if res else None

    def _reset(self) -> None:
        self.profile = None
        self.role = Role.LEARNER

    def set_local(self, next_role: Role) -> None:
        """Local-only override for theming; does not touch the store."""
        self.role = Role(next_role)

    def sign_out(self) -> None:
        self._reset()
        self.access_token = None

    # -------- Refresh --------

    def refresh(self) -> Optional[RoleProfile]:
        self.loading = True
        try:
            user = self._principal()
            if user is None:
                self._reset()
                return None

            res = self.supabase \
                .table("profiles") \
                .select(PROFILE_COLUMNS) \
                .eq("id", user.id) \
                .maybe_single() \
                .execute()
            row = res.data if res else None

            if not row:
                row = self._create_profile(user)

            profile = RoleProfile.from_row(row)
        except Exception as e:
            logger.error(f"Failed to refresh profile: {str(e)}")
            raise ProfileLoadError("Unable to load your profile") from e
        finally:
            self.loading = False

        self.profile = profile
        self.role = profile.preferred_role
        return profile

    def _create_profile(self, user) -> Dict[str, Any]:
        metadata = getattr(user, "user_metadata", None) or {}
        seed = {
            "id": user.id,
            "full_name": metadata.get("full_name"),
            "program": None,
            "year": None,
            "courses": None,
            "rate_cents": None,
            "contact": getattr(user, "email", None),
            "preferred_role": Role.LEARNER.value,
        }
        logger.info(f"Creating default profile for user {user.id}")
        res = self.supabase.table("profiles").upsert(seed, on_conflict="id").execute()
        return res.data[0] if res.data else seed

    # -------- Switch role --------

    def switch_role(self, next_role: Role) -> None:
        next_role = Role(next_role)
        if self.switching or self.role == next_role:
            return

        self.switching = True
        previous = self.role
        snapshot = self.profile.model_copy(deep=True) if self.profile else None
        self.role = next_role

        try:
            user = self._principal()
            if user is None:
                raise NotSignedInError("You need to be signed in to switch modes.")

            self.supabase \
                .table("profiles") \
                .upsert({"id": user.id, "preferred_role": next_role.value}, on_conflict="id") \
                .execute()

            if next_role == Role.TUTOR:
                listed = snapshot.is_listable() if snapshot else False
                self.supabase \
                    .table("public_profiles") \
                    .upsert(directory_payload(user.id, snapshot, listed), on_conflict="id") \
                    .execute()
            else:
                self.supabase \
                    .table("public_profiles") \
                    .update({"is_listed": False}) \
                    .eq("id", user.id) \
                    .execute()
        except Exception as e:
            logger.error(f"Failed to switch role to {next_role.value}: {str(e)}")
            self.role = previous
            self.switching = False
            message = getattr(e, "message", None) or str(e) or "Could not switch role"
            raise RoleSwitchError(message) from e

        self.switching = False
        logger.info(f"Switched role for user {user.id} to {next_role.value}")
        if self.profile:
            self.profile = self.profile.model_copy(update={"preferred_role": next_role})
        else:
            self.profile = RoleProfile(id=user.id, preferred_role=next_role)

        try:
            self.refresh()
        except ProfileLoadError:
            logger.warning(f"Role switched for user {user.id} but profile refresh failed")

    # -------- Save profile --------

    def save_profile(self, update: ProfileUpdate) -> Optional[RoleProfile]:
        try:
            user = self._principal()
        except Exception as e:
            logger.error(f"Failed to resolve user before saving profile: {str(e)}")
            raise RoleSyncError("Failed to save profile") from e
        if user is None:
            raise NotSignedInError("You need to be signed in to save your profile.")

        courses = update.course_list()
        payload = {
            "full_name": update.full_name or None,
            "program": update.program or None,
            "year": update.year or None,
            "courses": courses,
            "rate_cents": update.rate_cents,
            "contact": update.contact or None,
            "preferred_role": self.role.value,
        }

        try:
            self.supabase.table("profiles").update(payload).eq("id", user.id).execute()
            if self.role == Role.TUTOR:
                directory = {"id": user.id, **{field: payload[field] for field in DIRECTORY_FIELDS}}
                directory["is_listed"] = can_list(courses, payload["contact"])
                self.supabase.table("public_profiles").upsert(directory, on_conflict="id").execute()
        except Exception as e:
            logger.error(f"Failed to save profile for user {user.id}: {str(e)}")
            raise RoleSyncError("Failed to save profile") from e

        logger.info(f"Saved profile for user {user.id}")
        return self.refresh()
