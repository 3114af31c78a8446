from pydantic import BaseModel, Field
from typing import List, Optional

# --- Profile form ---
class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    program: Optional[str] = None
    year: Optional[str] = None
    courses: Optional[str] = Field(None, description="Comma-separated course names")
    rate_cents: Optional[int] = Field(None, ge=0)
    contact: Optional[str] = None

    def course_list(self) -> Optional[List[str]]:
        if not self.courses:
            return None
        courses = [value.strip() for value in self.courses.split(",") if value.strip()]
        return courses or None

# --- Role switch ---
class RoleSwitch(BaseModel):
    role: str = Field(..., pattern="^(learner|tutor)$")
