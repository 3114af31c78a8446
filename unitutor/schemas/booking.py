from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Literal, Optional

# --- Bookings ---
class BookingCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tutor_id: str = Field(..., alias="tutorId")
    slot_id: Optional[str] = Field(None, alias="slotId")
    start: datetime
    end: datetime
    mode: Literal["online", "in-person"] = "online"
