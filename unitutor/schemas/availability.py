from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Literal

# --- Availability slots ---
class SlotDraft(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start: datetime
    end: datetime
    mode: Literal["online", "in-person"] = "online"
    is_emergency: bool = Field(False, alias="isEmergency")
