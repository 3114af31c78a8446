from pydantic import BaseModel, Field
from typing import Literal, Optional

MIN_BUDGET = 10
MAX_BUDGET = 150

# --- Help requests ---
class HelpRequestCreate(BaseModel):
    title: str
    course: str = Field(..., description="Programme or course label")
    module: Optional[str] = None
    description: str
    min_rate: float = Field(45, ge=MIN_BUDGET, le=MAX_BUDGET, description="Minimum offer in euros per session")
    mode: Literal["online", "in-person"] = "online"

class RequestStatusUpdate(BaseModel):
    status: Literal["open", "closed"]

# --- Replies and bids ---
class ReplyCreate(BaseModel):
    message: str

class BidCreate(BaseModel):
    amount: float = Field(..., description="Offer in euros")
    message: Optional[str] = None

# --- Reports ---
class ReportCreate(BaseModel):
    type: Literal["request", "reply"]
    id: str = Field(..., description="Id of the reported request or reply")
    reason: str = ""
