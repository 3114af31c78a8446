from fastapi import APIRouter, Depends, HTTPException
from unitutor.dependencies.auth import user_supabase_client
from unitutor.schemas.booking import BookingCreate
from unitutor.services.bookings import BookingError, create_booking

router = APIRouter()

# -------- Bookings --------
@router.post("")
def book_session(booking: BookingCreate, context=Depends(user_supabase_client)):
    supabase = context["supabase"]
    user_id = context["user_id"]

    try:
        created = create_booking(supabase, user_id, booking)
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"message": "Session booked! The tutor will confirm shortly.", "booking": created}
