from fastapi import APIRouter, Depends, Query
from typing import Optional
from unitutor.dependencies.auth import public_supabase_client
from unitutor.services.directory import filter_tutors, load_directory, next_emergency_slot

router = APIRouter()

# -------- Tutor directory --------
@router.get("")
def get_tutors(
    q: Optional[str] = Query(None, description="Search name, program, year, courses or bio"),
    tutor: Optional[str] = Query(None, description="Selected tutor id"),
    supabase=Depends(public_supabase_client)
):
    directory = load_directory(supabase)
    tutors = filter_tutors(directory.tutors, q)

    selected_id = tutor or (tutors[0].id if tutors else None)
    selected_slots = [slot for slot in directory.slots if slot.tutor_id == selected_id]
    emergency = next_emergency_slot(directory.slots, directory.tutors)

    return {
        "error": directory.error,
        "fallback": directory.fallback,
        "tutors": [t.model_dump() for t in tutors],
        "selected_tutor_id": selected_id,
        "slots": [slot.model_dump(by_alias=True) for slot in selected_slots],
        "emergency": {
            "tutor": emergency["tutor"].model_dump(),
            "slot": emergency["slot"].model_dump(by_alias=True),
        } if emergency else None,
    }
