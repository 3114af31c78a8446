from fastapi import APIRouter, Depends, HTTPException
from unitutor.dependencies.auth import public_supabase_client, user_supabase_client
from unitutor.schemas.availability import SlotDraft
from unitutor.services.directory import (
    SlotValidationError,
    add_slot,
    list_tutor_slots,
    load_directory,
    remove_slot,
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

# -------- Directory availability --------
@router.get("")
def get_all_availability(supabase=Depends(public_supabase_client)):
    directory = load_directory(supabase)
    return {
        "fallback": directory.fallback,
        "slots": [slot.model_dump(by_alias=True) for slot in directory.slots],
    }

# -------- Own availability --------
@router.get("/me")
def get_my_availability(context=Depends(user_supabase_client)):
    supabase = context["supabase"]
    user_id = context["user_id"]

    try:
        slots = list_tutor_slots(supabase, user_id)
    except Exception as e:
        logger.error(f"Failed to load availability for {user_id}: {str(e)}")
        raise HTTPException(status_code=502, detail="Unable to load your availability")
    return [slot.model_dump(by_alias=True) for slot in slots]

@router.post("/me")
def create_my_slot(draft: SlotDraft, context=Depends(user_supabase_client)):
    supabase = context["supabase"]
    user_id = context["user_id"]

    try:
        slots = add_slot(supabase, user_id, draft)
    except SlotValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to add slot for {user_id}: {str(e)}")
        raise HTTPException(status_code=502, detail="Unable to add that slot")
    return [slot.model_dump(by_alias=True) for slot in slots]

@router.delete("/me/{slot_id}")
def delete_my_slot(slot_id: str, context=Depends(user_supabase_client)):
    supabase = context["supabase"]
    user_id = context["user_id"]

    if not remove_slot(supabase, user_id, slot_id):
        raise HTTPException(status_code=404, detail="Slot not found")
    return {"message": "Deleted"}
