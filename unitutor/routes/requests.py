from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Literal, Optional
from unitutor.dependencies.auth import user_supabase_client
from unitutor.schemas.request import BidCreate, HelpRequestCreate, ReplyCreate, RequestStatusUpdate
from unitutor.services.marketplace import (
    MarketplaceError,
    create_request,
    delete_request,
    get_request,
    list_activity,
    list_requests,
    post_reply,
    set_request_status,
    submit_bid,
)

router = APIRouter()


# -------- Requests --------
@router.post("")
def post_request(draft: HelpRequestCreate, context=Depends(user_supabase_client)):
    try:
        return create_request(context["supabase"], context["user_id"], draft)
    except MarketplaceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

@router.get("")
def get_requests(
    mine: bool = Query(False, description="Only requests posted by the signed-in user"),
    status: Optional[Literal["open", "closed"]] = Query(None),
    context=Depends(user_supabase_client)
):
    author_id = context["user_id"] if mine else None
    return list_requests(context["supabase"], author_id=author_id, status=status)

@router.get("/activity")
def get_my_activity(context=Depends(user_supabase_client)):
    return list_activity(context["supabase"], context["user_id"])

@router.get("/{request_id}")
def get_request_detail(request_id: str, context=Depends(user_supabase_client)):
    try:
        return get_request(context["supabase"], request_id)
    except MarketplaceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

@router.put("/{request_id}/status")
def update_request_status(request_id: str, body: RequestStatusUpdate, context=Depends(user_supabase_client)):
    try:
        return set_request_status(context["supabase"], request_id, context["user_id"], body.status)
    except MarketplaceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

@router.delete("/{request_id}")
def remove_request(request_id: str, context=Depends(user_supabase_client)):
    try:
        delete_request(context["supabase"], request_id, context["user_id"])
    except MarketplaceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"message": "Request deleted"}


# -------- Replies and bids --------
@router.post("/{request_id}/replies")
def reply_to_request(request_id: str, reply: ReplyCreate, context=Depends(user_supabase_client)):
    try:
        created = post_reply(context["supabase"], request_id, context["user_id"], reply)
    except MarketplaceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"message": "Reply posted", "reply": created}

@router.post("/{request_id}/bids")
def bid_on_request(request_id: str, bid: BidCreate, context=Depends(user_supabase_client)):
    try:
        result = submit_bid(context["supabase"], request_id, context["user_id"], bid)
    except MarketplaceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"message": "Bid updated" if result["updated"] else "Bid submitted", "bid": result["bid"]}
