import logging
from typing import Any, Dict, List, Optional

from unitutor.schemas.request import BidCreate, HelpRequestCreate, ReplyCreate, ReportCreate

logger = logging.getLogger(__name__)

REQUEST_COLUMNS = "id, title, course, status, created_at"
REPLY_COLUMNS = "id, helper_id, message, created_at, profiles(full_name)"
BID_COLUMNS = "id, helper_id, amount_cents, message, created_at, profiles(full_name)"
DASHBOARD_LIMIT = 12
BIDS_DISABLED = "Bidding is not enabled yet. Ask an admin to create the bids table."


class MarketplaceError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(e: Exception, default: str) -> str:
    return getattr(e, "message", None) or str(e) or default


def _helper_name(row: Dict[str, Any]) -> Optional[str]:
    # The profiles join comes back as an object or a one-element list.
    profile = row.get("profiles")
    if isinstance(profile, list):
        profile = profile[0] if profile else None
    return profile.get("full_name") if isinstance(profile, dict) else None


def _flatten(row: Dict[str, Any], fields: List[str]) -> Dict[str, Any]:
    entry = {field: row.get(field) for field in fields}
    entry["helper_name"] = _helper_name(row)
    return entry


# -------- Requests --------

def create_request(supabase, author_id: str, draft: HelpRequestCreate) -> Dict[str, Any]:
    title, course, description = draft.title.strip(), draft.course.strip(), draft.description.strip()
    if not title or not course or not description:
        raise MarketplaceError("Please fill program/course, title, and description.")

    module = (draft.module or "").strip()
    if module:
        description = f"Module: {module}\n\n{description}"

    try:
        res = supabase.table("requests").insert({
            "author_id": author_id,
            "title": title,
            "course": course,
            "description": description,
            "budget_cents": round(draft.min_rate * 100),
            "mode": draft.mode,
        }).execute()
    except Exception as e:
        logger.error(f"Request creation failed: {str(e)}")
        raise MarketplaceError(_error_message(e, "Failed to post. Check fields and try again."), status_code=502) from e

    created = res.data[0] if res.data else {}
    logger.info(f"User {author_id} posted request {created.get('id')}")
    return created


def list_requests(supabase, author_id: Optional[str] = None, status: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
    query = supabase.table("requests").select(REQUEST_COLUMNS)
    if author_id:
        query = query.eq("author_id", author_id)
    if status:
        query = query.eq("status", status)
    return query.order("created_at", desc=True).limit(limit).execute().data or []


def _fetch_request(supabase, request_id: str) -> Dict[str, Any]:
    res = supabase.table("requests").select("*").eq("id", request_id).maybe_single().execute()
    row = res.data if res else None
    if not row:
        raise MarketplaceError("Request not found", status_code=404)
    return row


def get_request(supabase, request_id: str) -> Dict[str, Any]:
    """
    Load a request with its replies (newest first) and bids (cheapest first).

    A missing bids table is reported through `bids_error` instead of failing the whole page.
    """
    request = _fetch_request(supabase, request_id)

    reply_rows = supabase \
        .table("replies") \
        .select(REPLY_COLUMNS) \
        .eq("request_id", request_id) \
        .order("created_at", desc=True) \
        .execute().data or []
    replies = [_flatten(row, ["id", "helper_id", "message", "created_at"]) for row in reply_rows]

    bids_error = None
    try:
        bid_rows = supabase \
            .table("bids") \
            .select(BID_COLUMNS) \
            .eq("request_id", request_id) \
            .order("amount_cents", desc=False) \
            .execute().data or []
    except Exception as e:
        logger.warning(f"Could not load bids for request {request_id}: {str(e)}")
        message = _error_message(e, "Could not load bids")
        bids_error = BIDS_DISABLED if "public.bids" in message else message
        bid_rows = []
    bids = [_flatten(row, ["id", "helper_id", "amount_cents", "message", "created_at"]) for row in bid_rows]

    return {"request": request, "replies": replies, "bids": bids, "bids_error": bids_error}


def _require_author(supabase, request_id: str, user_id: str) -> Dict[str, Any]:
    request = _fetch_request(supabase, request_id)
    if request.get("author_id") != user_id:
        raise MarketplaceError("Only the author can change this request", status_code=403)
    return request


def set_request_status(supabase, request_id: str, user_id: str, status: str) -> Dict[str, Any]:
    _require_author(supabase, request_id, user_id)
    try:
        res = supabase.table("requests").update({"status": status}).eq("id", request_id).execute()
    except Exception as e:
        logger.error(f"Status update failed for request {request_id}: {str(e)}")
        raise MarketplaceError(_error_message(e, "Failed to update status"), status_code=502) from e

    logger.info(f"Request {request_id} is now {status}")
    return res.data[0] if res.data else {"id": request_id, "status": status}


def delete_request(supabase, request_id: str, user_id: str) -> None:
    _require_author(supabase, request_id, user_id)
    try:
        supabase.table("requests").delete().eq("id", request_id).eq("author_id", user_id).execute()
    except Exception as e:
        logger.error(f"Delete failed for request {request_id}: {str(e)}")
        message = _error_message(e, "Failed to delete request")
        if "violates row-level security" in message:
            raise MarketplaceError("Row-level security is blocking deletes of your requests.", status_code=403) from e
        raise MarketplaceError(message, status_code=502) from e
    logger.info(f"Deleted request {request_id}")


# -------- Replies and bids --------

def post_reply(supabase, request_id: str, helper_id: str, reply: ReplyCreate) -> Dict[str, Any]:
    message = reply.message.strip()
    if not message:
        raise MarketplaceError("Reply cannot be empty")

    _fetch_request(supabase, request_id)
    try:
        res = supabase.table("replies").insert({
            "request_id": request_id,
            "helper_id": helper_id,
            "message": message,
        }).execute()
    except Exception as e:
        logger.error(f"Reply failed on request {request_id}: {str(e)}")
        raise MarketplaceError(_error_message(e, "Failed to post reply"), status_code=502) from e
    return res.data[0] if res.data else {}


def submit_bid(supabase, request_id: str, helper_id: str, bid: BidCreate) -> Dict[str, Any]:
    """
    Place or replace the helper's single bid on a request.

    Amounts are euros on the way in and cents in the store. Offers below the request's
    minimum are refused.
    """
    amount_cents = round(bid.amount * 100)
    if amount_cents <= 0:
        raise MarketplaceError("Offer must be greater than €0.")

    request = _fetch_request(supabase, request_id)
    budget = request.get("budget_cents")
    if budget and amount_cents < budget:
        raise MarketplaceError(f"Minimum offer is €{budget / 100:.2f}.")

    try:
        existing = supabase \
            .table("bids") \
            .select("id") \
            .eq("request_id", request_id) \
            .eq("helper_id", helper_id) \
            .execute().data
        res = supabase.table("bids").upsert({
            "request_id": request_id,
            "helper_id": helper_id,
            "amount_cents": amount_cents,
            "message": (bid.message or "").strip() or None,
        }, on_conflict="request_id,helper_id").execute()
    except Exception as e:
        logger.error(f"Bid failed on request {request_id}: {str(e)}")
        raise MarketplaceError(_error_message(e, "Failed to submit bid"), status_code=502) from e

    logger.info(f"Helper {helper_id} bid {amount_cents} cents on request {request_id}")
    return {"bid": res.data[0] if res.data else {}, "updated": bool(existing)}


def list_activity(supabase, user_id: str) -> Dict[str, List[Dict[str, Any]]]:
    """The signed-in user's own requests, replies and bids, newest first."""
    requests = list_requests(supabase, author_id=user_id, limit=DASHBOARD_LIMIT)
    replies = supabase \
        .table("replies") \
        .select("id, request_id, message, created_at") \
        .eq("helper_id", user_id) \
        .order("created_at", desc=True) \
        .execute().data or []
    bids = supabase \
        .table("bids") \
        .select("id, request_id, helper_id, amount_cents, message, created_at, request:requests(title)") \
        .eq("helper_id", user_id) \
        .order("created_at", desc=True) \
        .execute().data or []
    return {"requests": requests, "replies": replies, "bids": bids}


# -------- Reports --------

def file_report(supabase, reporter_id: Optional[str], report: ReportCreate) -> Dict[str, Any]:
    try:
        res = supabase.table("reports").insert({
            "type": report.type,
            "target_id": report.id,
            "reason": report.reason,
            "reporter_id": reporter_id,
            "status": "open",
        }).execute()
    except Exception as e:
        logger.error(f"Report failed for {report.type} {report.id}: {str(e)}")
        raise MarketplaceError(_error_message(e, "Failed to report."), status_code=500) from e

    logger.info(f"Report filed against {report.type} {report.id}")
    return res.data[0] if res.data else {}
