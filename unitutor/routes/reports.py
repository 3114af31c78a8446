from fastapi import APIRouter, Depends, HTTPException
from unitutor.dependencies.auth import user_supabase_client
from unitutor.schemas.request import ReportCreate
from unitutor.services.marketplace import MarketplaceError, file_report

router = APIRouter()

# -------- Reports --------
@router.post("")
def report_content(report: ReportCreate, context=Depends(user_supabase_client)):
    try:
        file_report(context["supabase"], context["user_id"], report)
    except MarketplaceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"ok": True}
