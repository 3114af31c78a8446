from fastapi import Depends, Header, HTTPException
from unitutor.services.supabase import SupabaseConfigError, get_public_client, new_supabase_client
from unitutor.services.role_sync import RoleSession
import time
import logging

logger = logging.getLogger(__name__)

async def user_supabase_client(authorization: str = Header(...)):
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid token format")

    token = authorization.split(" ")[1]

    try:
        supabase = new_supabase_client()
    except SupabaseConfigError:
        raise HTTPException(status_code=500, detail="Server configuration error")

    try:
        start_time = time.time()
        logger.info("Validating token with Supabase")
        user_res = supabase.auth.get_user(token)
        end_time = time.time()
        logger.info(f"Token validation completed in {end_time - start_time:.2f} seconds")
    except Exception as e:
        logger.error(f"Supabase token validation error: {str(e)}")
        if "timed out" in str(e).lower():
            raise HTTPException(
                status_code=504,
                detail="Connection to authentication service timed out. Please try again later."
            )
        raise HTTPException(status_code=401, detail=f"Authentication error: {str(e)}")

    if not user_res or not user_res.user:
        logger.warning("User not found after successful token validation")
        raise HTTPException(status_code=401, detail="User not found")

    # Run table queries as the user so row-level security applies
    supabase.postgrest.auth(token)

    logger.info(f"Successfully authenticated user: {user_res.user.id}")
    return {
        "supabase": supabase,
        "user_id": user_res.user.id,
        "user": user_res.user,
        "token": token,
    }

def public_supabase_client():
    try:
        return get_public_client()
    except SupabaseConfigError:
        raise HTTPException(status_code=500, detail="Server configuration error")

def role_session(context=Depends(user_supabase_client)) -> RoleSession:
    return RoleSession(context["supabase"], access_token=context["token"])
