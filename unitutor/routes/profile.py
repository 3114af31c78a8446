from fastapi import APIRouter, Depends, HTTPException
from unitutor.dependencies.auth import role_session
from unitutor.schemas.profile import ProfileUpdate, RoleSwitch
from unitutor.services.role_sync import (
    NotSignedInError,
    ProfileLoadError,
    RoleSession,
    RoleSwitchError,
    RoleSyncError,
    profile_completeness,
)

router = APIRouter()


def session_state(session: RoleSession):
    return {
        "role": session.role.value,
        "phase": session.phase.value,
        "profile": session.profile.model_dump(mode="json") if session.profile else None,
        "completeness": profile_completeness(session.profile, session.role),
    }


def load_session(session: RoleSession):
    try:
        session.refresh()
    except ProfileLoadError as e:
        raise HTTPException(status_code=503, detail=e.message)
    return session


# -------- Profile --------
@router.get("/me")
def get_my_profile(session: RoleSession = Depends(role_session)):
    return session_state(load_session(session))

@router.put("/me")
def save_my_profile(update: ProfileUpdate, session: RoleSession = Depends(role_session)):
    load_session(session)
    try:
        session.save_profile(update)
    except NotSignedInError as e:
        raise HTTPException(status_code=401, detail=e.message)
    except ProfileLoadError as e:
        raise HTTPException(status_code=503, detail=e.message)
    except RoleSyncError as e:
        raise HTTPException(status_code=502, detail=e.message)
    return session_state(session)


# -------- Role --------
@router.post("/me/role")
def switch_my_role(body: RoleSwitch, session: RoleSession = Depends(role_session)):
    load_session(session)
    try:
        session.switch_role(body.role)
    except RoleSwitchError as e:
        status_code = 401 if isinstance(e.__cause__, NotSignedInError) else 502
        raise HTTPException(status_code=status_code, detail=e.message)
    return session_state(session)
