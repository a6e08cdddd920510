"""
Authentication API: login, logout and session restore.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from controlstock.database import get_db
from controlstock.dependencies import CurrentSession, get_current_user, get_session_manager
from controlstock.models import User
from controlstock.permission_config import ROLE_DISPLAY_NAMES, capabilities_for
from controlstock.schemas.auth import LoginRequest, SessionInfo, TokenResponse
from controlstock.schemas.user import UserResponse
from controlstock.services.session_service import END_LOGOUT, SessionManager
from controlstock.services.user_service import UserService
from controlstock.utils.auth_internal import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter()


def _session_info(user: User, sessions: SessionManager) -> dict:
    return {
        "user": UserResponse.model_validate(user),
        "role_display_name": ROLE_DISPLAY_NAMES.get(user.role, user.role),
        "capabilities": sorted(capabilities_for(user.role)),
        "inactivity_timeout_seconds": sessions.timeout_seconds,
    }


@router.post("/auth/login", response_model=TokenResponse)
def login(
    body: LoginRequest,
    db: Session = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
):
    """Username/password login. Opens a server-side session and returns its bearer token."""
    user = UserService.authenticate(db, body.username, body.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password, or account inactive",
        )
    session = sessions.open_session(db, user)
    token = create_access_token(str(user.id), user.role, str(session.id))
    return {"access_token": token, "token_type": "bearer", **_session_info(user, sessions)}


@router.post("/auth/logout")
def logout(
    current: CurrentSession = Depends(get_current_user),
    sessions: SessionManager = Depends(get_session_manager),
):
    sessions.close_session(current.db, current.session_id, END_LOGOUT)
    return {"status": "logged_out"}


@router.get("/auth/me", response_model=SessionInfo)
def me(
    current: CurrentSession = Depends(get_current_user),
    sessions: SessionManager = Depends(get_session_manager),
):
    """Restore a session from a stored token: 401 unless it is open and the user still active."""
    return _session_info(current.user, sessions)
