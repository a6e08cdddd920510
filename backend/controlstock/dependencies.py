"""
Request-scoped authentication and authorization dependencies.

get_current_user resolves the bearer token to an open server-side session,
counts the request as activity for the inactivity watchdog and hands the
route an explicit CurrentSession (user, session id, db session).
"""
import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from controlstock.database import get_db
from controlstock.exceptions import AuthorizationDenied
from controlstock.models import User
from controlstock.permission_config import can_access
from controlstock.services.session_service import SessionManager
from controlstock.utils.auth_internal import CLAIM_JTI, CLAIM_SUB, decode_access_token

logger = logging.getLogger(__name__)


@dataclass
class CurrentSession:
    user: User
    session_id: UUID
    db: Session


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def bearer_token(request: Request):
    auth = request.headers.get("Authorization")
    return (auth[7:].strip() if auth and auth.startswith("Bearer ") else None) or None


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
) -> CurrentSession:
    """
    Require a valid token bound to an open, non-idle session of an active user.
    Raises 401 otherwise.
    """
    token = bearer_token(request)
    if not token:
        raise _unauthorized("Not authenticated")
    payload = decode_access_token(token)
    if not payload:
        raise _unauthorized("Invalid token")
    try:
        user_id = UUID(str(payload[CLAIM_SUB]))
        session_id = UUID(str(payload[CLAIM_JTI]))
    except (ValueError, TypeError):
        raise _unauthorized("Invalid token")

    session = sessions.validate(db, session_id, user_id)
    if session is None:
        raise _unauthorized("Session expired or closed")
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        sessions.close_session(db, session_id, reason="revoked")
        raise _unauthorized("User not found or inactive")

    sessions.touch(db, session)
    return CurrentSession(user=user, session_id=session_id, db=db)


def require_capability(capability: str):
    """Dependency factory: the current user's role must grant capability."""
    def checker(current: CurrentSession = Depends(get_current_user)) -> CurrentSession:
        if not can_access(current.user.role, capability):
            logger.info("%s (%s) denied %s", current.user.username, current.user.role, capability)
            raise AuthorizationDenied(f"Your role does not allow {capability.replace('_', ' ')}")
        return current
    return checker
