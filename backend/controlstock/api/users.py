"""
User Management API (administrators only)
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from controlstock.dependencies import CurrentSession, get_session_manager, require_capability
from controlstock.models import User
from controlstock.permission_config import MANAGE_USERS
from controlstock.schemas.user import (
    PasswordChangeRequest,
    UserActivateRequest,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from controlstock.services.entity_store import EntityStore
from controlstock.services.session_service import SessionManager
from controlstock.services.user_service import UserService

router = APIRouter()

_admin = require_capability(MANAGE_USERS)


@router.get("/users", response_model=List[UserResponse])
def list_users(current: CurrentSession = Depends(_admin)):
    return UserService.list_users(current.db)


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(user_id: UUID, current: CurrentSession = Depends(_admin)):
    return EntityStore(current.db).get(User, user_id)


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(body: UserCreate, current: CurrentSession = Depends(_admin)):
    return UserService.create(current.db, current.user, body)


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(user_id: UUID, body: UserUpdate, current: CurrentSession = Depends(_admin)):
    return UserService.update(current.db, current.user, user_id, body)


@router.patch("/users/{user_id}/active", response_model=UserResponse)
def set_user_active(
    user_id: UUID,
    body: UserActivateRequest,
    current: CurrentSession = Depends(_admin),
    sessions: SessionManager = Depends(get_session_manager),
):
    """Deactivating a user also closes their open sessions."""
    return UserService.set_active(current.db, current.user, user_id, body.is_active, sessions=sessions)


@router.put("/users/{user_id}/password", response_model=UserResponse)
def change_password(user_id: UUID, body: PasswordChangeRequest, current: CurrentSession = Depends(_admin)):
    return UserService.change_password(current.db, current.user, user_id, body.new_password)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: UUID,
    current: CurrentSession = Depends(_admin),
    sessions: SessionManager = Depends(get_session_manager),
):
    UserService.delete(current.db, current.user, user_id, sessions=sessions)
