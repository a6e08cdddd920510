"""
User management and authentication.
"""
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from controlstock.exceptions import Conflict, ValidationError
from controlstock.models import Movement, User
from controlstock.schemas.user import UserCreate, UserUpdate
from controlstock.services.audit_service import audit_recorder, CATEGORY_CREATE, CATEGORY_DELETE, CATEGORY_UPDATE
from controlstock.services.entity_store import EntityStore
from controlstock.services.session_service import SessionManager
from controlstock.utils.auth_internal import hash_password, validate_new_password, verify_password

logger = logging.getLogger(__name__)


class UserService:

    @staticmethod
    def find_by_username(db: Session, username: str) -> Optional[User]:
        """Case-insensitive username lookup."""
        return db.query(User).filter(func.lower(User.username) == (username or "").strip().lower()).first()

    @staticmethod
    def authenticate(db: Session, username: str, password: str) -> Optional[User]:
        """Active user with matching password, or None."""
        user = UserService.find_by_username(db, username)
        if user is None or not verify_password(password or "", user.password_hash):
            logger.info("Failed login for %r", username)
            return None
        if not user.is_active:
            logger.info("Login refused for inactive user %s", user.username)
            return None
        return user

    @staticmethod
    def list_users(db: Session) -> List[User]:
        return EntityStore(db).list(User, order=[User.username])

    @staticmethod
    def _ensure_unique(db: Session, username: Optional[str], email: Optional[str], exclude_id=None) -> None:
        if username:
            q = db.query(User.id).filter(func.lower(User.username) == username.lower())
            if exclude_id is not None:
                q = q.filter(User.id != exclude_id)
            if q.first():
                raise Conflict(f"Username {username} is already taken")
        if email:
            q = db.query(User.id).filter(func.lower(User.email) == email.lower())
            if exclude_id is not None:
                q = q.filter(User.id != exclude_id)
            if q.first():
                raise Conflict(f"Email {email} is already registered")

    @staticmethod
    def create(db: Session, actor: Optional[User], data: UserCreate) -> User:
        error = validate_new_password(data.password)
        if error:
            raise ValidationError(error, field="password")
        UserService._ensure_unique(db, data.username, data.email)
        user = User(
            username=data.username,
            email=str(data.email),
            password_hash=hash_password(data.password),
            role=data.role,
            is_active=data.is_active,
        )
        EntityStore(db).insert(user)
        if actor is not None:
            audit_recorder.append(
                actor.id, actor.username, "User created",
                f"User {user.username} created with role {user.role}", CATEGORY_CREATE,
            )
        return user

    @staticmethod
    def update(db: Session, actor: User, user_id, data: UserUpdate) -> User:
        store = EntityStore(db)
        user = store.get(User, user_id)
        changes = {}
        if data.username is not None:
            username = data.username.strip()
            if not username:
                raise ValidationError("Username must not be blank", field="username")
            if username != user.username:
                changes["username"] = username
        if data.email is not None and str(data.email) != user.email:
            changes["email"] = str(data.email)
        if data.role is not None and data.role != user.role:
            if user.id == actor.id:
                raise ValidationError("You cannot change your own role", field="role")
            changes["role"] = data.role
        if not changes:
            return user
        UserService._ensure_unique(db, changes.get("username"), changes.get("email"), exclude_id=user.id)
        old_name = user.username
        user = store.update(User, user_id, changes)
        audit_recorder.append(
            actor.id, actor.username, "User updated",
            f"User {old_name} updated: {', '.join(sorted(changes))}", CATEGORY_UPDATE,
        )
        return user

    @staticmethod
    def set_active(
        db: Session,
        actor: User,
        user_id,
        is_active: bool,
        sessions: Optional[SessionManager] = None,
    ) -> User:
        store = EntityStore(db)
        user = store.get(User, user_id)
        if not is_active and user.id == actor.id:
            raise ValidationError("You cannot deactivate your own account", field="is_active")
        user = store.update(User, user_id, {"is_active": is_active})
        if not is_active and sessions is not None:
            sessions.revoke_user_sessions(db, user.id)
        state = "activated" if is_active else "deactivated"
        audit_recorder.append(
            actor.id, actor.username, f"User {state}", f"User {user.username} {state}", CATEGORY_UPDATE
        )
        return user

    @staticmethod
    def change_password(db: Session, actor: User, user_id, new_password: str) -> User:
        error = validate_new_password(new_password)
        if error:
            raise ValidationError(error, field="new_password")
        user = EntityStore(db).update(User, user_id, {"password_hash": hash_password(new_password)})
        audit_recorder.append(
            actor.id, actor.username, "Password changed", f"Password of {user.username} changed", CATEGORY_UPDATE
        )
        return user

    @staticmethod
    def delete(db: Session, actor: User, user_id, sessions: Optional[SessionManager] = None) -> None:
        """Hard delete, refused for the acting admin and for users who recorded movements."""
        store = EntityStore(db)
        user = store.get(User, user_id)
        if user.id == actor.id:
            raise ValidationError("You cannot delete your own account", field="user_id")
        if db.query(Movement.id).filter(Movement.user_id == user.id).first():
            raise Conflict(f"User {user.username} has recorded movements; deactivate the account instead")
        if sessions is not None:
            sessions.revoke_user_sessions(db, user.id)
        username = user.username
        store.delete(User, user_id)
        logger.info("User %s deleted by %s", username, actor.username)
        audit_recorder.append(actor.id, actor.username, "User deleted", f"User {username} deleted", CATEGORY_DELETE)
