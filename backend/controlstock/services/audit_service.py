"""
Audit Recorder - append-only log of user actions.

append() is fire-and-forget: a failed write is logged and swallowed so it
never rolls back the mutation it describes. It uses its own session for the
same reason.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from controlstock.database import SessionLocal
from controlstock.models import AuditLog

logger = logging.getLogger(__name__)

CATEGORY_LOGIN = "login"
CATEGORY_LOGOUT = "logout"
CATEGORY_CREATE = "create"
CATEGORY_UPDATE = "update"
CATEGORY_DELETE = "delete"
CATEGORY_MOVEMENT = "movement"

CATEGORIES = (
    CATEGORY_LOGIN,
    CATEGORY_LOGOUT,
    CATEGORY_CREATE,
    CATEGORY_UPDATE,
    CATEGORY_DELETE,
    CATEGORY_MOVEMENT,
)


class AuditService:
    """Writes and queries the audit log."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def append(self, user_id, user_name: str, action: str, details: str, category: str) -> bool:
        """Append one entry. Returns False (after logging) when the write failed."""
        if category not in CATEGORIES:
            logger.warning("Unknown audit category %r for action %r", category, action)
        db = self.session_factory()
        try:
            db.add(AuditLog(
                user_id=user_id,
                user_name=user_name or "",
                action=action,
                details=details or "",
                category=category,
                timestamp=datetime.now(timezone.utc),
            ))
            db.commit()
            return True
        except SQLAlchemyError:
            db.rollback()
            logger.warning("Audit append failed: %s / %s", category, action, exc_info=True)
            return False
        finally:
            db.close()

    @staticmethod
    def list_entries(
        db: Session,
        search: Optional[str] = None,
        category: Optional[str] = None,
        on_date: Optional[date] = None,
        limit: int = 500,
    ) -> List[AuditLog]:
        """Entries newest first; search matches user name, action and details."""
        query = db.query(AuditLog)
        if search and search.strip():
            term = f"%{search.strip()}%"
            query = query.filter(or_(
                AuditLog.user_name.ilike(term),
                AuditLog.action.ilike(term),
                AuditLog.details.ilike(term),
            ))
        if category:
            query = query.filter(AuditLog.category == category)
        if on_date:
            start = datetime.combine(on_date, time.min, tzinfo=timezone.utc)
            query = query.filter(AuditLog.timestamp >= start, AuditLog.timestamp < start + timedelta(days=1))
        return query.order_by(AuditLog.timestamp.desc()).limit(limit).all()


# Process-wide recorder on the application database
audit_recorder = AuditService(SessionLocal)
