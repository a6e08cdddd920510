"""
Session Manager - server-side login sessions with inactivity expiry.

Each open session has one InactivityWatchdog on the application loop. Every
authenticated request touches it; when it expires the session is closed on a
worker thread with reason "inactivity" and a single logout audit entry.
Sessions are also checked against last_activity_at on each request and at
startup, so a session idle through a restart is not resurrected.
"""
import asyncio
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Set
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from controlstock.exceptions import StoreIOError
from controlstock.models import User, UserSession
from controlstock.services.audit_service import AuditService, CATEGORY_LOGIN, CATEGORY_LOGOUT
from controlstock.services.watchdog import InactivityWatchdog

logger = logging.getLogger(__name__)

END_LOGOUT = "logout"
END_INACTIVITY = "inactivity"
END_REVOKED = "revoked"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def describe_timeout(seconds: float) -> str:
    if seconds >= 60 and seconds % 60 == 0:
        minutes = int(seconds // 60)
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    return f"{seconds:g} seconds"


class SessionManager:
    """Opens, touches and closes UserSession rows and owns their watchdogs."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        audit: AuditService,
        timeout_seconds: float,
        loop=None,
    ):
        self.session_factory = session_factory
        self.audit = audit
        self.timeout_seconds = timeout_seconds
        # Without a loop no watchdogs run; expiry then relies on the per-request check
        self.loop = loop
        self._watchdogs: Dict[UUID, InactivityWatchdog] = {}
        self._pending: Set[asyncio.Future] = set()
        self._lock = threading.Lock()

    @property
    def timeout_label(self) -> str:
        return describe_timeout(self.timeout_seconds)

    def open_session(self, db: Session, user: User) -> UserSession:
        now = datetime.now(timezone.utc)
        session = UserSession(user_id=user.id, started_at=now, last_activity_at=now)
        db.add(session)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Could not open session for %s", user.username)
            raise StoreIOError("Could not open session") from e
        db.refresh(session)
        self._arm(session.id)
        logger.info("User %s logged in (session %s)", user.username, session.id)
        self.audit.append(user.id, user.username, "Login", f"User {user.username} logged in", CATEGORY_LOGIN)
        return session

    def is_stale(self, session: UserSession, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        last = as_utc(session.last_activity_at) or as_utc(session.started_at)
        return last is not None and now - last >= timedelta(seconds=self.timeout_seconds)

    def validate(self, db: Session, session_id, user_id) -> Optional[UserSession]:
        """Open, fresh session belonging to user_id, or None. Stale sessions are closed on the way."""
        session = db.get(UserSession, session_id)
        if session is None or session.user_id != user_id or not session.is_open:
            return None
        if self.is_stale(session):
            self.close_session(db, session.id, END_INACTIVITY)
            return None
        return session

    def touch(self, db: Session, session: UserSession) -> None:
        """Interaction signal: reset the watchdog and record the activity time."""
        session.last_activity_at = datetime.now(timezone.utc)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Could not record activity for session %s", session.id)
            raise StoreIOError("Could not update session") from e
        with self._lock:
            watchdog = self._watchdogs.get(session.id)
        if watchdog is not None:
            watchdog.touch()
        else:
            # Session opened before a restart
            self._arm(session.id)

    def close_session(self, db: Session, session_id, reason: str = END_LOGOUT) -> bool:
        """
        End the session and append one logout audit entry.
        Returns False if the session was already closed (nothing is written).
        """
        self._cancel(session_id)
        session = db.get(UserSession, session_id)
        if session is None or not session.is_open:
            return False
        session.ended_at = datetime.now(timezone.utc)
        session.end_reason = reason
        user = session.user
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Could not close session %s", session_id)
            raise StoreIOError("Could not close session") from e

        username = user.username if user is not None else ""
        if reason == END_INACTIVITY:
            details = f"Session closed automatically after inactivity ({self.timeout_label})"
            logger.info("Session %s of %s expired after inactivity", session_id, username)
        elif reason == END_REVOKED:
            details = f"Session of {username} revoked"
            logger.info("Session %s of %s revoked", session_id, username)
        else:
            details = f"User {username} logged out"
            logger.info("User %s logged out (session %s)", username, session_id)
        self.audit.append(session.user_id, username, "Logout", details, CATEGORY_LOGOUT)
        return True

    def expire_stale_sessions(self, db: Session) -> int:
        """Close every open session idle for longer than the timeout."""
        now = datetime.now(timezone.utc)
        open_sessions = db.query(UserSession).filter(UserSession.ended_at.is_(None)).all()
        closed = 0
        for session in open_sessions:
            if self.is_stale(session, now) and self.close_session(db, session.id, END_INACTIVITY):
                closed += 1
        if closed:
            logger.info("Expired %d stale session(s)", closed)
        return closed

    def revoke_user_sessions(self, db: Session, user_id) -> int:
        """Close all open sessions of a user (deactivation, deletion)."""
        ids = [
            s.id for s in db.query(UserSession)
            .filter(UserSession.user_id == user_id, UserSession.ended_at.is_(None))
            .all()
        ]
        return sum(1 for sid in ids if self.close_session(db, sid, END_REVOKED))

    def shutdown(self) -> None:
        with self._lock:
            watchdogs = list(self._watchdogs.values())
            self._watchdogs.clear()
        for watchdog in watchdogs:
            watchdog.cancel()

    def watchdog_for(self, session_id) -> Optional[InactivityWatchdog]:
        with self._lock:
            return self._watchdogs.get(session_id)

    def _arm(self, session_id) -> None:
        if self.loop is None or self.loop.is_closed():
            return
        watchdog = InactivityWatchdog(self.timeout_seconds, lambda: self._on_timeout(session_id), loop=self.loop)
        with self._lock:
            previous = self._watchdogs.pop(session_id, None)
            self._watchdogs[session_id] = watchdog
        if previous is not None:
            previous.cancel()
        watchdog.start()

    def _cancel(self, session_id) -> None:
        with self._lock:
            watchdog = self._watchdogs.pop(session_id, None)
        if watchdog is not None:
            watchdog.cancel()

    def _on_timeout(self, session_id) -> None:
        with self._lock:
            self._watchdogs.pop(session_id, None)
        # Runs on the loop thread; the database work goes to the default executor
        future = self.loop.run_in_executor(None, self._expire, session_id)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._expired)

    def _expire(self, session_id) -> bool:
        db = self.session_factory()
        try:
            return self.close_session(db, session_id, END_INACTIVITY)
        finally:
            db.close()

    def _expired(self, future) -> None:
        with self._lock:
            self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Inactivity logout failed", exc_info=exc)
