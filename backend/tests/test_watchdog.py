"""
Inactivity watchdog and session expiry
"""
import asyncio
import threading
from datetime import datetime, timedelta, timezone

import pytest

from controlstock.database import SessionLocal
from controlstock.models import UserSession
from controlstock.services.audit_service import audit_recorder
from controlstock.services.session_service import END_INACTIVITY, SessionManager, describe_timeout
from controlstock.services.watchdog import InactivityWatchdog

from conftest import audit_entries


def test_fires_once_without_signals():
    calls = []

    async def scenario():
        watchdog = InactivityWatchdog(0.05, lambda: calls.append(1))
        watchdog.start()
        await asyncio.sleep(0.2)
        return watchdog

    watchdog = asyncio.run(scenario())
    assert calls == [1]
    assert watchdog.fired and not watchdog.active


def test_touch_resets_countdown():
    calls = []

    async def scenario():
        watchdog = InactivityWatchdog(0.15, lambda: calls.append(1))
        watchdog.start()
        for _ in range(4):
            await asyncio.sleep(0.08)
            watchdog.touch()
        fired_while_active = list(calls)
        watchdog.cancel()
        return fired_while_active

    assert asyncio.run(scenario()) == []
    assert calls == []


def test_touch_from_worker_thread():
    calls = []

    async def scenario():
        watchdog = InactivityWatchdog(0.2, lambda: calls.append(1))
        watchdog.start()
        await asyncio.sleep(0.1)
        t = threading.Thread(target=watchdog.touch)
        t.start()
        t.join()
        await asyncio.sleep(0.15)
        before = list(calls)
        await asyncio.sleep(0.25)
        return before

    assert asyncio.run(scenario()) == []
    assert calls == [1]


def test_cancel_is_idempotent_and_safe_after_firing():
    calls = []

    async def scenario():
        watchdog = InactivityWatchdog(0.02, lambda: calls.append(1))
        watchdog.start()
        await asyncio.sleep(0.1)
        watchdog.cancel()
        watchdog.cancel()
        watchdog.touch()
        await asyncio.sleep(0.1)

    asyncio.run(scenario())
    assert calls == [1]


def test_cancel_before_timeout_prevents_firing():
    calls = []

    async def scenario():
        watchdog = InactivityWatchdog(0.05, lambda: calls.append(1))
        watchdog.start()
        watchdog.cancel()
        await asyncio.sleep(0.15)

    asyncio.run(scenario())
    assert calls == []


def test_invalid_timeout():
    async def scenario():
        InactivityWatchdog(0, lambda: None)

    with pytest.raises(ValueError):
        asyncio.run(scenario())


def test_describe_timeout():
    assert describe_timeout(900) == "15 minutes"
    assert describe_timeout(60) == "1 minute"
    assert describe_timeout(0.05) == "0.05 seconds"


def test_session_timeout_logs_out_exactly_once(db, users):
    user = users["operator"]

    async def scenario():
        manager = SessionManager(SessionLocal, audit_recorder, 0.05, loop=asyncio.get_running_loop())
        session = manager.open_session(db, user)
        await asyncio.sleep(0.25)
        return manager, session.id

    manager, session_id = asyncio.run(scenario())

    db.expire_all()
    session = db.get(UserSession, session_id)
    assert session.ended_at is not None
    assert session.end_reason == END_INACTIVITY
    logouts = audit_entries(db, "logout")
    assert len(logouts) == 1
    assert "inactivity" in logouts[0].details
    assert logouts[0].user_name == "operator"
    # Closing again is a no-op
    assert manager.close_session(db, session_id) is False
    assert len(audit_entries(db, "logout")) == 1


def test_session_activity_prevents_timeout(db, users):
    user = users["operator"]

    async def scenario():
        manager = SessionManager(SessionLocal, audit_recorder, 0.15, loop=asyncio.get_running_loop())
        session = manager.open_session(db, user)
        for _ in range(4):
            await asyncio.sleep(0.08)
            manager.touch(db, session)
        still_open = session.is_open
        manager.shutdown()
        await asyncio.sleep(0.2)
        return still_open, session.id

    still_open, session_id = asyncio.run(scenario())
    assert still_open
    db.expire_all()
    assert db.get(UserSession, session_id).ended_at is None
    assert audit_entries(db, "logout") == []


def test_expire_stale_sessions(db, users):
    user = users["supervisor"]
    manager = SessionManager(SessionLocal, audit_recorder, 900)
    long_ago = datetime.now(timezone.utc) - timedelta(minutes=30)
    stale = UserSession(user_id=user.id, started_at=long_ago, last_activity_at=long_ago)
    fresh = UserSession(
        user_id=user.id,
        started_at=datetime.now(timezone.utc),
        last_activity_at=datetime.now(timezone.utc),
    )
    db.add_all([stale, fresh])
    db.commit()

    assert manager.expire_stale_sessions(db) == 1
    db.expire_all()
    assert db.get(UserSession, stale.id).end_reason == END_INACTIVITY
    assert db.get(UserSession, fresh.id).is_open
    logouts = audit_entries(db, "logout")
    assert len(logouts) == 1
    assert "15 minutes" in logouts[0].details


class RecordingSessionManager(SessionManager):
    """Notes which thread closed each session."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.closed_on = []

    def close_session(self, db, session_id, reason="logout"):
        self.closed_on.append(threading.get_ident())
        return super().close_session(db, session_id, reason)


def test_inactivity_logout_runs_off_the_event_loop(db, users):
    user = users["operator"]

    async def scenario():
        manager = RecordingSessionManager(SessionLocal, audit_recorder, 0.05, loop=asyncio.get_running_loop())
        session = manager.open_session(db, user)
        await asyncio.sleep(0.3)
        return manager, session.id, threading.get_ident()

    manager, session_id, loop_thread = asyncio.run(scenario())
    assert len(manager.closed_on) == 1
    assert manager.closed_on[0] != loop_thread
    db.expire_all()
    assert db.get(UserSession, session_id).end_reason == END_INACTIVITY
    assert len(audit_entries(db, "logout")) == 1
