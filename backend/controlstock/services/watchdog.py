"""
Inactivity watchdog: a resettable one-shot timer on an asyncio loop.
"""
import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class InactivityWatchdog:
    """
    Calls on_timeout once after `timeout` seconds without touch().

    All methods may be called from any thread (FastAPI runs sync endpoints in
    a threadpool); timer work is marshalled onto the loop. After firing or
    cancel() the watchdog is inert and further calls are no-ops.
    """

    def __init__(self, timeout: float, on_timeout: Callable[[], None], loop: Optional[asyncio.AbstractEventLoop] = None):
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = timeout
        self.on_timeout = on_timeout
        self.loop = loop or asyncio.get_running_loop()
        self._handle: Optional[asyncio.TimerHandle] = None
        self._done = False
        self.fired = False

    @property
    def active(self) -> bool:
        return not self._done

    def start(self) -> None:
        self.touch()

    def touch(self) -> None:
        """Interaction signal: restart the countdown."""
        if self._done:
            return
        if self._on_loop_thread():
            self._arm()
        else:
            self.loop.call_soon_threadsafe(self._arm)

    def cancel(self) -> None:
        if self._done:
            return
        self._done = True
        if self._on_loop_thread():
            self._disarm()
        else:
            self.loop.call_soon_threadsafe(self._disarm)

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self.loop
        except RuntimeError:
            return False

    def _arm(self) -> None:
        if self._done:
            return
        self._disarm()
        self._handle = self.loop.call_later(self.timeout, self._fire)

    def _disarm(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        if self._done:
            return
        self._done = True
        self._handle = None
        self.fired = True
        try:
            self.on_timeout()
        except Exception:
            logger.exception("Inactivity timeout callback failed")
