"""Per-attempt countdown that fires a callback when the time limit runs out."""

from __future__ import annotations

import logging
from threading import Event, Lock, Thread
from typing import Callable

from quizclock.constants.quiz_constants import TIMER_TICK_SECONDS

logger = logging.getLogger(__name__)


def format_remaining(seconds: int) -> str:
    """Render a number of seconds as ``m:ss`` for countdown displays."""
    seconds = max(0, int(seconds))
    minutes, remaining = divmod(seconds, 60)
    return f"{minutes}:{remaining:02d}"


class AttemptCountdown:
    """Decrements once per tick and calls ``on_expire`` exactly once at zero.

    The countdown is advisory: it only counts its own ticks and never looks at
    wall-clock time, so a suspended process simply pauses it.
    """

    def __init__(
        self,
        total_seconds: int,
        on_expire: Callable[[], None],
        tick_seconds: float = TIMER_TICK_SECONDS,
        name: str = "AttemptCountdown",
    ) -> None:
        if total_seconds <= 0:
            raise ValueError("Countdown length must be positive.")
        self._remaining = total_seconds
        self._on_expire = on_expire
        self._tick_seconds = tick_seconds
        self._name = name
        self._lock = Lock()
        self._stopped = Event()
        self._expired = False
        self._thread: Thread | None = None

    @property
    def remaining_seconds(self) -> int:
        with self._lock:
            return self._remaining

    @property
    def expired(self) -> bool:
        with self._lock:
            return self._expired

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Countdown already started.")
        self._thread = Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        """Stop ticking; a cancelled countdown never fires."""
        self._stopped.set()

    def tick(self) -> int:
        """Advance by one second and return the remaining time."""
        with self._lock:
            if self._stopped.is_set() or self._expired:
                return self._remaining
            self._remaining -= 1
            fire = self._remaining <= 0
            if fire:
                self._remaining = 0
                self._expired = True
                self._stopped.set()
            remaining = self._remaining
        if fire:
            self._fire()
        return remaining

    def _fire(self) -> None:
        logger.info("%s reached zero", self._name)
        try:
            self._on_expire()
        except Exception:
            logger.exception("%s expiry callback failed", self._name)

    def _run(self) -> None:
        while not self._stopped.wait(self._tick_seconds):
            self.tick()
