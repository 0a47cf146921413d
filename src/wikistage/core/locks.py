"""Exclusive, time-limited page edit locks.

Each page is either unlocked or locked by one opaque token until an expiry
time. Locks auto-expire without any caller action: every locked page owns
exactly one pending timer, which is rescheduled (not duplicated) whenever
the lock is extended.
"""

import itertools
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import NamedTuple, Protocol

from wikistage.core.errors import LockConflictError
from wikistage.core.types import PageName

logger = logging.getLogger(__name__)

DEFAULT_TTL = 60.0


class Cancellable(Protocol):
    """Handle of a scheduled callback."""

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Cancellable]


def start_thread_timer(delay: float, callback: Callable[[], None]) -> Cancellable:
    """Run callback after delay seconds on a daemon thread."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class PendingTimer(NamedTuple):
    """Expiry timer of a page, tagged with the schedule it belongs to."""

    generation: int
    handle: Cancellable


@dataclass
class LockEntry:
    """Lock held on a page."""

    page: PageName
    token: bytes
    expires_at: float


class LockManager:
    """Owns the lock table and its expiry timers.

    All table reads and writes happen inside one non-reentrant critical
    section that never performs I/O. Expiry callbacks synchronise through the
    same section and re-check the live expiry before removing anything.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        *,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: TimerFactory = start_thread_timer,
    ) -> None:
        """Initialize lock manager.

        Args:
            ttl: Seconds a lock lives without renewal
            clock: Monotonic time source (seconds)
            timer_factory: Schedules expiry callbacks; must return a handle
                           with ``cancel()`` and run the callback on
                           another thread
        """
        if ttl <= 0:
            raise ValueError("lock ttl must be positive")
        self._ttl = ttl
        self._clock = clock
        self._timer_factory = timer_factory
        self._mutex = threading.Lock()
        self._entries: dict[PageName, LockEntry] = {}
        self._timers: dict[PageName, PendingTimer] = {}
        self._generations = itertools.count()

    @property
    def ttl(self) -> float:
        return self._ttl

    def acquire_or_extend(self, page: PageName, token: bytes) -> LockEntry:
        """Lock a page, or extend the lock if the token already holds it.

        Args:
            page: Page to lock
            token: Opaque holder token

        Returns:
            Copy of the lock entry after the operation

        Raises:
            LockConflictError: If the page is locked with a different token
        """
        with self._mutex:
            now = self._clock()
            entry = self._live_entry(page, now)
            if entry is not None and entry.token != token:
                raise LockConflictError("already locked")

            expires_at = now + self._ttl
            if entry is None:
                entry = LockEntry(page=page, token=token, expires_at=expires_at)
                self._entries[page] = entry
                logger.info(f"Locked {page!r}")
            else:
                entry.expires_at = expires_at
                logger.debug(f"Extended lock on {page!r}")
            self._schedule(page, self._ttl)
            return LockEntry(entry.page, entry.token, entry.expires_at)

    def release(self, page: PageName, token: bytes) -> None:
        """Release a page lock held by token.

        Releasing an unlocked page is a no-op.

        Raises:
            LockConflictError: If the page is locked with a different token
        """
        with self._mutex:
            entry = self._live_entry(page, self._clock())
            if entry is None:
                return
            if entry.token != token:
                raise LockConflictError("locked by someone else")
            self._remove(page)
            logger.info(f"Released lock on {page!r}")

    def holder(self, page: PageName) -> LockEntry | None:
        """Return a copy of the live lock on a page, if any."""
        with self._mutex:
            entry = self._live_entry(page, self._clock())
            if entry is None:
                return None
            return LockEntry(entry.page, entry.token, entry.expires_at)

    def close(self) -> None:
        """Cancel all pending expiry timers and drop every lock."""
        with self._mutex:
            for timer in self._timers.values():
                timer.handle.cancel()
            self._timers.clear()
            self._entries.clear()

    def __len__(self) -> int:
        with self._mutex:
            return len(self._entries)

    def __contains__(self, page: object) -> bool:
        with self._mutex:
            return page in self._entries

    def _live_entry(self, page: PageName, now: float) -> LockEntry | None:
        """Return the page's entry, dropping it first if already expired.

        Must be called with the mutex held.
        """
        entry = self._entries.get(page)
        if entry is not None and now >= entry.expires_at:
            self._remove(page)
            logger.info(f"Lock on {page!r} expired")
            return None
        return entry

    def _schedule(self, page: PageName, delay: float) -> None:
        """Replace the page's pending timer. Must be called with the mutex held."""
        previous = self._timers.pop(page, None)
        if previous is not None:
            previous.handle.cancel()

        # Fixed before the factory runs; the timer may fire before it returns
        generation = next(self._generations)

        def expire() -> None:
            self._expire(page, generation)

        self._timers[page] = PendingTimer(generation, self._timer_factory(delay, expire))

    def _expire(self, page: PageName, generation: int) -> None:
        with self._mutex:
            pending = self._timers.get(page)
            # A cancelled timer may still fire if it raced with rescheduling
            if pending is None or pending.generation != generation:
                return
            entry = self._entries.get(page)
            if entry is None:
                self._timers.pop(page, None)
                return
            remaining = entry.expires_at - self._clock()
            if remaining > 0:
                self._schedule(page, remaining)
                return
            self._remove(page)
            logger.info(f"Lock on {page!r} expired")

    def _remove(self, page: PageName) -> None:
        self._entries.pop(page, None)
        timer = self._timers.pop(page, None)
        if timer is not None:
            timer.handle.cancel()
