"""Expiring entries: token generation, timers and restart recovery.

A timeout entry is an ordinary value stored in the timeouts table under its
id. The scheduler only tracks the timers; it never touches documents. Each
timer has a handle registered under ``(table, id)``. Cancelling removes the
handle, and a timer whose handle is no longer registered does nothing when
it fires, so a stale timer never expires a newer entry that reused its id.
"""

import logging
import secrets
import threading
import time
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, ClassVar, TypeGuard

from ._constants import MIN_TIMER_DELAY_MS, TOKEN_LENGTH

if TYPE_CHECKING:
    from ._types import JSONValue, TimeoutEntry

logger = logging.getLogger(__name__)

__all__ = [
    "TimerHandle",
    "TimeoutScheduler",
    "generate_token",
    "is_timeout_entry",
    "make_timeout_entry",
    "now_ms",
]

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits: list[str] = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_token(length: int = TOKEN_LENGTH) -> str:
    """Generate an id for a timeout entry.

    The token is the current time in base 36 followed by ``length - 2``
    random base-36 characters. Tokens generated in the same millisecond can
    collide; callers that need guaranteed uniqueness supply their own ids.
    """
    suffix = "".join(secrets.choice(_BASE36) for _ in range(max(length - 2, 0)))
    return _to_base36(now_ms()) + suffix


def make_timeout_entry(
    value: "JSONValue", duration_ms: int, entry_id: str
) -> "TimeoutEntry":
    """Build the entry stored for a new timeout."""
    return {
        "expires": now_ms() + duration_ms,
        "value": value,
        "time": duration_ms,
        "id": entry_id,
    }


def is_timeout_entry(value: object) -> "TypeGuard[TimeoutEntry]":
    """Check that a stored value has the shape of a timeout entry."""
    if not isinstance(value, dict):
        return False
    expires = value.get("expires")
    return isinstance(expires, int) and not isinstance(expires, bool)


class TimerHandle:
    """Cancellation handle for one scheduled expiration."""

    __slots__: ClassVar[tuple[str, ...]] = ("_timer", "cancelled", "entry_id", "table")

    table: str
    entry_id: str
    cancelled: bool
    _timer: threading.Timer | None

    def __init__(self, table: str, entry_id: str) -> None:
        self.table = table
        self.entry_id = entry_id
        self.cancelled = False
        self._timer = None

    def __repr__(self) -> str:
        return (
            f"TimerHandle(table={self.table!r}, entry_id={self.entry_id!r}, "
            f"cancelled={self.cancelled})"
        )

    def cancel(self) -> None:
        self.cancelled = True
        if self._timer is not None:
            self._timer.cancel()


class TimeoutScheduler:
    """One-shot timers for timeout entries, keyed by table and id."""

    __slots__: ClassVar[tuple[str, ...]] = ("_fire", "_handles", "_lock")

    _fire: "Callable[[TimerHandle], None]"
    _handles: dict[tuple[str, str], TimerHandle]
    _lock: threading.Lock

    def __init__(self, fire: "Callable[[TimerHandle], None]") -> None:
        self._fire = fire
        self._handles = {}
        self._lock = threading.Lock()

    def schedule(self, table: str, entry_id: str, delay_ms: int) -> TimerHandle:
        """Start a timer, replacing any timer already scheduled for the id.

        The delay is clamped to at least one millisecond.
        """
        delay_ms = max(delay_ms, MIN_TIMER_DELAY_MS)
        handle = TimerHandle(table, entry_id)
        timer = threading.Timer(delay_ms / 1000, self._run, args=(handle,))
        timer.daemon = True
        timer.name = f"jsonshelf-timeout-{entry_id}"
        handle._timer = timer  # pyright: ignore[reportPrivateUsage]
        with self._lock:
            previous = self._handles.pop((table, entry_id), None)
            self._handles[(table, entry_id)] = handle
        if previous is not None:
            previous.cancel()
        timer.start()
        logger.debug("scheduled timeout %r in table %r after %d ms", entry_id, table, delay_ms)
        return handle

    def cancel(self, table: str, entry_id: str) -> bool:
        """Cancel the timer for an id. Returns False if none was scheduled."""
        with self._lock:
            handle = self._handles.pop((table, entry_id), None)
        if handle is None:
            return False
        handle.cancel()
        logger.debug("cancelled timeout %r in table %r", entry_id, table)
        return True

    def cancel_all(self) -> None:
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            handle.cancel()

    def is_current(self, handle: TimerHandle) -> bool:
        """True if the handle is still the live timer for its id."""
        with self._lock:
            return (
                not handle.cancelled
                and self._handles.get((handle.table, handle.entry_id)) is handle
            )

    def pending(self, table: str) -> list[str]:
        """Ids in a table that have a live timer, in scheduling order."""
        with self._lock:
            return [entry_id for (name, entry_id) in self._handles if name == table]

    def recover(self, table: str, entries: "Mapping[str, object]") -> list[str]:
        """Schedule timers for stored entries found at startup.

        Entries whose expiry time has already passed are not scheduled.

        Returns:
            Ids of overdue entries, in the document's iteration order. The
            caller expires them.
        """
        now = now_ms()
        overdue: list[str] = []
        for entry_id, entry in entries.items():
            if not is_timeout_entry(entry):
                logger.warning(
                    "skipping malformed timeout entry %r in table %r", entry_id, table
                )
                continue
            if entry["expires"] <= now:
                overdue.append(entry_id)
            else:
                _ = self.schedule(table, entry_id, entry["expires"] - now)
        return overdue

    def _run(self, handle: TimerHandle) -> None:
        if handle.cancelled:
            return
        try:
            self._fire(handle)
        except Exception:
            logger.exception(
                "expiring timeout %r in table %r failed", handle.entry_id, handle.table
            )
