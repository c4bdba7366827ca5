from __future__ import annotations

from threading import Lock, Timer
from typing import Callable, Generic, Protocol, TypeVar

T = TypeVar("T")


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def schedule(self, delay_seconds: float, fn: Callable[[], None]) -> TimerHandle: ...


class ThreadingScheduler:
    """Runs callbacks on daemon `threading.Timer` threads."""

    def schedule(self, delay_seconds: float, fn: Callable[[], None]) -> TimerHandle:
        timer = Timer(max(0.0, float(delay_seconds)), fn)
        timer.daemon = True
        timer.start()
        return timer


class Debouncer(Generic[T]):
    """
    Delay a callback until its input has been stable for `delay_seconds`.

    Each trigger cancels the pending timer and starts a new one, so at most
    one callback fires per quiet period.
    """

    def __init__(
        self,
        delay_seconds: float,
        callback: Callable[[T], None],
        *,
        scheduler: Scheduler | None = None,
    ) -> None:
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self._delay = float(delay_seconds)
        self._callback = callback
        self._scheduler = scheduler or ThreadingScheduler()
        self._lock = Lock()
        self._handle: TimerHandle | None = None
        self._generation = 0
        self._pending_value: T | None = None
        self._has_pending = False

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._has_pending

    def trigger(self, value: T) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._generation += 1
            generation = self._generation
            self._pending_value = value
            self._has_pending = True
            self._handle = self._scheduler.schedule(self._delay, lambda: self._fire(generation))

    def flush(self) -> None:
        """Fire the pending callback now, if any."""
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            generation = self._generation
        self._fire(generation)

    def cancel(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._handle = None
            self._generation += 1
            self._pending_value = None
            self._has_pending = False

    def _fire(self, generation: int) -> None:
        with self._lock:
            # a stale timer that lost the race with a newer trigger
            if generation != self._generation or not self._has_pending:
                return
            value = self._pending_value
            self._handle = None
            self._pending_value = None
            self._has_pending = False
        self._callback(value)  # type: ignore[arg-type]
