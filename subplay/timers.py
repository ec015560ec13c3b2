"""Cooperative, cancellable timers on top of the Qt event loop.

Nothing here uses threads. A ``GenerationTimer`` bumps a generation counter
on every start and cancel, and a callback queued by an older generation
returns without touching state, so a cancelled timer can never fire late.
"""

import logging
import time

from PySide6.QtCore import QObject, QTimer

logger = logging.getLogger(__name__)


class ScheduledCall:
    def __init__(self, scheduler: "QtScheduler", timer: QTimer):
        self._scheduler = scheduler
        self._timer = timer
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._timer.stop()
        self._scheduler._release(self)

    def _finish(self) -> None:
        self.active = False
        self._scheduler._release(self)


class QtScheduler(QObject):
    """Single-shot callbacks driven by QTimer, owned by one thread."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._pending: set[ScheduledCall] = set()

    def monotonic(self) -> float:
        return time.monotonic()

    def call_later(self, delay_ms: int, callback) -> ScheduledCall:
        timer = QTimer(self)
        timer.setSingleShot(True)
        handle = ScheduledCall(self, timer)

        def _fire():
            if not handle.active:
                return
            handle._finish()
            callback()

        timer.timeout.connect(_fire)
        self._pending.add(handle)
        timer.start(max(0, int(delay_ms)))
        return handle

    def _release(self, handle: ScheduledCall) -> None:
        if handle in self._pending:
            self._pending.discard(handle)
            handle._timer.deleteLater()

    def pending_count(self) -> int:
        return len(self._pending)


class GenerationTimer:
    def __init__(self, scheduler, callback, interval_ms: int, repeat: bool = False, name: str = ""):
        self._scheduler = scheduler
        self._callback = callback
        self.interval_ms = int(interval_ms)
        self.repeat = bool(repeat)
        self.name = name or getattr(callback, "__name__", "timer")
        self._generation = 0
        self._handle = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def active(self) -> bool:
        return self._handle is not None

    def start(self, interval_ms: int | None = None) -> None:
        """(Re)start the timer; a pending shot from before is invalidated."""
        if interval_ms is not None:
            self.interval_ms = int(interval_ms)
        self._drop_pending()
        self._generation += 1
        self._schedule(self._generation)

    def cancel(self) -> None:
        if self._handle is not None:
            logger.debug("Timer %s cancelled (generation %d)", self.name, self._generation)
        self._drop_pending()
        self._generation += 1

    def _drop_pending(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule(self, generation: int) -> None:
        self._handle = self._scheduler.call_later(
            self.interval_ms, lambda g=generation: self._fire(g)
        )

    def _fire(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._handle = None
        if self.repeat:
            self._schedule(generation)
        self._callback()
