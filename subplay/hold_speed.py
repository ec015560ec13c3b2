"""Tap vs. hold on the speed key.

A quick tap toggles play/pause. Holding the key past the threshold while
playing boosts the playback rate until the key is released, then restores
the rate that was active before. Holding while paused does nothing, so a
long press never starts playback at boosted speed.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

from PySide6.QtCore import QObject, Signal

from .timers import GenerationTimer
from .utils import BOOST_RATE_CHOICES, DEFAULT_BOOST_RATE, HOLD_THRESHOLD_MS, clamp_rate

logger = logging.getLogger(__name__)


class HoldPhase(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    BOOSTED = "boosted"
    HELD = "held"


class HoldResult(str, Enum):
    NONE = "none"
    IGNORED = "ignored"
    ARMED = "armed"
    TAP = "tap"
    BOOST_ACTIVATED = "boost-activated"
    BOOST_DEACTIVATED = "boost-deactivated"


@dataclass(frozen=True)
class HoldState:
    pressed: bool
    elapsed_since_press: timedelta
    boosted: bool
    saved_rate: float
    chosen_boost_rate: float


class HoldSpeedController(QObject):
    tapped = Signal()
    boost_activated = Signal(float)
    boost_deactivated = Signal(float)
    boost_rate_selected = Signal(float)

    def __init__(self, clock, scheduler=None, hold_threshold_ms: int = HOLD_THRESHOLD_MS, boost_rate: float = DEFAULT_BOOST_RATE, parent=None):
        super().__init__(parent)
        self._clock = clock
        self._scheduler = scheduler if scheduler is not None else clock.scheduler
        self._phase = HoldPhase.IDLE
        self._pressed_at = None
        self._saved_rate = clock.rate
        self._boost_rate = clamp_rate(boost_rate)
        self._hold_timer = GenerationTimer(
            self._scheduler, self._on_hold_timeout, hold_threshold_ms, name="hold-speed"
        )
        clock.playing_changed.connect(self._on_playing_changed)

    @property
    def phase(self) -> HoldPhase:
        return self._phase

    @property
    def pressed(self) -> bool:
        return self._phase != HoldPhase.IDLE

    @property
    def boosted(self) -> bool:
        return self._phase == HoldPhase.BOOSTED

    @property
    def saved_rate(self) -> float:
        return self._saved_rate

    @property
    def chosen_boost_rate(self) -> float:
        return self._boost_rate

    @property
    def state(self) -> HoldState:
        elapsed = 0.0
        if self._pressed_at is not None:
            elapsed = max(0.0, self._scheduler.monotonic() - self._pressed_at)
        return HoldState(
            pressed=self.pressed,
            elapsed_since_press=timedelta(seconds=elapsed),
            boosted=self.boosted,
            saved_rate=self._saved_rate,
            chosen_boost_rate=self._boost_rate,
        )

    def select_boost(self, number: int) -> float | None:
        """Pick the boost rate with number keys 1..5."""
        try:
            index = int(number) - 1
        except (TypeError, ValueError):
            return None
        if not 0 <= index < len(BOOST_RATE_CHOICES):
            return None
        return self.set_boost_rate(BOOST_RATE_CHOICES[index])

    def set_boost_rate(self, rate: float) -> float:
        self._boost_rate = clamp_rate(rate)
        logger.info("Hold-speed rate set to %.2fx", self._boost_rate)
        self.boost_rate_selected.emit(self._boost_rate)
        return self._boost_rate

    def key_down(self) -> HoldResult:
        if self._phase != HoldPhase.IDLE:
            # Auto-repeat or a second press before release.
            return HoldResult.IGNORED
        self._phase = HoldPhase.ARMED
        self._pressed_at = self._scheduler.monotonic()
        self._hold_timer.start()
        return HoldResult.ARMED

    def key_up(self) -> HoldResult:
        phase = self._phase
        if phase == HoldPhase.IDLE:
            return HoldResult.IGNORED
        self._hold_timer.cancel()
        self._phase = HoldPhase.IDLE
        self._pressed_at = None

        if phase == HoldPhase.ARMED:
            self.tapped.emit()
            return HoldResult.TAP
        if phase == HoldPhase.BOOSTED:
            self._clock.set_rate(self._saved_rate)
            logger.info("Hold-speed released, rate restored to %.2fx", self._saved_rate)
            self.boost_deactivated.emit(self._saved_rate)
            return HoldResult.BOOST_DEACTIVATED
        return HoldResult.NONE

    def reset(self) -> None:
        """Drop any press in progress, restoring the rate if boosted."""
        self._hold_timer.cancel()
        was_boosted = self._phase == HoldPhase.BOOSTED
        self._phase = HoldPhase.IDLE
        self._pressed_at = None
        if was_boosted:
            self._clock.set_rate(self._saved_rate)
            self.boost_deactivated.emit(self._saved_rate)

    def _on_hold_timeout(self) -> None:
        if self._phase != HoldPhase.ARMED:
            return
        if not self._clock.playing:
            self._phase = HoldPhase.HELD
            logger.debug("Hold-speed ignored while paused")
            return
        self._saved_rate = self._clock.rate
        self._phase = HoldPhase.BOOSTED
        self._clock.set_rate(self._boost_rate)
        logger.info("Hold-speed boost %.2fx (was %.2fx)", self._boost_rate, self._saved_rate)
        self.boost_activated.emit(self._boost_rate)

    def _on_playing_changed(self, playing: bool) -> None:
        if not playing and self._phase == HoldPhase.ARMED:
            self._hold_timer.cancel()
            self._phase = HoldPhase.HELD
