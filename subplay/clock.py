"""Authoritative playback clock for the current media source.

User commands (seek, rate, volume) update local state at once so observers
get immediate feedback; the media handle is written afterwards, and its own
notifications are the source of truth that overwrites the optimistic values.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum

from PySide6.QtCore import QObject, Signal

from .errors import FullscreenDenied
from .timers import GenerationTimer, QtScheduler
from .utils import (
    DEFAULT_VOLUME,
    MIN_VOLUME,
    POSITION_COALESCE_MS,
    RATE_EPSILON,
    clamp,
    clamp_rate,
    clamp_volume,
    is_finite_number,
)

logger = logging.getLogger(__name__)


class PlayerState(str, Enum):
    UNKNOWN = "unknown"
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"


class SeekStatus(str, Enum):
    APPLIED = "applied"
    UNKNOWN_DURATION = "unknown-duration"
    INVALID_TARGET = "invalid-target"


@dataclass(frozen=True)
class ClockState:
    position_ms: float
    duration_ms: float
    rate: float
    volume: int
    playing: bool


class PlaybackClock(QObject):
    state_changed = Signal(object)
    position_changed = Signal(float)
    progress_changed = Signal(float)
    duration_changed = Signal(float)
    rate_changed = Signal(float)
    volume_changed = Signal(int)
    playing_changed = Signal(bool)
    fullscreen_changed = Signal(bool)
    fullscreen_failed = Signal(str)
    status = Signal(str)
    ended = Signal()

    def __init__(self, scheduler=None, fullscreen_primitive=None, coalesce_ms: int = POSITION_COALESCE_MS, parent=None):
        super().__init__(parent)
        self._scheduler = scheduler if scheduler is not None else QtScheduler(self)
        self._fullscreen_primitive = fullscreen_primitive
        self._media = None

        self._position_ms = 0.0
        self._duration_ms = math.nan
        self._rate = 1.0
        self._volume = DEFAULT_VOLUME
        self._last_audible_volume = DEFAULT_VOLUME
        self._playing = False
        self._has_played = False
        self._fullscreen = False
        self._last_state = PlayerState.UNKNOWN

        self._pending_position = None
        self._pending_seek_ms = None
        self._coalesce_timer = GenerationTimer(
            self._scheduler, self._flush_position, coalesce_ms, name="position-coalesce"
        )
        self._seek_timer = GenerationTimer(self._scheduler, self._apply_pending_seek, 0, name="media-seek")

    # Media wiring ---------------------------------------------------------

    @property
    def media(self):
        return self._media

    @property
    def scheduler(self):
        return self._scheduler

    def attach(self, media) -> None:
        self.detach()
        self._media = media
        media.duration_known.connect(self._on_duration_known)
        media.position_changed.connect(self._on_media_position)
        media.play_started.connect(self._on_play_started)
        media.paused.connect(self._on_paused)
        media.ended.connect(self._on_ended)
        self.reset()

        rate = media.rate
        if is_finite_number(rate):
            self._rate = clamp_rate(rate)
        volume = media.volume
        if is_finite_number(volume):
            self._volume = clamp_volume(volume)
        self._playing = bool(media.playing)
        self._has_played = self._playing
        duration = media.duration_ms
        if is_finite_number(duration) and duration > 0:
            self._on_duration_known(duration)
        self._emit_state_if_changed()
        logger.info("Clock attached to %s", type(media).__name__)

    def detach(self) -> None:
        media = self._media
        if media is None:
            return
        for signal, slot in (
            (media.duration_known, self._on_duration_known),
            (media.position_changed, self._on_media_position),
            (media.play_started, self._on_play_started),
            (media.paused, self._on_paused),
            (media.ended, self._on_ended),
        ):
            try:
                signal.disconnect(slot)
            except (RuntimeError, TypeError):
                pass
        self._media = None
        self.reset()

    def reset(self) -> None:
        """Back to UNKNOWN for a new source; pending timers never fire."""
        self._coalesce_timer.cancel()
        self._seek_timer.cancel()
        self._pending_position = None
        self._pending_seek_ms = None
        self._duration_ms = math.nan
        self._position_ms = 0.0
        self._playing = False
        self._has_played = False
        self.position_changed.emit(0.0)
        self.progress_changed.emit(0.0)
        self._emit_state_if_changed()

    # Derived state --------------------------------------------------------

    @property
    def duration_known(self) -> bool:
        return math.isfinite(self._duration_ms) and self._duration_ms > 0

    @property
    def state(self) -> PlayerState:
        if not self.duration_known:
            return PlayerState.UNKNOWN
        if self._playing:
            return PlayerState.PLAYING
        if self._has_played:
            return PlayerState.PAUSED
        return PlayerState.READY

    @property
    def playing(self) -> bool:
        return self._playing

    @property
    def position_ms(self) -> float:
        return self._position_ms

    @property
    def duration_ms(self) -> float:
        return self._duration_ms

    @property
    def rate(self) -> float:
        return self._rate

    @property
    def volume(self) -> int:
        return self._volume

    @property
    def muted(self) -> bool:
        return self._volume == MIN_VOLUME

    @property
    def fullscreen(self) -> bool:
        return self._fullscreen

    @property
    def progress(self) -> float:
        if not self.duration_known:
            return 0.0
        return self._position_ms / self._duration_ms * 100.0

    def snapshot(self) -> ClockState:
        return ClockState(
            position_ms=self._position_ms,
            duration_ms=self._duration_ms,
            rate=self._rate,
            volume=self._volume,
            playing=self._playing,
        )

    def _emit_state_if_changed(self) -> None:
        state = self.state
        if state != self._last_state:
            logger.debug("Clock state %s -> %s", self._last_state.value, state.value)
            self._last_state = state
            self.state_changed.emit(state)

    def _apply_position(self, position_ms: float) -> None:
        self._position_ms = position_ms
        self.position_changed.emit(position_ms)
        self.progress_changed.emit(self.progress)

    # Commands -------------------------------------------------------------

    def play(self) -> bool:
        if self._media is None:
            logger.info("Play ignored: no media attached")
            return False
        self._media.play()
        return True

    def pause(self) -> bool:
        if self._media is None:
            logger.info("Pause ignored: no media attached")
            return False
        self._media.pause()
        return True

    def toggle_play(self) -> bool:
        return self.pause() if self._playing else self.play()

    def seek(self, target_ms) -> SeekStatus:
        if not self.duration_known:
            logger.info("Seek to %s ignored: duration unknown", target_ms)
            self.status.emit(SeekStatus.UNKNOWN_DURATION.value)
            return SeekStatus.UNKNOWN_DURATION
        try:
            target = float(target_ms)
        except (TypeError, ValueError):
            target = math.nan
        if math.isnan(target):
            logger.warning("Seek ignored: invalid target %r", target_ms)
            self.status.emit(SeekStatus.INVALID_TARGET.value)
            return SeekStatus.INVALID_TARGET

        clamped = clamp(target, 0.0, self._duration_ms)
        if clamped != target:
            logger.debug("Seek target %.0f clamped to %.0f", target, clamped)
        # Notifications queued before this seek describe the old position.
        self._coalesce_timer.cancel()
        self._pending_position = None
        self._apply_position(clamped)
        self._pending_seek_ms = clamped
        self._seek_timer.start()
        return SeekStatus.APPLIED

    def seek_relative(self, delta_ms: float) -> SeekStatus:
        return self.seek(self._position_ms + float(delta_ms))

    def _apply_pending_seek(self) -> None:
        target = self._pending_seek_ms
        self._pending_seek_ms = None
        if target is None or self._media is None:
            return
        self._media.position_ms = target

    def set_rate(self, rate) -> bool:
        try:
            value = float(rate)
        except (TypeError, ValueError):
            logger.warning("Rate ignored: invalid value %r", rate)
            return False
        if math.isnan(value):
            logger.warning("Rate ignored: NaN")
            return False
        clamped = clamp_rate(value)
        if clamped != value:
            logger.debug("Rate %.3f clamped to %.2f", value, clamped)
        if abs(clamped - self._rate) <= RATE_EPSILON:
            return False
        self._rate = clamped
        if self._media is not None:
            self._media.rate = clamped
        self.rate_changed.emit(clamped)
        return True

    def set_volume(self, level) -> int:
        try:
            volume = clamp_volume(level)
        except (TypeError, ValueError, OverflowError):
            logger.warning("Volume ignored: invalid value %r", level)
            return self._volume
        if volume > MIN_VOLUME:
            self._last_audible_volume = volume
        if volume == self._volume:
            return volume
        self._volume = volume
        if self._media is not None:
            self._media.volume = volume
        self.volume_changed.emit(volume)
        return volume

    def toggle_mute(self) -> int:
        if self.muted:
            return self.set_volume(self._last_audible_volume or DEFAULT_VOLUME)
        return self.set_volume(MIN_VOLUME)

    def toggle_fullscreen(self) -> bool:
        primitive = self._fullscreen_primitive
        if primitive is None and self._media is not None:
            primitive = self._media.set_fullscreen
        if primitive is None:
            self.fullscreen_failed.emit("no fullscreen primitive")
            return False
        target = not self._fullscreen
        try:
            primitive(target)
        except (FullscreenDenied, OSError, RuntimeError) as exc:
            logger.warning("Fullscreen %s denied: %s", "enter" if target else "exit", exc)
            self.fullscreen_failed.emit(str(exc))
            return False
        self._fullscreen = target
        self.fullscreen_changed.emit(target)
        return True

    # Media notifications --------------------------------------------------

    def _on_duration_known(self, duration_ms: float) -> None:
        if not is_finite_number(duration_ms) or duration_ms <= 0:
            return
        duration_ms = float(duration_ms)
        if duration_ms == self._duration_ms:
            return
        self._duration_ms = duration_ms
        logger.info("Duration established: %.0f ms", duration_ms)
        self.duration_changed.emit(duration_ms)
        if self._position_ms > duration_ms:
            self._position_ms = duration_ms
            self.position_changed.emit(duration_ms)
        self.progress_changed.emit(self.progress)
        self._emit_state_if_changed()

    def _on_media_position(self, position_ms: float) -> None:
        self._pending_position = position_ms
        if not self._coalesce_timer.active:
            self._coalesce_timer.start()

    def _flush_position(self) -> None:
        value = self._pending_position
        self._pending_position = None
        if value is None or not is_finite_number(value):
            return
        if not self.duration_known and self._media is not None:
            duration = self._media.duration_ms
            if is_finite_number(duration) and duration > 0:
                self._on_duration_known(duration)
        if not self.duration_known:
            return
        self._apply_position(clamp(float(value), 0.0, self._duration_ms))

    def _on_play_started(self) -> None:
        if not self._playing:
            self._playing = True
            self._has_played = True
            self.playing_changed.emit(True)
        self._emit_state_if_changed()

    def _on_paused(self) -> None:
        if self._playing:
            self._playing = False
            self.playing_changed.emit(False)
        self._emit_state_if_changed()

    def _on_ended(self) -> None:
        self._on_paused()
        self.ended.emit()
