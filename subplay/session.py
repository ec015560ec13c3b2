"""One media source with its subtitles, clock, hold-speed key and persistence."""

import logging

from PySide6.QtCore import QObject, Signal

from .clock import PlaybackClock
from .cue_index import CueIndex
from .hold_speed import HoldSpeedController
from .overlay import OverlayAutoHide
from .settings import (
    SettingsStore,
    clamp_sub_delay,
    load_boost_rate,
    load_media_state,
    load_sub_delay,
    load_volume,
    save_boost_rate,
    save_media_state,
    save_player_state,
    save_sub_delay,
    save_volume,
)
from .timers import GenerationTimer, QtScheduler
from .utils import AUTOSAVE_INTERVAL_MS, RESUME_END_MARGIN_MS, RESUME_MIN_MS

logger = logging.getLogger(__name__)


class PlayerSession(QObject):
    subtitle_changed = Signal(str)
    source_loaded = Signal(str)

    def __init__(self, scheduler=None, store: SettingsStore | None = None, fullscreen_primitive=None, parent=None):
        super().__init__(parent)
        self.scheduler = scheduler if scheduler is not None else QtScheduler(self)
        self.store = store if store is not None else SettingsStore()
        self.clock = PlaybackClock(
            scheduler=self.scheduler, fullscreen_primitive=fullscreen_primitive, parent=self
        )
        self.cues = CueIndex(delay_ms=load_sub_delay(store=self.store))
        self.hold = HoldSpeedController(
            self.clock, self.scheduler, boost_rate=load_boost_rate(store=self.store), parent=self
        )
        self.overlay = OverlayAutoHide(self.scheduler, parent=self)
        self._autosave_timer = GenerationTimer(
            self.scheduler, self.save_state, AUTOSAVE_INTERVAL_MS, repeat=True, name="autosave"
        )

        self.media_id = None
        self.subtitle_id = None
        self._resume_at_ms = None
        self._current_text = ""

        self.clock.position_changed.connect(self._refresh_subtitle)
        self.clock.duration_changed.connect(self._on_duration_known)
        self.clock.playing_changed.connect(self._on_playing_changed)
        self.clock.fullscreen_changed.connect(self.overlay.set_fullscreen)
        self.hold.tapped.connect(self.clock.toggle_play)
        self.hold.boost_rate_selected.connect(lambda rate: save_boost_rate(rate, store=self.store))
        self.clock.volume_changed.connect(lambda volume: save_volume(volume, store=self.store))

    @property
    def current_subtitle(self) -> str:
        return self._current_text

    def load_source(self, media, subtitle_text: str | None = None, format_hint=None, media_id=None, subtitle_id=None) -> int:
        """Switch to a new media source; returns the number of cues loaded."""
        if self.clock.media is not None:
            self.save_state()
        self._autosave_timer.cancel()
        self.hold.reset()

        self._load_cues(subtitle_text, format_hint)
        self.media_id = media_id
        self.subtitle_id = subtitle_id
        self._resume_at_ms = None

        self.clock.attach(media)
        if media_id is not None:
            state = load_media_state(
                media_id, store=self.store, default_volume=load_volume(store=self.store)
            )
            self.clock.set_rate(state["playback_rate"])
            self.clock.set_volume(state["volume"])
            if state["last_position"] > RESUME_MIN_MS:
                self._resume_at_ms = state["last_position"]
            if self.subtitle_id is None:
                self.subtitle_id = state["subtitle_id"]
        else:
            self.clock.set_volume(load_volume(store=self.store))
        if self.clock.duration_known:
            self._on_duration_known(self.clock.duration_ms)
        if self.clock.playing:
            self._on_playing_changed(True)
        else:
            self.overlay.set_playing(False)

        logger.info(
            "Source loaded: media=%s subtitle=%s cues=%d resume=%s",
            media_id,
            subtitle_id,
            len(self.cues),
            self._resume_at_ms,
        )
        self._refresh_subtitle()
        self.source_loaded.emit(str(media_id or ""))
        return len(self.cues)

    def set_subtitles(self, subtitle_text: str | None, format_hint=None, subtitle_id=None) -> int:
        count = self._load_cues(subtitle_text, format_hint)
        self.subtitle_id = subtitle_id
        self._refresh_subtitle()
        return count

    def set_subtitle_delay(self, delay_ms: float) -> float:
        self.cues.delay_ms = clamp_sub_delay(delay_ms, self.cues.delay_ms)
        save_sub_delay(self.cues.delay_ms, store=self.store)
        self._refresh_subtitle()
        return self.cues.delay_ms

    def adjust_subtitle_delay(self, step_ms: float) -> float:
        return self.set_subtitle_delay(self.cues.adjust_delay(step_ms))

    def _load_cues(self, subtitle_text, format_hint) -> int:
        if subtitle_text:
            return self.cues.load(subtitle_text, format_hint)
        self.cues.clear()
        return 0

    def interact(self) -> None:
        self.overlay.interact()

    def save_state(self) -> dict | None:
        if self.media_id is None or not self.clock.duration_known:
            return None
        position = self.clock.position_ms
        duration = self.clock.duration_ms
        if position > duration - RESUME_END_MARGIN_MS:
            position = 0.0
        # Persist the user's rate, never a temporary hold-speed boost.
        rate = self.hold.saved_rate if self.hold.boosted else self.clock.rate
        state = {
            "video_id": self.media_id,
            "subtitle_id": self.subtitle_id,
            "playback_rate": rate,
            "volume": self.clock.volume,
            "last_position": position,
        }
        saved = save_media_state(self.media_id, state, store=self.store)
        save_player_state(saved, store=self.store)
        logger.debug("Saved state for %s at %.0f ms", self.media_id, position)
        return saved

    def close(self) -> None:
        self.save_state()
        self._autosave_timer.cancel()
        self.hold.reset()
        self.overlay.stop()
        self.clock.detach()

    def _on_duration_known(self, duration_ms: float) -> None:
        target = self._resume_at_ms
        if target is None:
            return
        self._resume_at_ms = None
        if target < duration_ms:
            logger.info("Resuming %s at %.0f ms", self.media_id, target)
            self.clock.seek(target)

    def _on_playing_changed(self, playing: bool) -> None:
        self.overlay.set_playing(playing)
        if playing:
            self._autosave_timer.start()
        else:
            self._autosave_timer.cancel()
            self.save_state()

    def _refresh_subtitle(self, *_args) -> None:
        text = self.cues.active_text(self.clock.position_ms) or ""
        if text != self._current_text:
            self._current_text = text
            self.subtitle_changed.emit(text)
