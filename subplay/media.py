"""Media handle contract and its mpv implementation.

The core never decodes or renders. It talks to a ``MediaHandle``: a few
readable/settable properties plus Qt signals for duration, position and
play state changes. Times are milliseconds, volume is 0..100.
"""

import logging
import math

from PySide6.QtCore import QObject, Qt, Signal

from .errors import FullscreenDenied
from .utils import MAX_VOLUME, MIN_VOLUME, is_finite_number

logger = logging.getLogger(__name__)


class MediaHandle(QObject):
    duration_known = Signal(float)
    position_changed = Signal(float)
    play_started = Signal()
    paused = Signal()
    ended = Signal()

    @property
    def duration_ms(self) -> float:
        raise NotImplementedError

    @property
    def position_ms(self) -> float:
        raise NotImplementedError

    @position_ms.setter
    def position_ms(self, value: float) -> None:
        raise NotImplementedError

    @property
    def rate(self) -> float:
        raise NotImplementedError

    @rate.setter
    def rate(self, value: float) -> None:
        raise NotImplementedError

    @property
    def volume(self) -> int:
        raise NotImplementedError

    @volume.setter
    def volume(self, value: int) -> None:
        raise NotImplementedError

    @property
    def playing(self) -> bool:
        raise NotImplementedError

    def play(self) -> None:
        raise NotImplementedError

    def pause(self) -> None:
        raise NotImplementedError

    def set_fullscreen(self, enabled: bool) -> None:
        raise FullscreenDenied("fullscreen is not supported by this media handle")


class MpvMediaHandle(MediaHandle):
    """MediaHandle backed by a python-mpv player.

    mpv reports property changes on its own event thread, so every change is
    re-emitted through a queued signal and handled on the Qt thread.
    """

    _mpv_property_signal = Signal(str, object)
    _mpv_event_signal = Signal(str)

    _OBSERVED = ("duration", "time-pos", "pause", "speed", "volume")

    def __init__(self, player=None, parent=None, **mpv_options):
        super().__init__(parent)
        if player is None:
            # Deferred: importing mpv loads libmpv, which only the real
            # player needs.
            import mpv

            mpv_options.setdefault("hr_seek", "yes")
            player = mpv.MPV(**mpv_options)
        self.player = player
        self._duration_s = math.nan
        self._position_s = 0.0
        self._paused = True
        self._speed = 1.0
        self._volume = 100

        self._mpv_property_signal.connect(self._process_property_on_main_thread, Qt.QueuedConnection)
        self._mpv_event_signal.connect(self._process_event_on_main_thread, Qt.QueuedConnection)
        for name in self._OBSERVED:
            self.player.observe_property(name, self._on_mpv_property)
        self.player.register_event_callback(self._on_mpv_event)

    # mpv thread -----------------------------------------------------------

    def _on_mpv_property(self, name, value):
        self._mpv_property_signal.emit(str(name), value)

    def _on_mpv_event(self, event):
        try:
            # Keep callback minimal and avoid event.as_dict() due ctypes instability.
            name = None
            if hasattr(event, "event_id") and hasattr(event.event_id, "name"):
                name = event.event_id.name
            elif hasattr(event, "name"):
                name = event.name
            if isinstance(name, bytes):
                name = name.decode(errors="ignore")
            if not name:
                return
            self._mpv_event_signal.emit(str(name).lower().replace("_", "-"))
        except (AttributeError, TypeError, UnicodeError) as exc:
            logger.debug("Ignoring undecodable mpv event: %s", exc)

    # Qt thread ------------------------------------------------------------

    def _process_property_on_main_thread(self, name: str, value) -> None:
        if name == "duration":
            if is_finite_number(value) and float(value) > 0:
                known_before = math.isfinite(self._duration_s)
                self._duration_s = float(value)
                if not known_before:
                    self.duration_known.emit(self._duration_s * 1000.0)
            else:
                self._duration_s = math.nan
        elif name == "time-pos":
            if is_finite_number(value):
                self._position_s = max(0.0, float(value))
                self.position_changed.emit(self._position_s * 1000.0)
        elif name == "pause":
            if value is None:
                return
            was_paused = self._paused
            self._paused = bool(value)
            if was_paused and not self._paused:
                self.play_started.emit()
            elif not was_paused and self._paused:
                self.paused.emit()
        elif name == "speed":
            if is_finite_number(value):
                self._speed = float(value)
        elif name == "volume":
            if is_finite_number(value):
                self._volume = int(round(float(value)))

    def _process_event_on_main_thread(self, name: str) -> None:
        if name == "end-file":
            self._duration_s = math.nan
            self.ended.emit()

    def _safe_set(self, attr: str, value) -> bool:
        try:
            setattr(self.player, attr, value)
            return True
        except (AttributeError, RuntimeError, TypeError, SystemError) as exc:
            logger.warning("mpv rejected %s=%r: %s", attr, value, exc)
            return False

    def _safe_command(self, *args) -> bool:
        try:
            self.player.command(*args)
            return True
        except (AttributeError, RuntimeError, TypeError, SystemError) as exc:
            # Transient failures while mpv is switching/loading.
            logger.warning("mpv command %s failed: %s", args[0] if args else "?", exc)
            return False

    # MediaHandle ----------------------------------------------------------

    def load(self, path: str) -> bool:
        self._duration_s = math.nan
        self._position_s = 0.0
        return self._safe_command("loadfile", str(path), "replace")

    @property
    def duration_ms(self) -> float:
        return self._duration_s * 1000.0

    @property
    def position_ms(self) -> float:
        return self._position_s * 1000.0

    @position_ms.setter
    def position_ms(self, value: float) -> None:
        self._safe_command("seek", float(value) / 1000.0, "absolute")

    @property
    def rate(self) -> float:
        return self._speed

    @rate.setter
    def rate(self, value: float) -> None:
        if self._safe_set("speed", float(value)):
            self._speed = float(value)

    @property
    def volume(self) -> int:
        return self._volume

    @volume.setter
    def volume(self, value: int) -> None:
        level = max(MIN_VOLUME, min(MAX_VOLUME, int(value)))
        if self._safe_set("volume", level):
            self._volume = level

    @property
    def playing(self) -> bool:
        return not self._paused

    def play(self) -> None:
        self._safe_set("pause", False)

    def pause(self) -> None:
        self._safe_set("pause", True)

    def set_fullscreen(self, enabled: bool) -> None:
        if not self._safe_set("fullscreen", bool(enabled)):
            raise FullscreenDenied("mpv refused fullscreen change")
