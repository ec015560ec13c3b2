import logging

from PySide6.QtCore import QObject, Signal

from .timers import GenerationTimer
from .utils import AUTO_HIDE_FULLSCREEN_MS, AUTO_HIDE_MS

logger = logging.getLogger(__name__)


class OverlayAutoHide(QObject):
    """Visibility of transient controls: hidden after a quiet period while playing.

    Interaction or pausing always shows the overlay at once. The hide delay
    is shorter in fullscreen.
    """

    visibility_changed = Signal(bool)

    def __init__(self, scheduler, hide_ms: int = AUTO_HIDE_MS, fullscreen_hide_ms: int = AUTO_HIDE_FULLSCREEN_MS, parent=None):
        super().__init__(parent)
        self.hide_ms = int(hide_ms)
        self.fullscreen_hide_ms = int(fullscreen_hide_ms)
        self._visible = True
        self._playing = False
        self._fullscreen = False
        self._timer = GenerationTimer(scheduler, self._hide, self.hide_ms, name="overlay-auto-hide")

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def timer_active(self) -> bool:
        return self._timer.active

    def _interval(self) -> int:
        return self.fullscreen_hide_ms if self._fullscreen else self.hide_ms

    def _set_visible(self, visible: bool) -> None:
        if visible != self._visible:
            self._visible = visible
            self.visibility_changed.emit(visible)

    def _restart(self) -> None:
        if self._playing:
            self._timer.start(self._interval())
        else:
            self._timer.cancel()

    def interact(self) -> None:
        self._set_visible(True)
        self._restart()

    def set_playing(self, playing: bool) -> None:
        self._playing = bool(playing)
        if not self._playing:
            self._set_visible(True)
        self._restart()

    def set_fullscreen(self, fullscreen: bool) -> None:
        self._fullscreen = bool(fullscreen)
        if self._visible:
            self._restart()

    def stop(self) -> None:
        self._timer.cancel()

    def _hide(self) -> None:
        if self._playing:
            self._set_visible(False)
