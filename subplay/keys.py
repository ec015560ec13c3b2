import logging

from PySide6.QtCore import QObject, Qt, Signal

from .hold_speed import HoldResult
from .utils import SEEK_STEP_MS, SUB_DELAY_STEP_MS, VOLUME_STEP

logger = logging.getLogger(__name__)

# Number keys 1..5 select the hold-speed rate.
_BOOST_KEYS = (Qt.Key_1, Qt.Key_2, Qt.Key_3, Qt.Key_4, Qt.Key_5)


class KeyboardControls:
    """Maps key presses onto a PlayerSession.

    Space is the hold-speed key: a tap toggles playback, a hold boosts the
    rate until release. Everything else acts on press.
    """

    def __init__(self, session):
        self.session = session

    def key_press_event(self, event, text_input_focused: bool = False) -> bool:
        return self.handle_key_press(event.key(), event.isAutoRepeat(), text_input_focused)

    def key_release_event(self, event) -> bool:
        return self.handle_key_release(event.key(), event.isAutoRepeat())

    def handle_key_press(self, key, auto_repeat: bool = False, text_input_focused: bool = False) -> bool:
        if text_input_focused:
            return False
        session = self.session
        clock = session.clock

        if key == Qt.Key_Space:
            if not auto_repeat:
                session.hold.key_down()
        elif key == Qt.Key_F:
            clock.toggle_fullscreen()
        elif key == Qt.Key_M:
            clock.toggle_mute()
        elif key == Qt.Key_Left:
            clock.seek_relative(-SEEK_STEP_MS)
        elif key == Qt.Key_Right:
            clock.seek_relative(SEEK_STEP_MS)
        elif key == Qt.Key_Up:
            clock.set_volume(clock.volume + VOLUME_STEP)
        elif key == Qt.Key_Down:
            clock.set_volume(clock.volume - VOLUME_STEP)
        elif key == Qt.Key_G:  # Subtitle delay decrease
            session.adjust_subtitle_delay(-SUB_DELAY_STEP_MS)
        elif key == Qt.Key_H:  # Subtitle delay increase
            session.adjust_subtitle_delay(SUB_DELAY_STEP_MS)
        elif key in _BOOST_KEYS:
            session.hold.select_boost(_BOOST_KEYS.index(key) + 1)
        else:
            return False
        session.interact()
        return True

    def handle_key_release(self, key, auto_repeat: bool = False) -> bool:
        if key != Qt.Key_Space or auto_repeat:
            return False
        result = self.session.hold.key_up()
        if result != HoldResult.IGNORED:
            logger.debug("Speed key released: %s", result.value)
        return result != HoldResult.IGNORED


# mpv key names bound while `subplay play` runs, and the Qt key each stands for.
MPV_KEYS = {
    "SPACE": Qt.Key_Space,
    "f": Qt.Key_F,
    "m": Qt.Key_M,
    "LEFT": Qt.Key_Left,
    "RIGHT": Qt.Key_Right,
    "UP": Qt.Key_Up,
    "DOWN": Qt.Key_Down,
    "g": Qt.Key_G,
    "h": Qt.Key_H,
    "1": Qt.Key_1,
    "2": Qt.Key_2,
    "3": Qt.Key_3,
    "4": Qt.Key_4,
    "5": Qt.Key_5,
}


class MpvKeyRouter(QObject):
    """Feeds keys pressed in the mpv window into KeyboardControls.

    mpv calls key bindings on its event thread with a state string whose
    first letter is d(own), u(p), r(epeat) or p(ress: down and up at once).
    Each call is queued onto the Qt thread before it reaches the controls.
    """

    _key_signal = Signal(str, str)

    def __init__(self, controls: KeyboardControls, player, parent=None):
        super().__init__(parent)
        self.controls = controls
        self.player = player
        self._bound = []
        self._key_signal.connect(self._dispatch, Qt.QueuedConnection)

    def bind(self) -> None:
        for name in MPV_KEYS:
            self.player.register_key_binding(name, self._binding_for(name))
            self._bound.append(name)
        logger.debug("Bound %d mpv keys", len(self._bound))

    def unbind(self) -> None:
        while self._bound:
            name = self._bound.pop()
            try:
                self.player.unregister_key_binding(name)
            except (AttributeError, RuntimeError, SystemError) as exc:
                logger.warning("Could not unbind mpv key %s: %s", name, exc)

    def _binding_for(self, name: str):
        def _on_key(state="p-", *_args):
            self._key_signal.emit(name, state or "p-")

        return _on_key

    def _dispatch(self, name: str, state: str) -> None:
        key = MPV_KEYS.get(name)
        if key is None:
            return
        kind = state[:1]
        if kind == "d":
            self.controls.handle_key_press(key)
        elif kind == "r":
            self.controls.handle_key_press(key, auto_repeat=True)
        elif kind == "u":
            self.controls.handle_key_release(key)
        elif kind == "p":
            self.controls.handle_key_press(key)
            self.controls.handle_key_release(key)
