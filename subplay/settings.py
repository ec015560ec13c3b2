import hashlib
import json
import logging
import time

from PySide6.QtCore import QByteArray, QSettings

from .utils import (
    BOOST_RATE_CHOICES,
    DEFAULT_BOOST_RATE,
    DEFAULT_VOLUME,
    MAX_RATE,
    MAX_VOLUME,
    MIN_RATE,
    MIN_VOLUME,
    get_user_data_path,
)

logger = logging.getLogger(__name__)

VOLUME_KEY = "audio/volume"
SUB_DELAY_KEY = "sub/delay"
BOOST_RATE_KEY = "player/boost_rate"
PLAYER_STATE_KEY = "player/state"
MEDIA_STATE_PREFIX = "media/"

# Subtitle delay is kept within +-10 minutes.
MAX_SUB_DELAY_MS = 600_000


def _to_int(value, default: int, min_value: int | None = None, max_value: int | None = None) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = int(default)
    if min_value is not None:
        number = max(min_value, number)
    if max_value is not None:
        number = min(max_value, number)
    return number


def _to_float(value, default: float, min_value: float | None = None, max_value: float | None = None) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = float(default)
    if number != number:  # NaN
        number = float(default)
    if min_value is not None:
        number = max(min_value, number)
    if max_value is not None:
        number = min(max_value, number)
    return number


def _to_choice(value, default: float, allowed) -> float:
    number = _to_float(value, default)
    if number in allowed:
        return number
    return default


def _to_optional_str(value) -> str | None:
    if value is None:
        return None
    token = str(value).strip()
    return token or None


def get_settings(path: str | None = None) -> QSettings:
    """Returns a QSettings object pointing to a visible .ini file."""
    return QSettings(path or get_user_data_path("settings.ini"), QSettings.IniFormat)


class SettingsStore:
    """Byte-oriented key-value store backed by QSettings."""

    def __init__(self, settings: QSettings | None = None):
        self._settings = settings if settings is not None else get_settings()

    @property
    def qsettings(self) -> QSettings:
        return self._settings

    def get(self, key: str) -> bytes | None:
        raw = self._settings.value(key)
        if raw is None:
            return None
        if isinstance(raw, QByteArray):
            return bytes(raw.data())
        if isinstance(raw, (bytes, bytearray)):
            return bytes(raw)
        return str(raw).encode("utf-8")

    def set(self, key: str, value: bytes) -> None:
        self._settings.setValue(key, QByteArray(bytes(value)))
        self._settings.sync()

    def remove(self, key: str) -> None:
        self._settings.remove(key)
        self._settings.sync()

    def value(self, key: str, default=None):
        return self._settings.value(key, default)

    def set_value(self, key: str, value) -> None:
        self._settings.setValue(key, value)
        self._settings.sync()


def _store(store: SettingsStore | None) -> SettingsStore:
    return store if store is not None else SettingsStore()


def _load_json(store: SettingsStore, key: str):
    raw = store.get(key)
    if not raw:
        return None
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        logger.warning("Failed to load %s: %s", key, exc)
        return None


def _save_json(store: SettingsStore, key: str, payload: dict) -> None:
    store.set(key, json.dumps(payload, sort_keys=True).encode("utf-8"))


def media_state_key(media_id) -> str:
    # Media ids are often paths; QSettings treats "/" as a group separator.
    digest = hashlib.sha1(str(media_id).encode("utf-8")).hexdigest()
    return f"{MEDIA_STATE_PREFIX}{digest}"


def default_media_state(media_id=None, volume: int = DEFAULT_VOLUME) -> dict:
    return {
        "video_id": _to_optional_str(media_id),
        "subtitle_id": None,
        "playback_rate": 1.0,
        "volume": _to_int(volume, DEFAULT_VOLUME, MIN_VOLUME, MAX_VOLUME),
        "last_position": 0.0,
        "last_played_timestamp": 0.0,
    }


def _clean_state(data, media_id=None, default_volume: int = DEFAULT_VOLUME) -> dict:
    state = default_media_state(media_id, default_volume)
    if not isinstance(data, dict):
        return state
    state["video_id"] = _to_optional_str(data.get("video_id", media_id))
    state["subtitle_id"] = _to_optional_str(data.get("subtitle_id"))
    state["playback_rate"] = _to_float(data.get("playback_rate"), 1.0, MIN_RATE, MAX_RATE)
    state["volume"] = _to_int(data.get("volume"), state["volume"], MIN_VOLUME, MAX_VOLUME)
    state["last_position"] = _to_float(data.get("last_position"), 0.0, 0.0)
    state["last_played_timestamp"] = _to_float(data.get("last_played_timestamp"), 0.0, 0.0)
    return state


def load_media_state(media_id, store: SettingsStore | None = None, default_volume: int = DEFAULT_VOLUME) -> dict:
    """Stored state for one media source.

    A source with no record, or a record without a volume, gets
    ``default_volume`` so a first play keeps the player-wide level.
    """
    store = _store(store)
    return _clean_state(_load_json(store, media_state_key(media_id)), media_id, default_volume)


def save_media_state(media_id, state: dict, store: SettingsStore | None = None) -> dict:
    if media_id is None or str(media_id) == "":
        return default_media_state()
    store = _store(store)
    payload = _clean_state({**state, "video_id": media_id}, media_id)
    if not state.get("last_played_timestamp"):
        payload["last_played_timestamp"] = time.time()
    _save_json(store, media_state_key(media_id), payload)
    return payload


def clear_media_state(media_id, store: SettingsStore | None = None) -> None:
    _store(store).remove(media_state_key(media_id))


def load_player_state(store: SettingsStore | None = None) -> dict | None:
    """Last session: which media/subtitle was open and where."""
    data = _load_json(_store(store), PLAYER_STATE_KEY)
    if data is None:
        return None
    return _clean_state(data, data.get("video_id") if isinstance(data, dict) else None)


def save_player_state(state: dict, store: SettingsStore | None = None) -> None:
    payload = _clean_state(state, state.get("video_id"))
    if not state.get("last_played_timestamp"):
        payload["last_played_timestamp"] = time.time()
    _save_json(_store(store), PLAYER_STATE_KEY, payload)


def load_volume(default: int = DEFAULT_VOLUME, store: SettingsStore | None = None) -> int:
    return _to_int(_store(store).value(VOLUME_KEY, default), default, MIN_VOLUME, MAX_VOLUME)


def save_volume(value: int, store: SettingsStore | None = None) -> None:
    _store(store).set_value(VOLUME_KEY, _to_int(value, DEFAULT_VOLUME, MIN_VOLUME, MAX_VOLUME))


def clamp_sub_delay(delay_ms, default: float = 0.0) -> float:
    return _to_float(delay_ms, default, -MAX_SUB_DELAY_MS, MAX_SUB_DELAY_MS)


def load_sub_delay(default: float = 0.0, store: SettingsStore | None = None) -> float:
    return clamp_sub_delay(_store(store).value(SUB_DELAY_KEY, default), default)


def save_sub_delay(delay_ms: float, store: SettingsStore | None = None) -> None:
    _store(store).set_value(SUB_DELAY_KEY, clamp_sub_delay(delay_ms))


def load_boost_rate(default: float = DEFAULT_BOOST_RATE, store: SettingsStore | None = None) -> float:
    return _to_choice(_store(store).value(BOOST_RATE_KEY, default), default, BOOST_RATE_CHOICES)


def save_boost_rate(rate: float, store: SettingsStore | None = None) -> None:
    _store(store).set_value(BOOST_RATE_KEY, _to_float(rate, DEFAULT_BOOST_RATE, MIN_RATE, MAX_RATE))
