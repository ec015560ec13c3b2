import math
import os
import sys
from pathlib import Path

MIN_RATE = 0.25
MAX_RATE = 4.0
RATE_EPSILON = 0.01
MIN_VOLUME = 0
MAX_VOLUME = 100
DEFAULT_VOLUME = 70

# Number keys 1..5 pick the hold-to-speed rate ahead of time.
BOOST_RATE_CHOICES = (1.25, 1.5, 2.0, 2.5, 3.0)
DEFAULT_BOOST_RATE = 2.0
HOLD_THRESHOLD_MS = 200

POSITION_COALESCE_MS = 50
AUTO_HIDE_MS = 3000
AUTO_HIDE_FULLSCREEN_MS = 2000
AUTOSAVE_INTERVAL_MS = 10_000
SEEK_STEP_MS = 10_000
VOLUME_STEP = 10
SUB_DELAY_STEP_MS = 100

# Resume rules: positions this close to the end count as finished, and very
# short positions are not worth resuming.
RESUME_END_MARGIN_MS = 15_000
RESUME_MIN_MS = 5_000

SUBTITLE_EXTENSIONS = (".srt", ".vtt", ".ass", ".ssa")

DATA_DIR_ENV = "SUBPLAY_DATA_DIR"


def get_user_data_dir() -> Path:
    """Get writable base directory for app-managed user files."""
    override = os.getenv(DATA_DIR_ENV)
    if override:
        path = Path(override)
        path.mkdir(parents=True, exist_ok=True)
        return path
    if getattr(sys, "frozen", False):
        app_data = Path(os.getenv("APPDATA") or Path.home()) / "Subplay"
        app_data.mkdir(parents=True, exist_ok=True)
        return app_data
    return Path(__file__).parent


def get_user_data_path(filename: str) -> str:
    """Get path for writable user data (settings, resume info)."""
    return str(get_user_data_dir() / filename)


def is_finite_number(value) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_rate(rate: float) -> float:
    return clamp(float(rate), MIN_RATE, MAX_RATE)


def clamp_volume(level) -> int:
    return int(clamp(int(round(float(level))), MIN_VOLUME, MAX_VOLUME))


def is_subtitle_file(path) -> bool:
    return Path(str(path)).suffix.lower() in SUBTITLE_EXTENSIONS


def format_duration(seconds: float) -> str:
    if not is_finite_number(seconds) or seconds < 0:
        return "--:--"

    total_seconds = int(seconds)
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    secs = total_seconds % 60
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def format_timestamp(ms: int) -> str:
    ms = max(0, int(ms))
    hours, ms = divmod(ms, 3_600_000)
    minutes, ms = divmod(ms, 60_000)
    seconds, ms = divmod(ms, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{ms:03d}"


def find_sidecar_subtitle(media_path) -> Path | None:
    """Subtitle next to a local media file with the same stem, if any."""
    path = Path(str(media_path))
    if not path.name or not path.parent.is_dir():
        return None
    for ext in SUBTITLE_EXTENSIONS:
        candidate = path.with_suffix(ext)
        if candidate.is_file():
            return candidate
    # Language-tagged names such as movie.en.srt
    prefix = f"{path.stem}."
    for candidate in sorted(path.parent.iterdir()):
        if candidate.name.startswith(prefix) and is_subtitle_file(candidate) and candidate.is_file():
            return candidate
    return None
