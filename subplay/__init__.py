"""Subtitle timing engine and playback/speed controller for a media player."""

from .clock import ClockState, PlaybackClock, PlayerState, SeekStatus
from .cue_index import CueIndex, active_text
from .hold_speed import HoldResult, HoldSpeedController, HoldState
from .subtitles import Cue, SubtitleFormat, format_from_filename, parse

__version__ = "1.0.0"

__all__ = [
    "ClockState",
    "Cue",
    "CueIndex",
    "HoldResult",
    "HoldSpeedController",
    "HoldState",
    "PlaybackClock",
    "PlayerState",
    "SeekStatus",
    "SubtitleFormat",
    "active_text",
    "format_from_filename",
    "parse",
]
