"""Subtitle parsing for SRT, WebVTT and ASS/SSA sources.

Every parser is tolerant: a block that does not match its format is skipped
and logged, the rest of the file still loads. Cues keep the order in which
they appear in the source, which is not necessarily sorted by start time.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import MalformedCue

logger = logging.getLogger(__name__)


class SubtitleFormat(str, Enum):
    SRT = "srt"
    VTT = "vtt"
    ASS = "ass"


_EXTENSION_FORMATS = {
    ".srt": SubtitleFormat.SRT,
    ".vtt": SubtitleFormat.VTT,
    ".ass": SubtitleFormat.ASS,
    ".ssa": SubtitleFormat.ASS,
}


@dataclass(frozen=True)
class Cue:
    start_ms: int
    end_ms: int
    text: str

    def contains(self, time_ms: float) -> bool:
        return self.start_ms <= time_ms <= self.end_ms


_BLOCK_SPLIT_RE = re.compile(r"\n\s*\n")
_SRT_TIME_RE = re.compile(
    r"(\d{2}):(\d{2}):(\d{2}),(\d{3})\s*-->\s*(\d{2}):(\d{2}):(\d{2}),(\d{3})"
)
_VTT_TIME_RE = re.compile(
    r"(\d{2}):(\d{2}):(\d{2})\.(\d{3})\s*-->\s*(\d{2}):(\d{2}):(\d{2})\.(\d{3})"
)
_ASS_TIME_RE = re.compile(r"(\d+):(\d{2}):(\d{2})\.(\d{2})")
_HTML_TAG_RE = re.compile(r"<[^>]*>")
_ASS_OVERRIDE_RE = re.compile(r"\{[^}]*\}")


def time_to_ms(hours, minutes, seconds, millis) -> int:
    return (
        int(hours) * 3_600_000
        + int(minutes) * 60_000
        + int(seconds) * 1000
        + int(millis)
    )


def ass_time_to_ms(value: str) -> int:
    """ASS timestamps are H:MM:SS.cc; centiseconds are scaled to ms."""
    match = _ASS_TIME_RE.search(value or "")
    if not match:
        return 0
    hours, minutes, seconds, centis = match.groups()
    return time_to_ms(hours, minutes, seconds, int(centis) * 10)


def strip_tags(text: str) -> str:
    return _HTML_TAG_RE.sub("", text)


def format_from_filename(name) -> SubtitleFormat | None:
    return _EXTENSION_FORMATS.get(Path(str(name or "")).suffix.lower())


def _normalize(content: str) -> str:
    if content.startswith("\ufeff"):
        content = content[1:]
    return content.replace("\r\n", "\n").replace("\r", "\n")


def _make_cue(start_ms: int, end_ms: int, text: str, block: str) -> Cue:
    if start_ms > end_ms:
        raise MalformedCue("end before start", block)
    return Cue(start_ms, end_ms, text)


def _parse_srt_block(block: str) -> Cue:
    lines = block.strip().split("\n")
    if len(lines) < 3:
        raise MalformedCue("fewer than 3 lines", block)
    match = _SRT_TIME_RE.match(lines[1].strip())
    if not match:
        raise MalformedCue("bad timing line", block)
    groups = match.groups()
    start = time_to_ms(*groups[:4])
    end = time_to_ms(*groups[4:])
    text = strip_tags("\n".join(lines[2:]))
    return _make_cue(start, end, text, block)


def parse_srt(content: str) -> list[Cue]:
    cues = []
    skipped = 0
    for block in _BLOCK_SPLIT_RE.split(_normalize(content).strip()):
        if not block.strip():
            continue
        try:
            cues.append(_parse_srt_block(block))
        except MalformedCue as exc:
            skipped += 1
            logger.debug("Skipping SRT block (%s): %r", exc.reason, block[:80])
    _log_summary("srt", len(cues), skipped)
    return cues


def parse_vtt(content: str) -> list[Cue]:
    lines = _normalize(content).split("\n")
    cues = []
    skipped = 0
    i = 0

    # Everything before the first timing line is header/metadata.
    while i < len(lines) and "-->" not in lines[i]:
        i += 1

    while i < len(lines):
        line = lines[i].strip()
        if "-->" in line:
            match = _VTT_TIME_RE.match(line)
            if match:
                groups = match.groups()
                i += 1
                text_lines = []
                while i < len(lines) and lines[i].strip() != "":
                    text_lines.append(lines[i].strip())
                    i += 1
                text = strip_tags("\n".join(text_lines))
                try:
                    cues.append(
                        _make_cue(time_to_ms(*groups[:4]), time_to_ms(*groups[4:]), text, line)
                    )
                except MalformedCue as exc:
                    skipped += 1
                    logger.debug("Skipping VTT cue (%s): %r", exc.reason, line)
            else:
                skipped += 1
                logger.debug("Skipping VTT cue (bad timing line): %r", line)
        i += 1

    _log_summary("vtt", len(cues), skipped)
    return cues


def _parse_ass_dialogue(line: str, format_fields: list[str] | None) -> Cue:
    if not format_fields:
        raise MalformedCue("dialogue before Format line", line)
    try:
        start_idx = format_fields.index("Start")
        end_idx = format_fields.index("End")
        text_idx = format_fields.index("Text")
    except ValueError:
        raise MalformedCue("Format line lacks Start/End/Text", line) from None

    parts = line[len("Dialogue:"):].split(",")
    if len(parts) <= max(start_idx, end_idx, text_idx):
        raise MalformedCue("too few fields", line)

    start = ass_time_to_ms(parts[start_idx])
    end = ass_time_to_ms(parts[end_idx])
    # Text is the last field and may itself contain commas.
    text = _ASS_OVERRIDE_RE.sub("", ",".join(parts[text_idx:]))
    text = text.replace("\\N", "\n").replace("\\n", "\n").replace("\\h", " ")
    return _make_cue(start, end, text, line)


def parse_ass(content: str) -> list[Cue]:
    cues = []
    skipped = 0
    in_events = False
    format_fields = None

    for raw_line in _normalize(content).split("\n"):
        line = raw_line.strip()
        if line.lower() == "[events]":
            in_events = True
            continue
        if line.startswith("["):
            in_events = False
            continue
        if not in_events:
            continue
        if line.startswith("Format:"):
            format_fields = [f.strip() for f in line[len("Format:"):].split(",")]
        elif line.startswith("Dialogue:"):
            try:
                cues.append(_parse_ass_dialogue(line, format_fields))
            except MalformedCue as exc:
                skipped += 1
                logger.debug("Skipping ASS dialogue (%s): %r", exc.reason, line[:80])

    _log_summary("ass", len(cues), skipped)
    return cues


_PARSERS = {
    SubtitleFormat.SRT: parse_srt,
    SubtitleFormat.VTT: parse_vtt,
    SubtitleFormat.ASS: parse_ass,
}


def _coerce_format(fmt) -> SubtitleFormat | None:
    if isinstance(fmt, SubtitleFormat):
        return fmt
    token = str(fmt or "").strip().lower().lstrip(".")
    if token == "ssa":
        return SubtitleFormat.ASS
    try:
        return SubtitleFormat(token)
    except ValueError:
        return None


def parse(content: str, fmt) -> tuple[Cue, ...]:
    """Parse subtitle text into cues in source order. Never raises on bad input."""
    subtitle_format = _coerce_format(fmt)
    if subtitle_format is None:
        logger.warning("Unknown subtitle format: %r", fmt)
        return ()
    return tuple(_PARSERS[subtitle_format](content or ""))


def _log_summary(kind: str, parsed: int, skipped: int) -> None:
    if skipped:
        logger.info("Parsed %d %s cues, skipped %d malformed", parsed, kind, skipped)
    else:
        logger.info("Parsed %d %s cues", parsed, kind)
