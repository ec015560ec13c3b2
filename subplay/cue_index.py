import logging

from .subtitles import Cue, parse

logger = logging.getLogger(__name__)


def find_active_cue(cues, time_ms: float, delay_ms: float = 0.0) -> Cue | None:
    """Return the first cue, in source order, covering ``time_ms + delay_ms``.

    Linear scan: source files are not guaranteed to be sorted, and when cues
    overlap the one that appears first in the file wins. Both ends of a cue
    are inclusive.
    """
    adjusted = time_ms + delay_ms
    for cue in cues:
        if cue.start_ms <= adjusted <= cue.end_ms:
            return cue
    return None


def active_text(cues, time_ms: float, delay_ms: float = 0.0) -> str | None:
    cue = find_active_cue(cues, time_ms, delay_ms)
    return cue.text if cue is not None else None


class CueIndex:
    """The cue sequence of the current subtitle source plus a runtime delay.

    The sequence is replaced wholesale on every load; the delay survives
    reloads so a resync applies to whatever is currently shown.
    """

    def __init__(self, cues=(), delay_ms: float = 0.0):
        self._cues = tuple(cues)
        self.delay_ms = float(delay_ms)

    @property
    def cues(self) -> tuple[Cue, ...]:
        return self._cues

    def __len__(self) -> int:
        return len(self._cues)

    def __iter__(self):
        return iter(self._cues)

    def __bool__(self) -> bool:
        return bool(self._cues)

    def load(self, content: str, fmt) -> int:
        self._cues = parse(content, fmt)
        logger.info("Cue index loaded: format=%s cues=%d", fmt, len(self._cues))
        return len(self._cues)

    def clear(self) -> None:
        self._cues = ()

    def adjust_delay(self, step_ms: float) -> float:
        self.delay_ms = float(self.delay_ms + step_ms)
        logger.debug("Subtitle delay now %.0f ms", self.delay_ms)
        return self.delay_ms

    def active_cue(self, time_ms: float) -> Cue | None:
        return find_active_cue(self._cues, time_ms, self.delay_ms)

    def active_text(self, time_ms: float) -> str | None:
        return active_text(self._cues, time_ms, self.delay_ms)
