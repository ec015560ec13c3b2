class SubplayError(Exception):
    """Base class for player core errors. None of them are fatal."""


class MalformedCue(SubplayError):
    """A single cue block failed its pattern and is skipped."""

    def __init__(self, reason: str, block: str = ""):
        super().__init__(reason)
        self.reason = reason
        self.block = block


class FullscreenDenied(SubplayError):
    """The platform refused to enter or leave fullscreen."""
