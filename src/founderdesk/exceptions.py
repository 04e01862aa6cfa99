class FounderDeskError(Exception):
    """Base class for errors raised by FounderDesk services."""


class InvalidInput(FounderDeskError, ValueError):
    """User text was empty or whitespace only."""


class GenerationFailed(FounderDeskError):
    """The language model could not produce a reply.

    Covers unreachable endpoints, timeouts, rejected credentials and empty
    completions alike, so callers never branch on transport details.
    """


class SessionBusy(FounderDeskError):
    """A turn is already in flight for this session key."""

    def __init__(self, key: str) -> None:
        super().__init__(f"A turn is already in progress for session '{key}'")
        self.key = key


class SpeechSynthesisFailed(FounderDeskError):
    """The text-to-speech endpoint did not return audio."""
