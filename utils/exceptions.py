"""
Custom exceptions for Event Poster Generator
"""


class PosterError(Exception):
    """
    Base class for all poster generation errors.

    Every error carries the identifier of what failed (a path, a URL,
    an event id) so a log line is enough to diagnose it.
    """

    def __init__(self, target: str, reason: str, message: str = None):
        self.target = str(target)
        self.reason = reason
        self.message = message or f"{self.describe()} '{self.target}': {reason}"
        super().__init__(self.message)

    def describe(self) -> str:
        return "Failed on"


class ConfigError(PosterError):
    """Raised when a render cannot even start (e.g. no background resolvable)."""

    def describe(self) -> str:
        return "Invalid configuration"


class FontLoadError(PosterError):
    """Raised when a font file cannot be read or parsed."""

    def describe(self) -> str:
        return "Failed to load font"


class DecodeError(PosterError):
    """Raised when an image cannot be read or decoded."""

    def describe(self) -> str:
        return "Failed to decode image"


class FetchError(PosterError):
    """Raised when a remote image cannot be downloaded."""

    def describe(self) -> str:
        return "Failed to fetch"


class TemplateParseError(PosterError):
    """Raised when a template file cannot be read or does not match the schema."""

    def describe(self) -> str:
        return "Failed to parse template"


class FeedFetchError(PosterError):
    """Raised when the event feed cannot be fetched or read."""

    def describe(self) -> str:
        return "Failed to fetch event feed"


class FeedParseError(PosterError):
    """Raised when the event feed is not a valid list of events."""

    def describe(self) -> str:
        return "Failed to parse event feed"


class EventNotFoundError(PosterError):
    """Raised when the requested event id is not in the feed."""

    def __init__(self, event_id, message: str = None):
        super().__init__(event_id, "not found in event feed", message)

    def describe(self) -> str:
        return "Event"


class EncodeError(PosterError):
    """Raised when a canvas cannot be encoded."""

    def describe(self) -> str:
        return "Failed to encode image"


class WriteError(PosterError):
    """Raised when an encoded image cannot be written to disk."""

    def describe(self) -> str:
        return "Failed to write image"
