"""Inbound call routing exceptions."""


class HotlineError(Exception):
    """Base exception for hotline routing."""


class NotConfigured(HotlineError):
    """The dialed number is missing or not provisioned."""

    def __init__(self, dialed: str | None) -> None:
        self.dialed = dialed
        super().__init__(f"Number not configured: {dialed!r}")


class NoActiveHotline(HotlineError):
    """The number is provisioned but has no active hotline bound to it."""

    def __init__(self, e164: str) -> None:
        self.e164 = e164
        super().__init__(f"No active hotline for {e164}")


class ContentUnavailable(HotlineError):
    """The hotline's mode-specific content is missing or cannot be fetched."""


class EncodingFault(HotlineError):
    """Raised when a playback plan cannot be serialized to TwiML."""


class StorageError(HotlineError):
    """Raised when an audio URL cannot be signed or verified."""
