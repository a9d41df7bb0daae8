"""Telephony webhook payloads and call status values."""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CallStatus(str, Enum):
    QUEUED = "queued"
    INITIATED = "initiated"
    RINGING = "ringing"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    BUSY = "busy"
    NO_ANSWER = "no-answer"
    CANCELED = "canceled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {
        CallStatus.COMPLETED,
        CallStatus.BUSY,
        CallStatus.NO_ANSWER,
        CallStatus.CANCELED,
        CallStatus.FAILED,
    }
)


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class InboundCallPayload(BaseModel):
    """Twilio inbound voice webhook payload.

    Field names match Twilio's POST parameter names exactly. Blank values are
    normalized to None so a missing ``To`` can never reach the directory.
    """

    model_config = ConfigDict(extra="ignore")

    To: str | None = None
    From: str | None = None
    CallSid: str | None = None

    @field_validator("To", "From", "CallSid", mode="before")
    @classmethod
    def _strip(cls, value: str | None) -> str | None:
        return _blank_to_none(value)


class StatusCallbackPayload(BaseModel):
    """Twilio status callback payload."""

    model_config = ConfigDict(extra="ignore")

    CallSid: str | None = None
    CallStatus: str | None = None
    CallDuration: str | None = None
    RecordingUrl: str | None = None

    @field_validator("CallSid", "CallStatus", "CallDuration", "RecordingUrl", mode="before")
    @classmethod
    def _strip(cls, value: str | None) -> str | None:
        return _blank_to_none(value)

    def duration_seconds(self) -> int | None:
        """Parse ``CallDuration``; unparseable values yield None."""
        if self.CallDuration is None:
            return None
        try:
            return int(self.CallDuration)
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# Voice response actions
# ---------------------------------------------------------------------------


class DeclineReason(str, Enum):
    NOT_CONFIGURED = "not_configured"
    NO_ACTIVE_HOTLINE = "no_active_hotline"
    MENU_NOT_CONFIGURED = "menu_not_configured"
    CONTENT_UNAVAILABLE = "content_unavailable"
    ERROR = "error"


class Speak(BaseModel):
    kind: Literal["speak"] = "speak"
    text: str = Field(..., min_length=1)
    voice: str = "alice"
    locale: str = "en-US"


class PlayAudioSequence(BaseModel):
    kind: Literal["play"] = "play"
    urls: list[str] = Field(..., min_length=1)


class Decline(BaseModel):
    """A spoken notice given instead of the hotline's own content."""

    kind: Literal["decline"] = "decline"
    reason: DeclineReason
    text: str = Field(..., min_length=1)
    voice: str = "alice"
    locale: str = "en-US"


class Hangup(BaseModel):
    kind: Literal["hangup"] = "hangup"


Action = Annotated[Speak | PlayAudioSequence | Decline | Hangup, Field(discriminator="kind")]
