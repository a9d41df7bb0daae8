"""Telephony protocol layer — Twilio webhook payloads and TwiML encoding."""

from hotline.services.telephony.exceptions import (
    ContentUnavailable,
    EncodingFault,
    HotlineError,
    NoActiveHotline,
    NotConfigured,
    StorageError,
)
from hotline.services.telephony.models import (
    Action,
    CallStatus,
    Decline,
    DeclineReason,
    Hangup,
    InboundCallPayload,
    PlayAudioSequence,
    Speak,
    StatusCallbackPayload,
)
from hotline.services.telephony.twiml import FALLBACK_TWIML, encode

__all__ = [
    "Action",
    "CallStatus",
    "ContentUnavailable",
    "Decline",
    "DeclineReason",
    "EncodingFault",
    "FALLBACK_TWIML",
    "Hangup",
    "HotlineError",
    "InboundCallPayload",
    "NoActiveHotline",
    "NotConfigured",
    "PlayAudioSequence",
    "Speak",
    "StatusCallbackPayload",
    "StorageError",
    "encode",
]
