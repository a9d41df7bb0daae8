"""TwiML serialization of playback plans.

Every document ends with ``<Hangup/>``; a plan that forgot its hangup gets
one appended here so no call is left open.
"""

import logging
from collections.abc import Sequence

from twilio.twiml.voice_response import VoiceResponse

from hotline.services.telephony.exceptions import EncodingFault
from hotline.services.telephony.models import (
    Action,
    Decline,
    Hangup,
    PlayAudioSequence,
    Speak,
)

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "Sorry, there was an error processing your call."

# Served verbatim when encoding itself fails, so it must not depend on the
# twilio library.
FALLBACK_TWIML = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    f'<Response><Say voice="alice" language="en-US">{FALLBACK_MESSAGE}</Say><Hangup /></Response>'
)


def encode(actions: Sequence[Action]) -> str:
    """Serialize a playback plan to a TwiML document.

    Args:
        actions: Ordered response actions from the plan builder.

    Returns:
        TwiML XML string.

    Raises:
        EncodingFault: If an action is unknown or serialization fails.
    """
    try:
        response = VoiceResponse()
        hung_up = False
        for action in actions:
            if hung_up:
                logger.warning("Dropping %s action after hangup", action.kind)
                continue
            if isinstance(action, (Speak, Decline)):
                response.say(action.text, voice=action.voice, language=action.locale)
            elif isinstance(action, PlayAudioSequence):
                for url in action.urls:
                    response.play(url)
            elif isinstance(action, Hangup):
                response.hangup()
                hung_up = True
            else:
                raise TypeError(f"Unsupported response action: {action!r}")

        if not hung_up:
            response.hangup()
        return str(response)
    except Exception as exc:
        raise EncodingFault(f"Failed to encode TwiML: {exc}") from exc
