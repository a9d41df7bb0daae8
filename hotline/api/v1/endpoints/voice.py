"""Twilio voice webhooks — inbound call routing and status callbacks."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from twilio.request_validator import RequestValidator

from hotline.core.config import settings
from hotline.core.database import get_db
from hotline.services.call_log import CallLogRecorder
from hotline.services.directory import DirectoryResolver, DirectoryStore
from hotline.services.inbound_call import InboundCallHandler
from hotline.services.playback import PlaybackPlanBuilder
from hotline.services.storage import AudioUrlSigner, get_audio_url_signer
from hotline.services.telephony import (
    FALLBACK_TWIML,
    InboundCallPayload,
    StatusCallbackPayload,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_inbound_call_handler(
    db: Session = Depends(get_db),
    signer: AudioUrlSigner = Depends(get_audio_url_signer),
) -> InboundCallHandler:
    store = DirectoryStore(db)
    return InboundCallHandler(
        resolver=DirectoryResolver(store),
        builder=PlaybackPlanBuilder(
            store,
            signer,
            voice=settings.TTS_VOICE,
            locale=settings.TTS_LOCALE,
            url_ttl_seconds=settings.AUDIO_URL_TTL_SECONDS,
            playlist_limit=settings.AUDIO_PLAYLIST_LIMIT,
        ),
        recorder=CallLogRecorder(db),
    )


def _verified_params(request: Request, form_data) -> dict[str, str]:
    """Flatten the form body, rejecting it if its Twilio signature is invalid."""
    params = {key: str(value) for key, value in form_data.items()}

    if settings.TWILIO_VALIDATE_SIGNATURE:
        signature = request.headers.get("X-Twilio-Signature", "")
        validator = RequestValidator(settings.TWILIO_AUTH_TOKEN)
        if not validator.validate(str(request.url), params, signature):
            logger.warning("Rejected webhook with invalid Twilio signature: %s", request.url.path)
            raise HTTPException(status_code=403, detail="Invalid Twilio signature")

    return params


@router.post("/inbound")
async def handle_inbound_call(
    request: Request,
    handler: InboundCallHandler = Depends(get_inbound_call_handler),
):
    """Inbound call webhook — Twilio fetches this when a call arrives.

    Always returns TwiML that speaks something and hangs up, even when the
    body is unreadable or the call cannot be routed.
    """
    try:
        form_data = await request.form()
    except Exception:
        logger.exception("Unreadable inbound call body")
        return PlainTextResponse(content=FALLBACK_TWIML, media_type="text/xml")

    params = _verified_params(request, form_data)

    try:
        payload = InboundCallPayload.model_validate(params)
    except ValidationError:
        logger.exception("Malformed inbound call payload")
        return PlainTextResponse(content=FALLBACK_TWIML, media_type="text/xml")

    logger.info("Inbound call: CallSid=%s To=%s From=%s", payload.CallSid, payload.To, payload.From)

    result = handler.handle(payload)
    logger.info("Call %s answered with outcome=%s", payload.CallSid, result.outcome.value)

    return PlainTextResponse(content=result.twiml, media_type="text/xml")


@router.post("/status")
async def handle_status_callback(request: Request, db: Session = Depends(get_db)):
    """Twilio status callback — reconciles the call log once the call ends.

    Never creates a call log; callbacks for unknown calls are acknowledged
    and ignored. Must return 2xx to Twilio quickly.
    """
    params = _verified_params(request, await request.form())
    payload = StatusCallbackPayload.model_validate(params)

    logger.info(
        "Status callback received: CallSid=%s Status=%s Duration=%s",
        payload.CallSid,
        payload.CallStatus,
        payload.CallDuration,
    )

    if not payload.CallSid:
        return {"status": "ignored", "reason": "no CallSid"}

    try:
        call_log = CallLogRecorder(db).reconcile(payload)
    except Exception:
        logger.exception("Failed to update call log for call %s", payload.CallSid)
        db.rollback()
        return {"status": "ignored", "reason": "update failed"}

    if call_log is None:
        return {"status": "ignored", "reason": "no matching update"}

    return {"status": "ok", "call_status": call_log.status}
