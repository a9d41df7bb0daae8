"""Inbound call handling.

Runs one inbound webhook through a linear pipeline:

    Received → Resolving → PlanBuilding → Logging → Responding → Done

There are no retries. Each stage either produces its result or degrades the
plan to a spoken notice, so the caller always hears something and the call
always ends with a hangup. ``handle`` never raises.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum

from hotline.services.call_log import CallLogRecorder
from hotline.services.directory import DirectoryResolver, ResolvedHotline
from hotline.services.playback import PlaybackPlanBuilder
from hotline.services.telephony import twiml
from hotline.services.telephony.exceptions import EncodingFault, NoActiveHotline, NotConfigured
from hotline.services.telephony.models import Action, DeclineReason, InboundCallPayload

logger = logging.getLogger(__name__)


class CallState(str, Enum):
    RECEIVED = "received"
    RESOLVING = "resolving"
    PLAN_BUILDING = "plan_building"
    LOGGING = "logging"
    RESPONDING = "responding"
    DONE = "done"


class CallOutcome(str, Enum):
    ANSWERED = "answered"
    NOT_CONFIGURED = "not_configured"
    NO_ACTIVE_HOTLINE = "no_active_hotline"
    ERROR = "error"


_OUTCOME_DECLINE_REASONS: dict[CallOutcome, DeclineReason] = {
    CallOutcome.NOT_CONFIGURED: DeclineReason.NOT_CONFIGURED,
    CallOutcome.NO_ACTIVE_HOTLINE: DeclineReason.NO_ACTIVE_HOTLINE,
    CallOutcome.ERROR: DeclineReason.ERROR,
}


@dataclass
class InboundCallResult:
    """What was sent back to Twilio for one inbound call."""

    twiml: str
    outcome: CallOutcome
    actions: list[Action] = field(default_factory=list)
    states: list[CallState] = field(default_factory=list)
    call_log_id: uuid.UUID | None = None


class InboundCallHandler:
    def __init__(
        self,
        resolver: DirectoryResolver,
        builder: PlaybackPlanBuilder,
        recorder: CallLogRecorder,
    ) -> None:
        self._resolver = resolver
        self._builder = builder
        self._recorder = recorder

    def handle(self, payload: InboundCallPayload) -> InboundCallResult:
        states = [CallState.RECEIVED]
        resolved: ResolvedHotline | None = None
        call_log_id = None

        states.append(CallState.RESOLVING)
        try:
            resolved = self._resolver.resolve(payload.To)
            outcome = CallOutcome.ANSWERED
        except NotConfigured:
            logger.info("Call %s to unconfigured number %r", payload.CallSid, payload.To)
            outcome = CallOutcome.NOT_CONFIGURED
        except NoActiveHotline:
            logger.info("Call %s to %s has no active hotline", payload.CallSid, payload.To)
            outcome = CallOutcome.NO_ACTIVE_HOTLINE
        except Exception:
            logger.exception("Directory resolution failed for call %s", payload.CallSid)
            outcome = CallOutcome.ERROR

        states.append(CallState.PLAN_BUILDING)
        if resolved is None:
            actions = self._builder.decline(_OUTCOME_DECLINE_REASONS[outcome])
        else:
            try:
                actions = self._builder.build(resolved.hotline)
            except Exception:
                logger.exception("Failed to build playback plan for call %s", payload.CallSid)
                actions = self._builder.decline(DeclineReason.ERROR)
                outcome = CallOutcome.ERROR

        if resolved is not None:
            states.append(CallState.LOGGING)
            call_log_id = self._recorder.record_attempt(
                org_id=resolved.org_id,
                hotline_id=resolved.hotline.id,
                call_sid=payload.CallSid,
                from_number=payload.From,
                to_number=resolved.phone_number.e164,
            )

        states.append(CallState.RESPONDING)
        try:
            document = twiml.encode(actions)
        except EncodingFault:
            logger.exception("Failed to encode response for call %s", payload.CallSid)
            document = self._fallback_document()
            outcome = CallOutcome.ERROR

        states.append(CallState.DONE)
        return InboundCallResult(
            twiml=document,
            outcome=outcome,
            actions=actions,
            states=states,
            call_log_id=call_log_id,
        )

    def _fallback_document(self) -> str:
        try:
            return twiml.encode(self._builder.decline(DeclineReason.ERROR))
        except EncodingFault:
            logger.exception("Failed to encode fallback response")
            return twiml.FALLBACK_TWIML
