"""Call log recording and status reconciliation.

A row is inserted with status ``ringing`` when an inbound call is routed to a
hotline. The status callback later updates it by CallSid. Inserts are
best-effort: a failed write is logged and swallowed so the caller is still
answered. Reconciliation only ever updates; it never creates a row.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from hotline.models.call_log import CallLog
from hotline.services.telephony.models import CallStatus, StatusCallbackPayload

logger = logging.getLogger(__name__)

_TERMINAL_VALUES = frozenset(status.value for status in CallStatus if status.is_terminal)


class CallLogRecorder:
    def __init__(self, db: Session) -> None:
        self._db = db

    def record_attempt(
        self,
        org_id: uuid.UUID,
        hotline_id: uuid.UUID,
        call_sid: str | None,
        from_number: str | None,
        to_number: str,
    ) -> uuid.UUID | None:
        """Insert the ``ringing`` row for an inbound call.

        Returns the call log ID, or None if the call was not logged.
        """
        if not call_sid:
            logger.warning("Inbound call to %s has no CallSid, not logging", to_number)
            return None

        try:
            call_log = CallLog(
                org_id=org_id,
                hotline_id=hotline_id,
                call_sid=call_sid,
                from_number=from_number,
                to_number=to_number,
                status=CallStatus.RINGING.value,
                started_at=datetime.now(timezone.utc),
            )
            self._db.add(call_log)
            self._db.commit()
            self._db.refresh(call_log)
            logger.info("Logged call %s for hotline %s (call_log=%s)", call_sid, hotline_id, call_log.id)
            return call_log.id
        except Exception:
            self._db.rollback()
            logger.exception("Failed to log inbound call %s", call_sid)
            return None

    def reconcile(self, payload: StatusCallbackPayload) -> CallLog | None:
        """Apply a status callback to the matching call log.

        Terminal statuses overwrite the status and set duration and recording
        when present; ``ended_at`` is stamped only once. Non-terminal statuses
        never overwrite a terminal row. Returns the updated row, or None when
        nothing was updated.
        """
        if not payload.CallSid:
            return None

        try:
            status = CallStatus(payload.CallStatus)
        except ValueError:
            logger.warning("Unknown call status %r for %s", payload.CallStatus, payload.CallSid)
            return None

        call_log = self._db.execute(
            select(CallLog).where(CallLog.call_sid == payload.CallSid)
        ).scalar_one_or_none()
        if call_log is None:
            logger.info("Status callback for unlogged call %s, ignoring", payload.CallSid)
            return None

        if not status.is_terminal:
            if call_log.status in _TERMINAL_VALUES:
                logger.info(
                    "Ignoring %s for call %s already in terminal status %s",
                    status.value,
                    payload.CallSid,
                    call_log.status,
                )
                return None
            call_log.status = status.value
        else:
            call_log.status = status.value
            if call_log.ended_at is None:
                call_log.ended_at = datetime.now(timezone.utc)
            duration = payload.duration_seconds()
            if duration is not None:
                call_log.duration_s = duration
            elif payload.CallDuration is not None:
                logger.warning("Unparseable CallDuration %r for %s", payload.CallDuration, payload.CallSid)
            if payload.RecordingUrl:
                call_log.recording_url = payload.RecordingUrl

        self._db.commit()
        self._db.refresh(call_log)
        logger.info(
            "Updated call log %s: status=%s duration=%s",
            payload.CallSid,
            call_log.status,
            call_log.duration_s,
        )
        return call_log
