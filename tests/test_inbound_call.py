"""Tests for inbound call handling — orchestration and Twilio webhooks."""

from unittest.mock import MagicMock, patch
from xml.etree import ElementTree

import pytest
from sqlalchemy.exc import InternalError, OperationalError
from twilio.request_validator import RequestValidator

from hotline.core.config import settings
from hotline.models import CallLog
from hotline.services.call_log import CallLogRecorder
from hotline.services.directory import DirectoryResolver, DirectoryStore
from hotline.services.inbound_call import CallOutcome, CallState, InboundCallHandler
from hotline.services.playback import PlaybackPlanBuilder
from hotline.services.telephony import twiml
from hotline.services.telephony.exceptions import EncodingFault
from hotline.services.telephony.models import InboundCallPayload

INBOUND_URL = "/api/v1/voice/inbound"
STATUS_URL = "/api/v1/voice/status"


def _children(document: str) -> list[tuple[str, str | None]]:
    root = ElementTree.fromstring(document)
    assert root.tag == "Response"
    return [(child.tag, child.text) for child in root]


def _inbound_form(**overrides) -> dict[str, str]:
    form = {
        "To": "+15550100",
        "From": "+15557777",
        "CallSid": "CA123",
        "AccountSid": "AC123",
        "Direction": "inbound",
    }
    form.update(overrides)
    return {key: value for key, value in form.items() if value is not None}


@pytest.fixture
def handler(db, signer):
    store = DirectoryStore(db)
    return InboundCallHandler(
        resolver=DirectoryResolver(store),
        builder=PlaybackPlanBuilder(store, signer),
        recorder=CallLogRecorder(db),
    )


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


class TestInboundCallHandler:
    def test_full_pipeline_states(self, handler, make_hotline):
        make_hotline()

        result = handler.handle(InboundCallPayload(To="+15550100", From="+15557777", CallSid="CA123"))

        assert result.outcome == CallOutcome.ANSWERED
        assert result.states == [
            CallState.RECEIVED,
            CallState.RESOLVING,
            CallState.PLAN_BUILDING,
            CallState.LOGGING,
            CallState.RESPONDING,
            CallState.DONE,
        ]
        assert result.call_log_id is not None

    def test_unresolved_call_skips_logging(self, handler, db):
        result = handler.handle(InboundCallPayload(To="+19999999", CallSid="CA123"))

        assert result.outcome == CallOutcome.NOT_CONFIGURED
        assert CallState.LOGGING not in result.states
        assert result.states[-1] == CallState.DONE
        assert result.call_log_id is None
        assert db.query(CallLog).count() == 0

    def test_missing_to_is_not_configured(self, handler):
        result = handler.handle(InboundCallPayload(From="+15557777", CallSid="CA123"))

        assert result.outcome == CallOutcome.NOT_CONFIGURED
        assert _children(result.twiml) == [
            ("Say", "This number is not configured. Goodbye."),
            ("Hangup", None),
        ]

    def test_resolver_exception_degrades_to_apology(self, db, signer):
        resolver = MagicMock()
        resolver.resolve.side_effect = RuntimeError("directory exploded")
        recorder = MagicMock()
        handler = InboundCallHandler(resolver, PlaybackPlanBuilder(DirectoryStore(db), signer), recorder)

        result = handler.handle(InboundCallPayload(To="+15550100", CallSid="CA123"))

        assert result.outcome == CallOutcome.ERROR
        assert _children(result.twiml) == [
            ("Say", "Sorry, there was an error processing your call."),
            ("Hangup", None),
        ]
        recorder.record_attempt.assert_not_called()

    def test_plan_build_exception_degrades_and_still_logs(self, handler, db, make_hotline):
        make_hotline()

        with patch.object(PlaybackPlanBuilder, "build", side_effect=RuntimeError("boom")):
            result = handler.handle(InboundCallPayload(To="+15550100", CallSid="CA123"))

        assert result.outcome == CallOutcome.ERROR
        assert _children(result.twiml)[0] == ("Say", "Sorry, there was an error processing your call.")
        assert db.query(CallLog).count() == 1

    def test_encoding_fault_answers_with_apology(self, handler, make_hotline, caplog):
        make_hotline()
        real_encode = twiml.encode
        calls = []

        def _encode_once_fails(actions):
            calls.append(actions)
            if len(calls) == 1:
                raise EncodingFault("bad plan")
            return real_encode(actions)

        with patch.object(twiml, "encode", side_effect=_encode_once_fails):
            result = handler.handle(InboundCallPayload(To="+15550100", CallSid="CA123"))

        assert result.outcome == CallOutcome.ERROR
        assert _children(result.twiml) == [
            ("Say", "Sorry, there was an error processing your call."),
            ("Hangup", None),
        ]
        assert any(r.levelname == "ERROR" for r in caplog.records)

    def test_encoding_fault_twice_uses_static_fallback(self, handler, make_hotline):
        make_hotline()

        with patch.object(twiml, "encode", side_effect=EncodingFault("broken")):
            result = handler.handle(InboundCallPayload(To="+15550100", CallSid="CA123"))

        assert result.twiml == twiml.FALLBACK_TWIML
        assert result.states[-1] == CallState.DONE

    def test_log_failure_does_not_block_answer(self, db, signer, make_hotline):
        make_hotline(tts_text="Hello, welcome")
        store = DirectoryStore(db)
        recorder = MagicMock()
        recorder.record_attempt.return_value = None
        handler = InboundCallHandler(DirectoryResolver(store), PlaybackPlanBuilder(store, signer), recorder)

        result = handler.handle(InboundCallPayload(To="+15550100", CallSid="CA123"))

        assert result.outcome == CallOutcome.ANSWERED
        assert _children(result.twiml)[0] == ("Say", "Hello, welcome")

    def test_playlist_timeout_still_logs_call(self, handler, db, make_hotline):
        """A timed-out lookup aborts the transaction; the call log must still commit."""
        make_hotline(name="Food Bank", mode="audio", tts_text=None)
        real_execute, real_commit, real_rollback = db.execute, db.commit, db.rollback
        aborted = []

        def _execute(statement, *args, **kwargs):
            if "hotline_audio_files" in str(statement):
                aborted.append(True)
                raise OperationalError("SELECT", {}, Exception("canceling statement due to statement timeout"))
            return real_execute(statement, *args, **kwargs)

        def _commit():
            if aborted:
                raise InternalError("COMMIT", {}, Exception("current transaction is aborted"))
            real_commit()

        def _rollback():
            aborted.clear()
            real_rollback()

        with (
            patch.object(db, "execute", side_effect=_execute),
            patch.object(db, "commit", side_effect=_commit),
            patch.object(db, "rollback", side_effect=_rollback),
        ):
            result = handler.handle(InboundCallPayload(To="+15550100", From="+15557777", CallSid="CA123"))

        assert _children(result.twiml)[0] == ("Say", "Welcome to Food Bank. Not fully configured.")
        assert result.call_log_id is not None
        assert db.query(CallLog).filter(CallLog.call_sid == "CA123").count() == 1


# ---------------------------------------------------------------------------
# Inbound webhook
# ---------------------------------------------------------------------------


class TestInboundWebhook:
    def test_unknown_number(self, client, db):
        resp = client.post(INBOUND_URL, data=_inbound_form(To="+19999999"))

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/xml")
        assert _children(resp.text) == [
            ("Say", "This number is not configured. Goodbye."),
            ("Hangup", None),
        ]
        assert db.query(CallLog).count() == 0

    def test_unreadable_body_gets_apology(self, client, db):
        resp = client.post(
            INBOUND_URL,
            content=b"To=+15550100&CallSid=CA123",
            headers={"Content-Type": "multipart/form-data"},
        )

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/xml")
        assert resp.text == twiml.FALLBACK_TWIML
        assert db.query(CallLog).count() == 0

    def test_missing_to(self, client, db):
        resp = client.post(INBOUND_URL, data=_inbound_form(To=None))

        assert resp.status_code == 200
        assert _children(resp.text) == [
            ("Say", "This number is not configured. Goodbye."),
            ("Hangup", None),
        ]
        assert db.query(CallLog).count() == 0

    def test_no_active_hotline(self, client, db, make_hotline):
        make_hotline(status="paused")

        resp = client.post(INBOUND_URL, data=_inbound_form())

        assert _children(resp.text) == [
            ("Say", "No active hotline found. Goodbye."),
            ("Hangup", None),
        ]
        assert db.query(CallLog).count() == 0

    def test_tts_hotline(self, client, db, org, make_hotline):
        hotline = make_hotline(mode="tts", tts_text="Hello, welcome")

        resp = client.post(INBOUND_URL, data=_inbound_form())

        root = ElementTree.fromstring(resp.text)
        assert _children(resp.text) == [("Say", "Hello, welcome"), ("Hangup", None)]
        assert root.find("Say").attrib == {"voice": "alice", "language": "en-US"}

        call_log = db.query(CallLog).one()
        assert call_log.status == "ringing"
        assert call_log.call_sid == "CA123"
        assert call_log.org_id == org.id
        assert call_log.hotline_id == hotline.id
        assert call_log.from_number == "+15557777"

    def test_audio_hotline_plays_first_clip_only(self, client, make_hotline, add_audio):
        hotline = make_hotline(mode="audio", tts_text=None)
        add_audio(hotline, "audio-assets/first.mp3", display_order=0)
        add_audio(hotline, "audio-assets/second.mp3", display_order=1)

        resp = client.post(INBOUND_URL, data=_inbound_form())

        children = _children(resp.text)
        assert [tag for tag, _ in children] == ["Play", "Hangup"]
        assert "/api/v1/storage/audio-assets/first.mp3?token=" in children[0][1]

    def test_audio_hotline_without_clips(self, client, db, make_hotline):
        make_hotline(name="Food Bank", mode="audio", tts_text=None)

        resp = client.post(INBOUND_URL, data=_inbound_form())

        assert resp.status_code == 200
        assert _children(resp.text) == [
            ("Say", "Welcome to Food Bank. Not fully configured."),
            ("Hangup", None),
        ]
        assert db.query(CallLog).count() == 1

    def test_simple_ivr_hotline(self, client, make_hotline):
        make_hotline(mode="simple_ivr")

        resp = client.post(INBOUND_URL, data=_inbound_form())

        assert _children(resp.text) == [
            ("Say", "This menu is not configured yet."),
            ("Hangup", None),
        ]

    def test_played_audio_is_fetchable(self, client, make_hotline, add_audio, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "STORAGE_DIR", str(tmp_path))
        (tmp_path / "audio-assets").mkdir()
        (tmp_path / "audio-assets" / "first.mp3").write_bytes(b"ID3clip")
        hotline = make_hotline(mode="audio")
        add_audio(hotline, "audio-assets/first.mp3")

        resp = client.post(INBOUND_URL, data=_inbound_form())
        play_url = ElementTree.fromstring(resp.text).find("Play").text
        fetched = client.get(play_url.removeprefix("https://hotline.test"))

        assert fetched.status_code == 200
        assert fetched.content == b"ID3clip"


class TestTwilioSignatureValidation:
    @pytest.fixture(autouse=True)
    def _enable_validation(self, monkeypatch):
        monkeypatch.setattr(settings, "TWILIO_VALIDATE_SIGNATURE", True)
        monkeypatch.setattr(settings, "TWILIO_AUTH_TOKEN", "test-auth-token")

    def test_missing_signature_rejected(self, client):
        resp = client.post(INBOUND_URL, data=_inbound_form())
        assert resp.status_code == 403

    def test_valid_signature_accepted(self, client, make_hotline):
        make_hotline()
        form = _inbound_form()
        signature = RequestValidator("test-auth-token").compute_signature(f"http://testserver{INBOUND_URL}", form)

        resp = client.post(INBOUND_URL, data=form, headers={"X-Twilio-Signature": signature})

        assert resp.status_code == 200
        assert _children(resp.text)[0] == ("Say", "Hello, welcome")

    def test_status_callback_requires_signature(self, client):
        resp = client.post(STATUS_URL, data={"CallSid": "CA123", "CallStatus": "completed"})
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Status callback webhook
# ---------------------------------------------------------------------------


class TestStatusCallbackWebhook:
    def test_updates_call_log(self, client, db, make_hotline):
        make_hotline()
        client.post(INBOUND_URL, data=_inbound_form())

        resp = client.post(
            STATUS_URL,
            data={
                "CallSid": "CA123",
                "CallStatus": "completed",
                "CallDuration": "42",
                "RecordingUrl": "https://api.twilio.com/recordings/RE1",
            },
        )

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "call_status": "completed"}
        db.expire_all()
        call_log = db.query(CallLog).one()
        assert call_log.status == "completed"
        assert call_log.duration_s == 42
        assert call_log.recording_url == "https://api.twilio.com/recordings/RE1"
        assert call_log.ended_at is not None

    def test_same_callback_twice(self, client, db, make_hotline):
        make_hotline()
        client.post(INBOUND_URL, data=_inbound_form())
        form = {"CallSid": "CA123", "CallStatus": "completed", "CallDuration": "42"}

        first = client.post(STATUS_URL, data=form)
        second = client.post(STATUS_URL, data=form)

        assert first.json() == second.json() == {"status": "ok", "call_status": "completed"}
        db.expire_all()
        call_log = db.query(CallLog).one()
        assert call_log.status == "completed"
        assert call_log.duration_s == 42

    def test_unknown_call_sid(self, client, db):
        resp = client.post(STATUS_URL, data={"CallSid": "CA-unknown", "CallStatus": "completed"})

        assert resp.status_code == 200
        assert resp.json()["status"] == "ignored"
        assert db.query(CallLog).count() == 0

    def test_missing_call_sid(self, client):
        resp = client.post(STATUS_URL, data={"CallStatus": "completed"})

        assert resp.status_code == 200
        assert resp.json() == {"status": "ignored", "reason": "no CallSid"}

    def test_update_failure_still_acknowledged(self, client):
        with patch.object(CallLogRecorder, "reconcile", side_effect=RuntimeError("db down")):
            resp = client.post(STATUS_URL, data={"CallSid": "CA123", "CallStatus": "completed"})

        assert resp.status_code == 200
        assert resp.json() == {"status": "ignored", "reason": "update failed"}
