"""Playback plan construction.

Turns a resolved hotline into the ordered list of voice actions a caller
hears. Content problems never raise out of the builder; they degrade to a
spoken notice instead. Every plan ends with a single Hangup.
"""

import logging

from hotline.models.hotline import Hotline
from hotline.services.directory import DirectoryStore
from hotline.services.storage import AudioUrlSigner
from hotline.services.telephony.exceptions import ContentUnavailable
from hotline.services.telephony.models import (
    Action,
    Decline,
    DeclineReason,
    Hangup,
    PlayAudioSequence,
    Speak,
)

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = "This number is not configured. Goodbye."
NO_ACTIVE_HOTLINE_MESSAGE = "No active hotline found. Goodbye."
MENU_NOT_CONFIGURED_MESSAGE = "This menu is not configured yet."
AUDIO_UNAVAILABLE_MESSAGE = "Audio file not available."
ERROR_MESSAGE = "Sorry, there was an error processing your call."

_DECLINE_MESSAGES: dict[DeclineReason, str] = {
    DeclineReason.NOT_CONFIGURED: NOT_CONFIGURED_MESSAGE,
    DeclineReason.NO_ACTIVE_HOTLINE: NO_ACTIVE_HOTLINE_MESSAGE,
    DeclineReason.MENU_NOT_CONFIGURED: MENU_NOT_CONFIGURED_MESSAGE,
    DeclineReason.CONTENT_UNAVAILABLE: AUDIO_UNAVAILABLE_MESSAGE,
    DeclineReason.ERROR: ERROR_MESSAGE,
}


def not_fully_configured_message(name: str) -> str:
    return f"Welcome to {name}. Not fully configured."


class PlaybackPlanBuilder:
    """Builds playback plans for resolved hotlines.

    Args:
        store: Directory reads for the audio playlist.
        signer: Issues time-limited fetch URLs for audio assets.
        voice: Twilio ``<Say>`` voice for spoken actions.
        locale: Language of spoken actions.
        url_ttl_seconds: Lifetime of signed audio URLs (at least one hour).
        playlist_limit: Number of playlist entries played per call.
    """

    def __init__(
        self,
        store: DirectoryStore,
        signer: AudioUrlSigner,
        voice: str = "alice",
        locale: str = "en-US",
        url_ttl_seconds: int = 3600,
        playlist_limit: int = 1,
    ) -> None:
        self._store = store
        self._signer = signer
        self._voice = voice
        self._locale = locale
        self._url_ttl_seconds = url_ttl_seconds
        self._playlist_limit = playlist_limit

    def build(self, hotline: Hotline) -> list[Action]:
        """Build the playback plan for a resolved hotline."""
        match hotline.mode:
            case "tts":
                content = self._tts_actions(hotline)
            case "audio":
                content = self._audio_actions(hotline)
            case "simple_ivr":
                content = self._decline(DeclineReason.MENU_NOT_CONFIGURED)
            case _:
                logger.warning("Unknown mode '%s' on hotline %s", hotline.mode, hotline.id)
                content = self._decline(
                    DeclineReason.CONTENT_UNAVAILABLE,
                    not_fully_configured_message(hotline.name),
                )
        return [content, Hangup()]

    def decline(self, reason: DeclineReason) -> list[Action]:
        """Plan for a call that gets a notice instead of hotline content."""
        return [self._decline(reason), Hangup()]

    def _tts_actions(self, hotline: Hotline) -> Action:
        script = (hotline.tts_text or "").strip()
        if not script:
            logger.info("Hotline %s is in tts mode with an empty script", hotline.id)
            return self._decline(
                DeclineReason.CONTENT_UNAVAILABLE,
                not_fully_configured_message(hotline.name),
            )
        return Speak(text=script, voice=self._voice, locale=self._locale)

    def _audio_actions(self, hotline: Hotline) -> Action:
        try:
            urls = self._signed_playlist_urls(hotline)
        except ContentUnavailable as exc:
            logger.info("Audio unavailable for hotline %s: %s", hotline.id, exc)
            return self._decline(DeclineReason.CONTENT_UNAVAILABLE, str(exc))
        return PlayAudioSequence(urls=urls)

    def _signed_playlist_urls(self, hotline: Hotline) -> list[str]:
        """Signed URLs for the head of the hotline's playlist.

        Raises:
            ContentUnavailable: With the message to speak instead.
        """
        entries = self._store.list_hotline_audio(hotline.id, limit=self._playlist_limit)
        if not entries:
            raise ContentUnavailable(not_fully_configured_message(hotline.name))

        urls = []
        for entry in entries:
            asset = entry.audio_asset
            try:
                urls.append(self._signer.sign(asset.storage_path, self._url_ttl_seconds))
            except Exception:
                logger.warning(
                    "Failed to sign audio asset %s for hotline %s",
                    asset.id,
                    hotline.id,
                    exc_info=True,
                )

        if not urls:
            raise ContentUnavailable(AUDIO_UNAVAILABLE_MESSAGE)
        return urls

    def _decline(self, reason: DeclineReason, text: str | None = None) -> Decline:
        return Decline(
            reason=reason,
            text=text or _DECLINE_MESSAGES[reason],
            voice=self._voice,
            locale=self._locale,
        )
