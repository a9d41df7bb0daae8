"""Directory lookups for inbound calls.

Maps a dialed number to its organization and the single active hotline bound
to it:

    1. Normalize the dialed number (whitespace trim only, no fuzzy matching)
    2. Look up PhoneNumber by exact E.164 match → NotConfigured if absent
    3. Look up the active Hotline bound to that number → NoActiveHotline if none

All lookups are read-only. A database timeout is treated the same as a miss.
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, joinedload

from hotline.models.hotline import Hotline
from hotline.models.hotline_audio_file import HotlineAudioFile
from hotline.models.phone_number import PhoneNumber
from hotline.services.telephony.exceptions import NoActiveHotline, NotConfigured

logger = logging.getLogger(__name__)


def normalize_e164(raw: str | None) -> str | None:
    """Return the lookup key for a dialed number, or None if there is none."""
    if raw is None:
        return None
    number = raw.strip()
    return number or None


@dataclass
class ResolvedHotline:
    """A dialed number resolved to its owner and active hotline."""

    org_id: uuid.UUID
    phone_number: PhoneNumber
    hotline: Hotline


class DirectoryStore:
    """Tenant directory reads over a SQLAlchemy session."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def find_phone_number(self, e164: str) -> PhoneNumber | None:
        try:
            return self._db.execute(
                select(PhoneNumber).where(PhoneNumber.e164 == e164)
            ).scalar_one_or_none()
        except OperationalError:
            self._db.rollback()
            logger.warning("Phone number lookup failed for %s, treating as not found", e164, exc_info=True)
            return None

    def find_active_hotlines(self, phone_number_id: uuid.UUID, limit: int = 2) -> list[Hotline]:
        """Active hotlines bound to a number in stable (created_at, id) order."""
        try:
            return list(
                self._db.execute(
                    select(Hotline)
                    .where(
                        Hotline.phone_number_id == phone_number_id,
                        Hotline.status == "active",
                    )
                    .order_by(Hotline.created_at, Hotline.id)
                    .limit(limit)
                )
                .scalars()
                .all()
            )
        except OperationalError:
            self._db.rollback()
            logger.warning(
                "Hotline lookup failed for phone number %s, treating as not found",
                phone_number_id,
                exc_info=True,
            )
            return []

    def list_hotline_audio(self, hotline_id: uuid.UUID, limit: int | None = None) -> list[HotlineAudioFile]:
        """Playlist entries ordered by display_order, then insertion order."""
        stmt = (
            select(HotlineAudioFile)
            .options(joinedload(HotlineAudioFile.audio_asset))
            .where(HotlineAudioFile.hotline_id == hotline_id)
            .order_by(
                HotlineAudioFile.display_order,
                HotlineAudioFile.created_at,
                HotlineAudioFile.id,
            )
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            return list(self._db.execute(stmt).scalars().all())
        except OperationalError:
            self._db.rollback()
            logger.warning("Playlist lookup failed for hotline %s, treating as empty", hotline_id, exc_info=True)
            return []


class DirectoryResolver:
    def __init__(self, store: DirectoryStore) -> None:
        self._store = store

    def resolve(self, dialed: str | None) -> ResolvedHotline:
        """Resolve a dialed number to its organization and active hotline.

        Raises:
            NotConfigured: The number is missing or not provisioned.
            NoActiveHotline: The number has no active hotline bound to it.
        """
        e164 = normalize_e164(dialed)
        if e164 is None:
            raise NotConfigured(dialed)

        phone_number = self._store.find_phone_number(e164)
        if phone_number is None:
            raise NotConfigured(e164)

        hotlines = self._store.find_active_hotlines(phone_number.id)
        if not hotlines:
            raise NoActiveHotline(e164)

        if len(hotlines) > 1:
            logger.error(
                "Data integrity fault: multiple active hotlines bound to %s (phone_number_id=%s); using %s",
                e164,
                phone_number.id,
                hotlines[0].id,
            )

        return ResolvedHotline(
            org_id=phone_number.org_id,
            phone_number=phone_number,
            hotline=hotlines[0],
        )
