"""Hotline configuration bound to a phone number.

A hotline decides what a caller hears: a text-to-speech script (``tts``), the
audio playlist in ``hotline_audio_files`` (``audio``), or an interactive menu
(``simple_ivr``, not yet available). At most one ``active`` hotline may be
bound to a phone number; the partial unique index below enforces it.
"""

import uuid
from datetime import datetime

from sqlalchemy import Enum, ForeignKey, Index, String, Text, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hotline.core.database import Base

HOTLINE_MODES = ("tts", "audio", "simple_ivr")
HOTLINE_STATUSES = ("active", "paused", "archived")


class Hotline(Base):
    __tablename__ = "hotlines"
    __table_args__ = (
        Index("ix_hotlines_org_id", "org_id"),
        Index("ix_hotlines_phone_number_status", "phone_number_id", "status"),
        Index(
            "uq_hotlines_active_phone_number",
            "phone_number_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    phone_number_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("phone_numbers.id", ondelete="SET NULL")
    )
    slug: Mapped[str | None] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    mode: Mapped[str] = mapped_column(
        Enum(*HOTLINE_MODES, name="hotline_mode"),
        nullable=False,
        server_default="tts",
    )
    tts_text: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(
        Enum(*HOTLINE_STATUSES, name="hotline_status"),
        nullable=False,
        server_default="active",
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    organization: Mapped["Organization"] = relationship(back_populates="hotlines")
    phone_number: Mapped["PhoneNumber | None"] = relationship(back_populates="hotlines")
    audio_files: Mapped[list["HotlineAudioFile"]] = relationship(
        back_populates="hotline",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Hotline {self.name} ({self.mode}/{self.status})>"
