import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hotline.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HotlineAudioFile(Base):
    """Playlist entry linking a hotline to an audio asset.

    Entries play in ``display_order``; equal orders fall back to insertion
    order, so ``created_at`` is set client-side with microsecond precision.
    """

    __tablename__ = "hotline_audio_files"
    __table_args__ = (
        Index("ix_hotline_audio_files_hotline_order", "hotline_id", "display_order"),
        Index("ix_hotline_audio_files_audio_asset_id", "audio_asset_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    hotline_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("hotlines.id", ondelete="CASCADE"), nullable=False
    )
    audio_asset_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("audio_assets.id", ondelete="CASCADE"), nullable=False
    )
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    hotline: Mapped["Hotline"] = relationship(back_populates="audio_files")
    audio_asset: Mapped["AudioAsset"] = relationship(back_populates="hotline_files")

    def __repr__(self) -> str:
        return f"<HotlineAudioFile #{self.display_order}>"
