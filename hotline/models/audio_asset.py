import uuid
from datetime import datetime

from sqlalchemy import Enum, ForeignKey, Index, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hotline.core.database import Base


class AudioAsset(Base):
    """An audio clip in object storage.

    ``storage_path`` is ``<bucket>/<object name>``. ``hash`` is the SHA-256 of
    the upload, kept for deduplication but not enforced.
    """

    __tablename__ = "audio_assets"
    __table_args__ = (Index("ix_audio_assets_org_id", "org_id"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    title: Mapped[str | None] = mapped_column(String(255))
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    duration_ms: Mapped[int | None] = mapped_column(Integer)
    source: Mapped[str] = mapped_column(
        Enum("upload", "tts", name="audio_asset_source"),
        nullable=False,
        server_default="upload",
    )
    hash: Mapped[str | None] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    organization: Mapped["Organization"] = relationship(back_populates="audio_assets")
    hotline_files: Mapped[list["HotlineAudioFile"]] = relationship(
        back_populates="audio_asset",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<AudioAsset {self.storage_path}>"
