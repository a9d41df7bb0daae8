import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from hotline.core.database import Base


class CallLog(Base):
    """One inbound call attempt.

    Inserted with status ``ringing`` when the call is routed, then updated by
    the status callback (keyed by ``call_sid``) once the call ends.
    """

    __tablename__ = "call_logs"
    __table_args__ = (
        Index("ix_call_logs_call_sid", "call_sid", unique=True),
        Index("ix_call_logs_org_id", "org_id"),
        Index("ix_call_logs_hotline_id", "hotline_id"),
        Index("ix_call_logs_started_at", "started_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    hotline_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("hotlines.id"), nullable=False)
    call_sid: Mapped[str] = mapped_column(String(64), nullable=False)
    from_number: Mapped[str | None] = mapped_column(String(32))
    to_number: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="ringing")
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    duration_s: Mapped[int | None] = mapped_column(Integer)
    recording_url: Mapped[str | None] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<CallLog {self.call_sid} ({self.status})>"
