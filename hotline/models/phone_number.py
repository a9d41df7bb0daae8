import uuid
from datetime import datetime

from sqlalchemy import Enum, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hotline.core.database import Base


class PhoneNumber(Base):
    """A provisioned number owned by an organization.

    ``e164`` is globally unique and is the lookup key for inbound calls.
    Only ``status`` changes after provisioning.
    """

    __tablename__ = "phone_numbers"
    __table_args__ = (
        Index("ix_phone_numbers_e164", "e164", unique=True),
        Index("ix_phone_numbers_org_id", "org_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    e164: Mapped[str] = mapped_column(String(20), nullable=False)
    twilio_sid: Mapped[str | None] = mapped_column(String(64))
    region: Mapped[str | None] = mapped_column(String(64))
    status: Mapped[str] = mapped_column(
        Enum("active", "inactive", "released", name="phone_number_status"),
        nullable=False,
        server_default="active",
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    organization: Mapped["Organization"] = relationship(back_populates="phone_numbers")
    hotlines: Mapped[list["Hotline"]] = relationship(back_populates="phone_number")

    def __repr__(self) -> str:
        return f"<PhoneNumber {self.e164} ({self.status})>"
