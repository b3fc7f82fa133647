"""Click event model for referral link visits."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class ClickEvent(Base):
    """Represents one recorded visit attributed to a referral code."""

    __tablename__ = "click_events"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

    # Foreign key to the owning user
    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id"),
        index=True,
        nullable=False,
    )

    # Code at click time (denormalized)
    referral_code: Mapped[str] = mapped_column(String(64), index=True, nullable=False)

    # Request metadata; sentinels instead of NULL
    ip: Mapped[str] = mapped_column(String(64), nullable=False, default="unknown")
    user_agent: Mapped[str] = mapped_column(Text, nullable=False, default="unknown")
    referrer: Mapped[str] = mapped_column(Text, nullable=False, default="direct")

    # Timestamp (UTC)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        index=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ClickEvent(id={self.id}, code={self.referral_code}, ip={self.ip})>"
