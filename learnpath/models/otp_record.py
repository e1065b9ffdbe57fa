"""
OTP record — one issued login code for an email address.

Only the HMAC digest of the code is stored. Lookups always take the
newest unused, unexpired record for an email.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from learnpath.database import Base, as_utc


class OtpRecord(Base):
    __tablename__ = "otp_records"
    __table_args__ = (
        Index("ix_otp_records_email_created_at", "email", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    otp_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    ip_address: Mapped[str | None] = mapped_column(String(45))
    user_agent: Mapped[str | None] = mapped_column(String(512))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return as_utc(self.expires_at) <= now

    def __repr__(self) -> str:
        return f"<OtpRecord {self.id} email={self.email!r} used={self.used} attempts={self.attempts}>"
