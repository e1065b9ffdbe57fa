"""
Rate-limit counter — one row per (identifier, action type).

The row is the shared state all server instances race on; it is only
ever mutated with single conditional statements.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, UniqueConstraint, Uuid, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from learnpath.database import Base


class RateLimitType(str, enum.Enum):
    OTP_REQUEST = "otp_request"
    OTP_VERIFY = "otp_verify"
    IP_REQUEST = "ip_request"


class RateLimit(Base):
    __tablename__ = "rate_limits"
    __table_args__ = (
        UniqueConstraint("identifier", "type", name="uq_rate_limits_identifier_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    identifier: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[RateLimitType] = mapped_column(
        SAEnum(
            RateLimitType,
            name="ratelimittype",
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
    )
    count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    window_start: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    def __repr__(self) -> str:
        return f"<RateLimit {self.identifier!r} type={self.type.value} count={self.count}>"
