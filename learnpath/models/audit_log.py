"""Append-only audit trail for authentication events."""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, ForeignKey, String, Uuid, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from learnpath.database import Base


class AuditAction(str, enum.Enum):
    OTP_REQUESTED = "OTP_REQUESTED"
    OTP_FAILED = "OTP_FAILED"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    SIGNUP_SUCCESS = "SIGNUP_SUCCESS"
    LOGOUT = "LOGOUT"


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), index=True
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="", index=True)
    action: Mapped[AuditAction] = mapped_column(
        SAEnum(AuditAction, name="auditaction"), nullable=False
    )
    ip_address: Mapped[str | None] = mapped_column(String(45))
    user_agent: Mapped[str | None] = mapped_column(String(512))
    # "metadata" is reserved on declarative classes
    details: Mapped[dict | None] = mapped_column("metadata", JSON)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.action.value} email={self.email!r}>"
