"""Audit trail writer. Entries are only ever inserted."""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.models.audit_log import AuditAction, AuditLog


async def log_event(
    db: AsyncSession,
    action: AuditAction,
    *,
    email: str = "",
    user_id: uuid.UUID | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    details: dict | None = None,
) -> AuditLog:
    entry = AuditLog(
        action=action,
        email=email,
        user_id=user_id,
        ip_address=ip_address,
        user_agent=user_agent,
        details=details,
    )
    db.add(entry)
    await db.flush()
    return entry
