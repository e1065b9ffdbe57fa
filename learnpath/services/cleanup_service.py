"""
Cleanup sweeper — deletes rows that have reached a terminal state.

Runs hourly from Celery beat and, scoped to one email, on every OTP
request. Only terminal rows are matched, so sweeps can overlap with
live traffic and with each other.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import timedelta

from sqlalchemy import and_, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.database import utcnow
from learnpath.models.otp_record import OtpRecord
from learnpath.models.rate_limit import RateLimit
from learnpath.models.refresh_token import RefreshToken

logger = logging.getLogger(__name__)

USED_OTP_GRACE = timedelta(hours=1)
RATE_LIMIT_RETENTION = timedelta(hours=2)
REVOKED_TOKEN_RETENTION = timedelta(hours=24)


@dataclass(frozen=True)
class CleanupResult:
    otps_deleted: int
    rate_limits_deleted: int
    tokens_deleted: int

    def as_dict(self) -> dict:
        return asdict(self)


async def cleanup_expired_records(db: AsyncSession) -> CleanupResult:
    """Full sweep of expired OTPs, stale counters and dead refresh tokens."""
    now = utcnow()

    otps = await db.execute(
        delete(OtpRecord)
        .where(
            or_(
                OtpRecord.expires_at < now,
                and_(OtpRecord.used.is_(True), OtpRecord.created_at < now - USED_OTP_GRACE),
            )
        )
        .execution_options(synchronize_session=False)
    )
    rate_limits = await db.execute(
        delete(RateLimit)
        .where(RateLimit.window_start < now - RATE_LIMIT_RETENTION)
        .execution_options(synchronize_session=False)
    )
    # Revoked tokens are kept for a day as an audit trail
    tokens = await db.execute(
        delete(RefreshToken)
        .where(
            or_(
                RefreshToken.expires_at < now,
                RefreshToken.revoked_at < now - REVOKED_TOKEN_RETENTION,
            )
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    return CleanupResult(
        otps_deleted=otps.rowcount,
        rate_limits_deleted=rate_limits.rowcount,
        tokens_deleted=tokens.rowcount,
    )


async def cleanup_otps_for_email(db: AsyncSession, email: str) -> int:
    """Remove expired or used OTPs for one email. Returns rows deleted."""
    result = await db.execute(
        delete(OtpRecord)
        .where(
            OtpRecord.email == email.lower(),
            or_(OtpRecord.expires_at < utcnow(), OtpRecord.used.is_(True)),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
