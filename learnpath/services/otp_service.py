"""
OTP lifecycle — issuing and verifying emailed login codes.

Per email the flow is: no active code → code issued → verified, expired
or burned after too many wrong guesses. Expected failures come back as
result objects with a stable ``error`` code; only storage failures
raise.

Verification never says whether an email has an account or a pending
code: every failure is the same ``INVALID_OTP``.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.config import settings
from learnpath.core.security import generate_otp, hash_otp, verify_otp_hash
from learnpath.database import as_utc, dialect_insert, utcnow
from learnpath.models.audit_log import AuditAction
from learnpath.models.otp_record import OtpRecord
from learnpath.models.rate_limit import RateLimitType
from learnpath.models.user import User
from learnpath.services.audit_service import log_event
from learnpath.services.cleanup_service import cleanup_otps_for_email
from learnpath.services.email_service import Mailer
from learnpath.services.rate_limit_service import check_rate_limit

logger = logging.getLogger(__name__)

INVALID_OTP_MESSAGE = "Invalid or expired verification code"


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class OtpRequestResult:
    success: bool
    message: str
    error: str | None = None
    expires_at: datetime | None = None
    resend_available_at: datetime | None = None
    remaining_requests: int | None = None
    retry_after: datetime | None = None
    wait_seconds: int | None = None


@dataclass
class OtpVerifyResult:
    success: bool
    message: str
    error: str | None = None
    user: User | None = None
    is_new_user: bool = False
    attempts_remaining: int | None = None
    retry_after: datetime | None = None
    wait_seconds: int | None = None


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _invalid(attempts_remaining: int | None = None) -> OtpVerifyResult:
    return OtpVerifyResult(
        success=False,
        message=INVALID_OTP_MESSAGE,
        error="INVALID_OTP",
        attempts_remaining=attempts_remaining,
    )


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


async def request_otp(
    db: AsyncSession,
    email: str,
    mailer: Mailer,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> OtpRequestResult:
    """Issue a fresh code for ``email`` and hand it to ``mailer``."""
    email = normalize_email(email)
    now = utcnow()
    cooldown = timedelta(seconds=settings.OTP_RESEND_COOLDOWN_SECONDS)

    last_created = await db.scalar(
        select(OtpRecord.created_at)
        .where(OtpRecord.email == email, OtpRecord.used.is_(False))
        .order_by(OtpRecord.created_at.desc())
        .limit(1)
    )
    if last_created is not None:
        resend_available_at = as_utc(last_created) + cooldown
        if now < resend_available_at:
            return OtpRequestResult(
                success=False,
                message="Please wait before requesting another OTP",
                error="COOLDOWN_ACTIVE",
                resend_available_at=resend_available_at,
                wait_seconds=math.ceil((resend_available_at - now).total_seconds()),
            )

    rate = await check_rate_limit(db, email, RateLimitType.OTP_REQUEST)
    if not rate.allowed:
        return OtpRequestResult(
            success=False,
            message="Too many OTP requests. Please try again later.",
            error="RATE_LIMIT_EXCEEDED",
            retry_after=rate.retry_after,
            wait_seconds=rate.wait_seconds,
        )

    removed = await cleanup_otps_for_email(db, email)
    if removed:
        logger.debug("Removed %d stale OTPs for %s", removed, email)

    otp = generate_otp()
    now = utcnow()
    expires_at = now + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)
    db.add(
        OtpRecord(
            email=email,
            otp_hash=hash_otp(otp, email),
            expires_at=expires_at,
            created_at=now,
            ip_address=ip_address,
            user_agent=user_agent,
        )
    )
    # Persist before sending so a failed send can still be retried via resend
    await db.commit()

    sent = await mailer.send_otp(email, otp)
    if not sent and settings.is_production:
        logger.error("OTP email to %s could not be sent", email)
        return OtpRequestResult(
            success=False,
            message="Failed to send OTP email. Please try again.",
            error="EMAIL_SEND_FAILED",
        )

    await log_event(
        db, AuditAction.OTP_REQUESTED,
        email=email, ip_address=ip_address, user_agent=user_agent,
    )
    await db.commit()

    return OtpRequestResult(
        success=True,
        message="OTP sent to your email",
        expires_at=expires_at,
        resend_available_at=now + cooldown,
        remaining_requests=rate.remaining,
    )


# ---------------------------------------------------------------------------
# Verify
# ---------------------------------------------------------------------------


async def _upsert_user(db: AsyncSession, email: str) -> tuple[User, bool]:
    """
    Find or create the user for ``email``.

    The insert is guarded by the unique email constraint, so two verify
    calls racing on signup both end up with the same row and only the
    one whose insert landed reports a new user.
    """
    now = utcnow()
    table = User.__table__
    inserted = await db.scalar(
        dialect_insert(db, table)
        .values(id=uuid.uuid4(), email=email, created_at=now, updated_at=now)
        .on_conflict_do_nothing(index_elements=["email"])
        .returning(table.c.id)
    )
    user = (await db.execute(select(User).where(User.email == email))).scalar_one()
    return user, inserted is not None


async def verify_otp(
    db: AsyncSession,
    email: str,
    otp: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> OtpVerifyResult:
    """Check ``otp`` against the newest active code for ``email``."""
    email = normalize_email(email)

    rate = await check_rate_limit(db, email, RateLimitType.OTP_VERIFY)
    if not rate.allowed:
        return OtpVerifyResult(
            success=False,
            message="Too many verification attempts. Please try again later.",
            error="RATE_LIMIT_EXCEEDED",
            retry_after=rate.retry_after,
            wait_seconds=rate.wait_seconds,
        )

    audit = {"email": email, "ip_address": ip_address, "user_agent": user_agent}

    record = (
        await db.execute(
            select(OtpRecord)
            .where(
                OtpRecord.email == email,
                OtpRecord.used.is_(False),
                OtpRecord.expires_at > utcnow(),
            )
            .order_by(OtpRecord.created_at.desc())
            .limit(1)
        )
    ).scalar_one_or_none()

    if record is None:
        await log_event(db, AuditAction.OTP_FAILED, details={"reason": "no_record"}, **audit)
        await db.commit()
        return _invalid()

    if record.attempts >= settings.OTP_MAX_ATTEMPTS:
        await db.execute(
            update(OtpRecord)
            .where(OtpRecord.id == record.id)
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        await log_event(db, AuditAction.OTP_FAILED, details={"reason": "max_attempts"}, **audit)
        await db.commit()
        return _invalid()

    if not verify_otp_hash(otp, email, record.otp_hash):
        attempts = await db.scalar(
            update(OtpRecord)
            .where(
                OtpRecord.id == record.id,
                OtpRecord.used.is_(False),
                OtpRecord.attempts < settings.OTP_MAX_ATTEMPTS,
            )
            .values(attempts=OtpRecord.attempts + 1)
            .returning(OtpRecord.attempts)
            .execution_options(synchronize_session=False)
        )
        if attempts is None:
            # Burned or consumed by a concurrent request
            await log_event(db, AuditAction.OTP_FAILED, details={"reason": "max_attempts"}, **audit)
            await db.commit()
            return _invalid()

        await log_event(
            db, AuditAction.OTP_FAILED,
            details={"reason": "invalid_code", "attempts": attempts}, **audit,
        )
        await db.commit()
        return _invalid(attempts_remaining=max(0, settings.OTP_MAX_ATTEMPTS - attempts))

    consumed = await db.scalar(
        update(OtpRecord)
        .where(OtpRecord.id == record.id, OtpRecord.used.is_(False))
        .values(used=True)
        .returning(OtpRecord.id)
        .execution_options(synchronize_session=False)
    )
    if consumed is None:
        await log_event(db, AuditAction.OTP_FAILED, details={"reason": "no_record"}, **audit)
        await db.commit()
        return _invalid()

    user, is_new_user = await _upsert_user(db, email)
    await log_event(
        db,
        AuditAction.SIGNUP_SUCCESS if is_new_user else AuditAction.LOGIN_SUCCESS,
        user_id=user.id,
        **audit,
    )
    await db.commit()

    logger.info("%s for user %s", "Signup" if is_new_user else "Login", user.id)
    return OtpVerifyResult(
        success=True,
        message="Authentication successful",
        user=user,
        is_new_user=is_new_user,
    )
