"""
Authentication endpoints — passwordless email OTP and session management.

Login flow:
  1. POST /otp/request   — email a 6-digit code
  2. POST /otp/verify    — verify the code, receive an access token and
                           the refresh-token cookie

Token management:
  3. POST /token/refresh — rotate the refresh cookie, new access token
  4. POST /logout        — revoke the presented refresh token

Sessions (bearer access token):
  5. GET    /session             — current user
  6. GET    /sessions            — active sessions, one per token family
  7. DELETE /sessions/{familyId} — revoke one session
  8. DELETE /sessions            — revoke all (optionally keep current)
"""

import logging
import re
import uuid

from fastapi import APIRouter, Cookie, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.api.deps import CurrentUser, require_auth
from learnpath.config import settings
from learnpath.core.devices import get_client_ip, get_user_agent
from learnpath.core.errors import APIError, bad_request, not_found, unauthorized
from learnpath.database import get_db
from learnpath.models.audit_log import AuditAction
from learnpath.models.rate_limit import RateLimitType
from learnpath.models.user import User
from learnpath.schemas.auth import (
    OtpRequestBody,
    OtpRequestData,
    OtpVerifyBody,
    OtpVerifyData,
    RefreshData,
    RevokeAllData,
    SessionData,
    SessionRead,
    SessionsData,
    UserRead,
)
from learnpath.schemas.common import Envelope, MessageResponse
from learnpath.services import interest_service, otp_service, token_service
from learnpath.services.audit_service import log_event
from learnpath.services.email_service import Mailer, get_mailer
from learnpath.services.rate_limit_service import check_rate_limit
from learnpath.services.token_service import DeviceInfo

logger = logging.getLogger(__name__)

router = APIRouter()

_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_OTP_RE = re.compile(r"[0-9]{6}")

# RFC 5321 path limit; also fits the email columns
MAX_EMAIL_LENGTH = 254


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _device(request: Request) -> DeviceInfo:
    return DeviceInfo(
        user_agent=get_user_agent(request),
        ip_address=get_client_ip(request),
    )


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "strict",
        "path": settings.REFRESH_COOKIE_PATH,
    }


def set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.REFRESH_COOKIE_NAME,
        token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        **_cookie_options(),
    )


def clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(settings.REFRESH_COOKIE_NAME, **_cookie_options())


def _too_many(message: str, code: str, retry_after, wait_seconds, **extra) -> APIError:
    data = {"retryAfter": retry_after, "waitSeconds": wait_seconds, **extra}
    headers = {"Retry-After": str(wait_seconds)} if wait_seconds is not None else None
    return APIError(status.HTTP_429_TOO_MANY_REQUESTS, code, message, data, headers)


# ---------------------------------------------------------------------------
# OTP flow
# ---------------------------------------------------------------------------


@router.post("/otp/request", response_model=Envelope[OtpRequestData])
async def request_otp(
    payload: OtpRequestBody,
    request: Request,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """
    Email a login code.

    1. Validate the email (400 MISSING_EMAIL / INVALID_EMAIL)
    2. Per-IP limit (429)
    3. Cooldown (400 COOLDOWN_ACTIVE) and per-email limit (429)
    4. Persist the hashed code and send it
    """
    email = payload.email
    if not email or not email.strip():
        raise bad_request("MISSING_EMAIL", "Email is required")
    if len(email.strip()) > MAX_EMAIL_LENGTH or not _EMAIL_RE.fullmatch(email.strip()):
        raise bad_request("INVALID_EMAIL", "Please enter a valid email address")

    device = _device(request)

    ip_limit = await check_rate_limit(db, device.ip_address, RateLimitType.IP_REQUEST)
    if not ip_limit.allowed:
        raise _too_many(
            "Too many requests from this address. Please try again later.",
            "RATE_LIMIT_EXCEEDED",
            ip_limit.retry_after,
            ip_limit.wait_seconds,
        )

    result = await otp_service.request_otp(
        db, email, mailer,
        ip_address=device.ip_address,
        user_agent=device.user_agent,
    )

    if not result.success:
        if result.error == "RATE_LIMIT_EXCEEDED":
            raise _too_many(
                result.message, result.error, result.retry_after, result.wait_seconds,
            )
        raise bad_request(
            result.error,
            result.message,
            {
                "retryAfter": result.retry_after,
                "waitSeconds": result.wait_seconds,
                "resendAvailableAt": result.resend_available_at,
            },
        )

    return Envelope(
        message=result.message,
        data=OtpRequestData(
            email=otp_service.normalize_email(email),
            expires_at=result.expires_at,
            resend_available_at=result.resend_available_at,
            remaining_requests=result.remaining_requests,
        ),
    )


@router.post("/otp/verify", response_model=Envelope[OtpVerifyData])
async def verify_otp(
    payload: OtpVerifyBody,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Verify a login code, issue tokens and set the refresh cookie."""
    if not payload.email or not payload.otp:
        raise bad_request("MISSING_FIELDS", "Email and OTP are required")
    if len(payload.email.strip()) > MAX_EMAIL_LENGTH:
        raise bad_request("INVALID_EMAIL", "Please enter a valid email address")
    if not _OTP_RE.fullmatch(payload.otp):
        raise bad_request("INVALID_OTP_FORMAT", "OTP must be a 6-digit code")

    device = _device(request)
    result = await otp_service.verify_otp(
        db, payload.email, payload.otp,
        ip_address=device.ip_address,
        user_agent=device.user_agent,
    )

    if not result.success or result.user is None:
        if result.error == "RATE_LIMIT_EXCEEDED":
            raise _too_many(
                result.message, result.error, result.retry_after, result.wait_seconds,
            )
        raise unauthorized(
            result.error or "INVALID_OTP",
            result.message,
            {"attemptsRemaining": result.attempts_remaining},
        )

    pair = await token_service.create_token_pair(db, result.user, device)
    set_refresh_cookie(response, pair.refresh_token)

    return Envelope(
        message=result.message,
        data=OtpVerifyData(
            user=UserRead.model_validate(result.user),
            access_token=pair.access_token,
            is_new_user=result.is_new_user,
        ),
    )


# ---------------------------------------------------------------------------
# Token refresh / logout
# ---------------------------------------------------------------------------


@router.post("/token/refresh", response_model=Envelope[RefreshData])
async def refresh_token(
    request: Request,
    response: Response,
    refresh_cookie: str | None = Cookie(None, alias=settings.REFRESH_COOKIE_NAME),
    db: AsyncSession = Depends(get_db),
):
    """Rotate the refresh cookie and return a fresh access token."""
    if not refresh_cookie:
        raise unauthorized("NO_REFRESH_TOKEN", "Refresh token required")

    pair = await token_service.rotate_refresh_token(db, refresh_cookie, _device(request))
    if pair is None:
        error = unauthorized("INVALID_REFRESH_TOKEN", "Invalid or expired refresh token")
        failed = JSONResponse(status_code=error.status_code, content=error.to_body())
        clear_refresh_cookie(failed)
        return failed

    set_refresh_cookie(response, pair.refresh_token)
    return Envelope(data=RefreshData(access_token=pair.access_token))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    refresh_cookie: str | None = Cookie(None, alias=settings.REFRESH_COOKIE_NAME),
    db: AsyncSession = Depends(get_db),
):
    """Revoke the presented refresh token (if any) and clear the cookie."""
    if refresh_cookie:
        row = await token_service.find_refresh_token(db, refresh_cookie)
        if row is not None:
            await token_service.revoke_refresh_token(db, refresh_cookie)
            device = _device(request)
            await log_event(
                db, AuditAction.LOGOUT,
                user_id=row.user_id,
                ip_address=device.ip_address,
                user_agent=device.user_agent,
            )
            await db.commit()

    clear_refresh_cookie(response)
    return MessageResponse(message="Logged out successfully")


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@router.get("/session", response_model=Envelope[SessionData])
async def get_session(
    current: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """The authenticated user and whether onboarding is complete."""
    user = await db.get(User, current.user_id)
    if user is None:
        raise unauthorized("USER_NOT_FOUND", "User not found")

    onboarded = await interest_service.has_completed_onboarding(db, user.id)
    return Envelope(
        data=SessionData(
            user=UserRead.model_validate(user),
            has_completed_onboarding=onboarded,
        )
    )


@router.get("/sessions", response_model=Envelope[SessionsData])
async def list_sessions(
    current: CurrentUser = Depends(require_auth),
    refresh_cookie: str | None = Cookie(None, alias=settings.REFRESH_COOKIE_NAME),
    db: AsyncSession = Depends(get_db),
):
    """Active sessions; ``isCurrent`` marks the family of the presented cookie."""
    sessions = await token_service.get_user_sessions(db, current.user_id)

    current_family = None
    if refresh_cookie:
        row = await token_service.find_refresh_token(db, refresh_cookie)
        if row is not None:
            current_family = row.family_id

    items = [
        SessionRead.model_validate(s).model_copy(
            update={"is_current": s.family_id == current_family}
        )
        for s in sessions
    ]
    return Envelope(data=SessionsData(sessions=items))


@router.delete("/sessions/{family_id}", response_model=MessageResponse)
async def revoke_session(
    family_id: str,
    current: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """Revoke one session. Families of other users look like missing ones."""
    try:
        family = uuid.UUID(family_id)
    except ValueError:
        raise not_found("SESSION_NOT_FOUND", "Session not found")

    revoked = await token_service.revoke_session(db, current.user_id, family)
    if not revoked:
        raise not_found("SESSION_NOT_FOUND", "Session not found")

    return MessageResponse(message="Session revoked successfully")


@router.delete("/sessions", response_model=Envelope[RevokeAllData])
async def revoke_all_sessions(
    response: Response,
    keep_current: bool = Query(False, alias="keepCurrent"),
    current: CurrentUser = Depends(require_auth),
    refresh_cookie: str | None = Cookie(None, alias=settings.REFRESH_COOKIE_NAME),
    db: AsyncSession = Depends(get_db),
):
    """Revoke every session, or every other session with ``keepCurrent=true``."""
    if keep_current and refresh_cookie:
        row = await token_service.find_refresh_token(db, refresh_cookie)
        if row is not None and row.user_id == current.user_id:
            count = await token_service.revoke_other_sessions(
                db, current.user_id, row.family_id
            )
            return Envelope(
                message="Other sessions revoked",
                data=RevokeAllData(revoked_count=count),
            )

    count = await token_service.revoke_all_user_tokens(db, current.user_id)
    clear_refresh_cookie(response)
    return Envelope(
        message="All sessions revoked",
        data=RevokeAllData(revoked_count=count),
    )
