"""
Pydantic schemas for the passwordless auth endpoints.

Request fields are optional on purpose: presence and format are checked
in the route so the client gets MISSING_*/INVALID_* codes instead of a
generic validation error.
"""

from datetime import datetime
from uuid import UUID

from learnpath.schemas.common import CamelModel


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class OtpRequestBody(CamelModel):
    email: str | None = None


class OtpVerifyBody(CamelModel):
    email: str | None = None
    otp: str | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class UserRead(CamelModel):
    id: UUID
    email: str
    name: str | None = None
    created_at: datetime


class OtpRequestData(CamelModel):
    email: str
    expires_at: datetime
    resend_available_at: datetime
    remaining_requests: int


class OtpVerifyData(CamelModel):
    user: UserRead
    access_token: str
    is_new_user: bool


class RefreshData(CamelModel):
    access_token: str


class SessionData(CamelModel):
    user: UserRead
    has_completed_onboarding: bool


class SessionRead(CamelModel):
    id: UUID
    family_id: UUID
    device_name: str | None = None
    ip_address: str | None = None
    created_at: datetime
    last_used_at: datetime | None = None
    is_current: bool = False


class RevokeAllData(CamelModel):
    revoked_count: int


class SessionsData(CamelModel):
    sessions: list[SessionRead]
