"""SQLAlchemy ORM models for LearnPath."""

from learnpath.models.user import User
from learnpath.models.otp_record import OtpRecord
from learnpath.models.rate_limit import RateLimit, RateLimitType
from learnpath.models.refresh_token import RefreshToken
from learnpath.models.audit_log import AuditLog, AuditAction
from learnpath.models.content import Course, Series, Episode
from learnpath.models.interest import Interest, UserInterest

__all__ = [
    "User",
    "OtpRecord",
    "RateLimit", "RateLimitType",
    "RefreshToken",
    "AuditLog", "AuditAction",
    "Course", "Series", "Episode",
    "Interest", "UserInterest",
]
