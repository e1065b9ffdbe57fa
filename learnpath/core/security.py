"""
Core security module — JWT access tokens and credential hashing.

Provides the canonical token creation/verification logic used by the
token service and the auth dependencies, plus the OTP and refresh-token
helpers. Supports RS256 with HS256 fallback when RSA key files are
missing.
"""

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt

from learnpath.config import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Key loading
# ---------------------------------------------------------------------------

_private_key: str | bytes | None = None
_public_key: str | bytes | None = None
_algorithm: str = settings.JWT_ALGORITHM


def _load_keys() -> None:
    """Load RSA keys from disk. Falls back to HS256 with SECRET_KEY."""
    global _private_key, _public_key, _algorithm

    private_path = Path(settings.JWT_PRIVATE_KEY_PATH)
    public_path = Path(settings.JWT_PUBLIC_KEY_PATH)

    if private_path.exists() and public_path.exists():
        _private_key = private_path.read_bytes()
        _public_key = public_path.read_bytes()
        _algorithm = "RS256"
        logger.info("Loaded RSA keys for JWT signing (RS256).")
    else:
        _private_key = settings.SECRET_KEY
        _public_key = settings.SECRET_KEY
        _algorithm = "HS256"
        logger.debug(
            "RSA key files not found, signing access tokens with HS256. "
            "Run 'python scripts/generate_keys.py' to generate keys.",
        )


_load_keys()


def configure_keys(
    *, private_key: str | bytes, public_key: str | bytes, algorithm: str = "RS256"
) -> None:
    """Override keys at runtime (used in tests)."""
    global _private_key, _public_key, _algorithm
    _private_key = private_key
    _public_key = public_key
    _algorithm = algorithm


# ---------------------------------------------------------------------------
# Access tokens
# ---------------------------------------------------------------------------


def create_access_token(user_id: str, email: str) -> str:
    """Create a short-lived access JWT."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "userId": str(user_id),
        "email": email,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, _private_key, algorithm=_algorithm)


def verify_access_token(token: str) -> dict | None:
    """
    Decode an access JWT.

    Returns the payload, or ``None`` when the signature, expiry or
    ``type`` claim is wrong. Never raises.
    """
    try:
        payload = jwt.decode(token, _public_key, algorithms=[_algorithm])
    except jwt.InvalidTokenError:
        return None
    if payload.get("type") != "access" or not payload.get("userId"):
        return None
    return payload


# ---------------------------------------------------------------------------
# OTP helpers
# ---------------------------------------------------------------------------


def generate_otp() -> str:
    """Uniform random numeric code with leading zeros kept."""
    upper = 10 ** settings.OTP_LENGTH
    return str(secrets.randbelow(upper)).zfill(settings.OTP_LENGTH)


def hash_otp(otp: str, email: str) -> str:
    """HMAC-SHA256 of ``"{email}:{otp}"`` keyed with OTP_SECRET (hex)."""
    message = f"{email.lower()}:{otp}".encode()
    return hmac.new(settings.OTP_SECRET.encode(), message, hashlib.sha256).hexdigest()


def verify_otp_hash(otp: str, email: str, stored_hash: str) -> bool:
    """Constant-time comparison; malformed input is simply ``False``."""
    if not isinstance(otp, str) or not isinstance(email, str) or not isinstance(stored_hash, str):
        return False
    computed = hash_otp(otp, email)
    if len(computed) != len(stored_hash):
        return False
    try:
        return hmac.compare_digest(computed, stored_hash)
    except TypeError:
        # non-ASCII str input
        return False


# ---------------------------------------------------------------------------
# Refresh-token helpers
# ---------------------------------------------------------------------------


def generate_refresh_token() -> str:
    """64 random bytes, base64url encoded (cookie safe)."""
    return secrets.token_urlsafe(64)


def hash_token(token: str) -> str:
    """SHA-256 hex digest, used as the lookup key for refresh tokens."""
    return hashlib.sha256(token.encode()).hexdigest()
