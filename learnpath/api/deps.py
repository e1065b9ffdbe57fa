"""
Reusable FastAPI dependencies for authentication.

Dependencies:
  - require_auth   — verified bearer token or 401 (NO_TOKEN / INVALID_TOKEN)
  - optional_auth  — the caller if a valid bearer token is present, else None

Both only verify the JWT; neither touches the database.
"""

import uuid
from dataclasses import dataclass

from fastapi import Header

from learnpath.core.errors import unauthorized
from learnpath.core.security import verify_access_token


@dataclass(frozen=True)
class CurrentUser:
    user_id: uuid.UUID
    email: str


def _user_from_header(authorization: str | None) -> CurrentUser | None:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    payload = verify_access_token(authorization[len("Bearer "):])
    if payload is None:
        return None
    try:
        user_id = uuid.UUID(str(payload["userId"]))
    except ValueError:
        return None
    return CurrentUser(user_id=user_id, email=payload.get("email", ""))


# ---------------------------------------------------------------------------
# Gates
# ---------------------------------------------------------------------------


async def require_auth(
    authorization: str | None = Header(None, description="Bearer <access_token>"),
) -> CurrentUser:
    """
    Parse the ``Authorization: Bearer <token>`` header and verify the JWT.

    Raises 401 NO_TOKEN when the header is missing or not a bearer
    header, and 401 INVALID_TOKEN when the token does not verify.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise unauthorized("NO_TOKEN", "Authorization header required")

    user = _user_from_header(authorization)
    if user is None:
        raise unauthorized("INVALID_TOKEN", "Invalid or expired token")
    return user


async def optional_auth(
    authorization: str | None = Header(None, description="Bearer <access_token>"),
) -> CurrentUser | None:
    return _user_from_header(authorization)
