"""
Token service — access JWTs and rotating refresh tokens.

Refresh tokens are opaque random strings; only their SHA-256 hash is
stored. Each login starts a token *family* and every rotation issues the
successor inside the same family. Presenting a token that has already
been rotated away is treated as theft and revokes the whole family.

Every mutation is a single conditional statement, so two requests
rotating the same token cannot both succeed.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.config import settings
from learnpath.core.devices import get_device_name
from learnpath.core.security import create_access_token, generate_refresh_token, hash_token
from learnpath.database import utcnow
from learnpath.models.refresh_token import RefreshToken
from learnpath.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceInfo:
    user_agent: str | None = None
    ip_address: str | None = None


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    family_id: uuid.UUID


# ---------------------------------------------------------------------------
# Issuing
# ---------------------------------------------------------------------------


def _new_refresh_row(
    user_id: uuid.UUID,
    family_id: uuid.UUID,
    token: str,
    device: DeviceInfo,
    *,
    rotated: bool = False,
) -> RefreshToken:
    now = utcnow()
    return RefreshToken(
        token_hash=hash_token(token),
        user_id=user_id,
        family_id=family_id,
        expires_at=now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        device_name=get_device_name(device.user_agent),
        ip_address=device.ip_address,
        created_at=now,
        last_used_at=now if rotated else None,
    )


async def create_token_pair(
    db: AsyncSession, user: User, device: DeviceInfo | None = None
) -> TokenPair:
    """Start a new token family for ``user`` and issue its first pair."""
    device = device or DeviceInfo()
    family_id = uuid.uuid4()
    refresh_token = generate_refresh_token()

    db.add(_new_refresh_row(user.id, family_id, refresh_token, device))
    await db.commit()

    return TokenPair(
        access_token=create_access_token(str(user.id), user.email),
        refresh_token=refresh_token,
        family_id=family_id,
    )


# ---------------------------------------------------------------------------
# Rotation
# ---------------------------------------------------------------------------


async def find_refresh_token(db: AsyncSession, token: str) -> RefreshToken | None:
    result = await db.execute(
        select(RefreshToken)
        .where(RefreshToken.token_hash == hash_token(token))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _reuse_detected(db: AsyncSession, row: RefreshToken) -> None:
    logger.warning(
        "Refresh token reuse detected, revoking family %s of user %s",
        row.family_id, row.user_id,
    )
    await revoke_token_family(db, row.family_id)


async def rotate_refresh_token(
    db: AsyncSession, old_token: str, device: DeviceInfo | None = None
) -> TokenPair | None:
    """
    Exchange ``old_token`` for a new pair in the same family.

    Returns ``None`` when the token is unknown, expired, revoked or has
    already been rotated away (the last case also revokes the family).
    """
    device = device or DeviceInfo()
    row = await find_refresh_token(db, old_token)
    if row is None:
        return None

    if row.replaced_by is not None:
        await _reuse_detected(db, row)
        return None

    if row.revoked_at is not None or row.is_expired():
        return None

    new_token = generate_refresh_token()
    new_hash = hash_token(new_token)

    claimed = await db.scalar(
        update(RefreshToken)
        .where(
            RefreshToken.id == row.id,
            RefreshToken.revoked_at.is_(None),
            RefreshToken.replaced_by.is_(None),
        )
        .values(revoked_at=utcnow(), replaced_by=new_hash)
        .returning(RefreshToken.id)
        .execution_options(synchronize_session=False)
    )
    if claimed is None:
        # A concurrent request rotated or revoked it first
        row = await find_refresh_token(db, old_token)
        if row is not None and row.replaced_by is not None:
            await _reuse_detected(db, row)
        return None

    user = await db.get(User, row.user_id)
    db.add(_new_refresh_row(row.user_id, row.family_id, new_token, device, rotated=True))
    await db.commit()

    return TokenPair(
        access_token=create_access_token(str(user.id), user.email),
        refresh_token=new_token,
        family_id=row.family_id,
    )


# ---------------------------------------------------------------------------
# Revocation
# ---------------------------------------------------------------------------


async def _revoke_where(db: AsyncSession, *criteria) -> int:
    result = await db.execute(
        update(RefreshToken)
        .where(RefreshToken.revoked_at.is_(None), *criteria)
        .values(revoked_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount


async def revoke_refresh_token(db: AsyncSession, token: str) -> int:
    """Revoke one token by its raw value. Returns rows revoked (0 or 1)."""
    return await _revoke_where(db, RefreshToken.token_hash == hash_token(token))


async def revoke_token_family(db: AsyncSession, family_id: uuid.UUID) -> int:
    return await _revoke_where(db, RefreshToken.family_id == family_id)


async def revoke_all_user_tokens(db: AsyncSession, user_id: uuid.UUID) -> int:
    """Log ``user_id`` out everywhere. Returns rows revoked."""
    return await _revoke_where(db, RefreshToken.user_id == user_id)


async def revoke_other_sessions(
    db: AsyncSession, user_id: uuid.UUID, keep_family_id: uuid.UUID
) -> int:
    return await _revoke_where(
        db,
        RefreshToken.user_id == user_id,
        RefreshToken.family_id != keep_family_id,
    )


async def revoke_session(db: AsyncSession, user_id: uuid.UUID, family_id: uuid.UUID) -> bool:
    """Revoke a family after checking it belongs to ``user_id``."""
    owned = await db.scalar(
        select(RefreshToken.id)
        .where(RefreshToken.family_id == family_id, RefreshToken.user_id == user_id)
        .limit(1)
    )
    if owned is None:
        return False

    await revoke_token_family(db, family_id)
    return True


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


async def get_user_sessions(db: AsyncSession, user_id: uuid.UUID) -> list[RefreshToken]:
    """Current token of every live family, most recently used first."""
    result = await db.execute(
        select(RefreshToken)
        .where(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked_at.is_(None),
            RefreshToken.replaced_by.is_(None),
            RefreshToken.expires_at > utcnow(),
        )
        .order_by(
            func.coalesce(RefreshToken.last_used_at, RefreshToken.created_at).desc(),
            RefreshToken.created_at.desc(),
        )
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())
