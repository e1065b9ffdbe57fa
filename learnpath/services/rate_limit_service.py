"""
Rate limiting — fixed-window counters shared by every server instance.

Each (identifier, action) pair owns one ``rate_limits`` row. The row is
never read-modified-written: creation is an ``INSERT ... ON CONFLICT DO
NOTHING``, increments and window resets are conditional ``UPDATE``
statements guarded on the values that were read. A request that loses a
race re-reads the row and tries again.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.config import RateLimitRule, settings
from learnpath.database import as_utc, dialect_insert, utcnow
from learnpath.models.rate_limit import RateLimit, RateLimitType

logger = logging.getLogger(__name__)

_MAX_ATTEMPTS = 5


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: datetime | None = None
    wait_seconds: int | None = None


def _rule(limit_type: RateLimitType) -> RateLimitRule:
    return settings.RATE_LIMITS[RateLimitType(limit_type).value]


def _rejected(window_start: datetime, rule: RateLimitRule, now: datetime) -> RateLimitResult:
    retry_after = window_start + timedelta(seconds=rule.window_seconds)
    wait = max(0, math.ceil((retry_after - now).total_seconds()))
    return RateLimitResult(allowed=False, remaining=0, retry_after=retry_after, wait_seconds=wait)


async def _read(db: AsyncSession, identifier: str, limit_type: RateLimitType):
    result = await db.execute(
        select(RateLimit.id, RateLimit.count, RateLimit.window_start).where(
            RateLimit.identifier == identifier,
            RateLimit.type == limit_type,
        )
    )
    return result.first()


async def _try_insert(
    db: AsyncSession, identifier: str, limit_type: RateLimitType, now: datetime
) -> bool:
    table = RateLimit.__table__
    stmt = (
        dialect_insert(db, table)
        .values(
            id=uuid.uuid4(),
            identifier=identifier,
            type=limit_type,
            count=1,
            window_start=now,
        )
        .on_conflict_do_nothing(index_elements=["identifier", "type"])
        .returning(table.c.id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none() is not None


async def _try_reset(db: AsyncSession, row_id, seen_window_start, now: datetime) -> bool:
    result = await db.execute(
        update(RateLimit)
        .where(RateLimit.id == row_id, RateLimit.window_start == seen_window_start)
        .values(count=1, window_start=now)
        .returning(RateLimit.count)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none() is not None


async def _try_increment(
    db: AsyncSession, row_id, seen_window_start, max_requests: int
) -> int | None:
    result = await db.execute(
        update(RateLimit)
        .where(
            RateLimit.id == row_id,
            RateLimit.count < max_requests,
            RateLimit.window_start == seen_window_start,
        )
        .values(count=RateLimit.count + 1)
        .returning(RateLimit.count)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none()


async def check_rate_limit(
    db: AsyncSession, identifier: str, limit_type: RateLimitType
) -> RateLimitResult:
    """
    Count one action against ``identifier`` and report whether it is allowed.

    Successful writes are committed immediately so the counter survives
    whatever the caller does with the rest of its transaction.
    """
    limit_type = RateLimitType(limit_type)
    rule = _rule(limit_type)
    window = timedelta(seconds=rule.window_seconds)

    last_window_start: datetime | None = None
    for _ in range(_MAX_ATTEMPTS):
        now = utcnow()
        row = await _read(db, identifier, limit_type)

        if row is None:
            if await _try_insert(db, identifier, limit_type, now):
                await db.commit()
                return RateLimitResult(allowed=True, remaining=rule.max_requests - 1)
            continue

        window_start = as_utc(row.window_start)
        last_window_start = window_start

        if window_start + window <= now:
            if await _try_reset(db, row.id, row.window_start, now):
                await db.commit()
                return RateLimitResult(allowed=True, remaining=rule.max_requests - 1)
            continue

        if row.count >= rule.max_requests:
            return _rejected(window_start, rule, now)

        new_count = await _try_increment(db, row.id, row.window_start, rule.max_requests)
        if new_count is not None:
            await db.commit()
            return RateLimitResult(allowed=True, remaining=max(0, rule.max_requests - new_count))
        # Limit reached or window reset by a concurrent request; re-read

    logger.warning(
        "Rate limit for %s/%s still contended after %d attempts, rejecting",
        identifier, limit_type.value, _MAX_ATTEMPTS,
    )
    now = utcnow()
    return _rejected(last_window_start or now, rule, now)


async def get_rate_limit_status(
    db: AsyncSession, identifier: str, limit_type: RateLimitType
) -> RateLimitResult:
    """Report the current allowance without counting an action."""
    limit_type = RateLimitType(limit_type)
    rule = _rule(limit_type)
    now = utcnow()

    row = await _read(db, identifier, limit_type)
    if row is None:
        return RateLimitResult(allowed=True, remaining=rule.max_requests)

    window_start = as_utc(row.window_start)
    if window_start + timedelta(seconds=rule.window_seconds) <= now:
        return RateLimitResult(allowed=True, remaining=rule.max_requests)

    if row.count >= rule.max_requests:
        return _rejected(window_start, rule, now)

    return RateLimitResult(allowed=True, remaining=rule.max_requests - row.count)


async def reset_rate_limit(
    db: AsyncSession, identifier: str, limit_type: RateLimitType
) -> int:
    """Administrative clear of a counter. Returns the number of rows removed."""
    result = await db.execute(
        delete(RateLimit)
        .where(RateLimit.identifier == identifier, RateLimit.type == RateLimitType(limit_type))
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount
