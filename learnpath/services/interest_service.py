"""
Interest service — the interest catalog and onboarding selections.

A user has completed onboarding once they have saved at least one
interest.
"""

import uuid

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.models.interest import Interest, UserInterest

DEFAULT_WEIGHT = 1.0


async def get_all_interests(db: AsyncSession) -> list[Interest]:
    result = await db.execute(select(Interest).order_by(Interest.name.asc()))
    return list(result.scalars().all())


async def get_user_interests(db: AsyncSession, user_id: uuid.UUID) -> list[UserInterest]:
    result = await db.execute(
        select(UserInterest)
        .where(UserInterest.user_id == user_id)
        .order_by(UserInterest.created_at.asc())
    )
    return list(result.unique().scalars().all())


async def validate_interest_ids(db: AsyncSession, interest_ids: list[uuid.UUID]) -> bool:
    """True when every id names an existing interest."""
    wanted = set(interest_ids)
    if not wanted:
        return False
    found = await db.scalar(
        select(func.count()).select_from(Interest).where(Interest.id.in_(wanted))
    )
    return found == len(wanted)


async def save_user_interests(
    db: AsyncSession, user_id: uuid.UUID, interest_ids: list[uuid.UUID]
) -> int:
    """Replace the user's selection. Returns the number of interests saved."""
    unique_ids = list(dict.fromkeys(interest_ids))

    await db.execute(
        delete(UserInterest)
        .where(UserInterest.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    db.add_all(
        UserInterest(user_id=user_id, interest_id=interest_id, weight=DEFAULT_WEIGHT)
        for interest_id in unique_ids
    )
    await db.commit()
    return len(unique_ids)


async def has_completed_onboarding(db: AsyncSession, user_id: uuid.UUID) -> bool:
    count = await db.scalar(
        select(func.count()).select_from(UserInterest).where(UserInterest.user_id == user_id)
    )
    return bool(count)
