"""Content catalog queries: courses, series and their episodes."""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from learnpath.models.content import Course, Episode, Series


async def get_all_courses(db: AsyncSession) -> list[Course]:
    result = await db.execute(select(Course).order_by(Course.created_at.desc()))
    return list(result.scalars().all())


async def get_course(db: AsyncSession, course_id: uuid.UUID) -> Course | None:
    return await db.get(Course, course_id)


async def get_all_series(db: AsyncSession) -> list[Series]:
    """Every series with its episodes in playback order."""
    result = await db.execute(
        select(Series)
        .options(selectinload(Series.episodes))
        .order_by(Series.created_at.desc())
    )
    return list(result.scalars().all())


async def get_series(db: AsyncSession, series_id: uuid.UUID) -> Series | None:
    result = await db.execute(
        select(Series)
        .where(Series.id == series_id)
        .options(selectinload(Series.episodes))
    )
    return result.scalar_one_or_none()


async def get_episode(
    db: AsyncSession, series_id: uuid.UUID, episode_id: uuid.UUID
) -> Episode | None:
    """An episode, only if it belongs to ``series_id``."""
    result = await db.execute(
        select(Episode)
        .where(Episode.id == episode_id, Episode.series_id == series_id)
        .options(joinedload(Episode.series))
    )
    return result.scalar_one_or_none()
