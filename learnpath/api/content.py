"""
Content catalog endpoints (authenticated).

  GET /courses                                   — all courses, newest first
  GET /courses/{id}                              — one course
  GET /series                                    — all series with episodes
  GET /series/{id}                               — one series with episodes
  GET /series/{seriesId}/episodes/{episodeId}    — one episode of a series
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.api.deps import require_auth
from learnpath.core.errors import not_found
from learnpath.database import get_db
from learnpath.schemas.common import Envelope
from learnpath.schemas.content import CourseRead, EpisodeDetail, SeriesRead
from learnpath.services import content_service

router = APIRouter(dependencies=[Depends(require_auth)])


def _parse_id(value: str, code: str, message: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise not_found(code, message)


@router.get("/courses", response_model=Envelope[list[CourseRead]])
async def list_courses(db: AsyncSession = Depends(get_db)):
    courses = await content_service.get_all_courses(db)
    return Envelope(data=[CourseRead.model_validate(c) for c in courses])


@router.get("/courses/{course_id}", response_model=Envelope[CourseRead])
async def get_course(course_id: str, db: AsyncSession = Depends(get_db)):
    course = await content_service.get_course(
        db, _parse_id(course_id, "COURSE_NOT_FOUND", "Course not found")
    )
    if course is None:
        raise not_found("COURSE_NOT_FOUND", "Course not found")
    return Envelope(data=CourseRead.model_validate(course))


@router.get("/series", response_model=Envelope[list[SeriesRead]])
async def list_series(db: AsyncSession = Depends(get_db)):
    series = await content_service.get_all_series(db)
    return Envelope(data=[SeriesRead.model_validate(s) for s in series])


@router.get("/series/{series_id}", response_model=Envelope[SeriesRead])
async def get_series(series_id: str, db: AsyncSession = Depends(get_db)):
    series = await content_service.get_series(
        db, _parse_id(series_id, "SERIES_NOT_FOUND", "Series not found")
    )
    if series is None:
        raise not_found("SERIES_NOT_FOUND", "Series not found")
    return Envelope(data=SeriesRead.model_validate(series))


@router.get(
    "/series/{series_id}/episodes/{episode_id}",
    response_model=Envelope[EpisodeDetail],
)
async def get_episode(
    series_id: str,
    episode_id: str,
    db: AsyncSession = Depends(get_db),
):
    """An episode with a summary of its series; 404 if it is in another series."""
    episode = await content_service.get_episode(
        db,
        _parse_id(series_id, "EPISODE_NOT_FOUND", "Episode not found"),
        _parse_id(episode_id, "EPISODE_NOT_FOUND", "Episode not found"),
    )
    if episode is None:
        raise not_found("EPISODE_NOT_FOUND", "Episode not found")
    return Envelope(data=EpisodeDetail.model_validate(episode))
