"""Pydantic schemas for the content catalog."""

from datetime import datetime
from uuid import UUID

from learnpath.schemas.common import CamelModel


class CourseRead(CamelModel):
    id: UUID
    title: str
    description: str
    thumbnail: str
    duration: int
    category: str
    video_url: str
    created_at: datetime


class EpisodeRead(CamelModel):
    id: UUID
    series_id: UUID
    title: str
    description: str
    thumbnail: str
    duration: int
    order: int
    video_url: str
    created_at: datetime


class SeriesRead(CamelModel):
    id: UUID
    title: str
    description: str
    thumbnail: str
    category: str
    tags: list[str]
    created_at: datetime
    episodes: list[EpisodeRead] = []


class SeriesSummary(CamelModel):
    id: UUID
    title: str
    thumbnail: str
    description: str
    category: str


class EpisodeDetail(EpisodeRead):
    series: SeriesSummary
