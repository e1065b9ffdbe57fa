"""Pydantic schemas for interests and onboarding."""

from typing import Any
from uuid import UUID

from learnpath.schemas.common import CamelModel


class InterestRead(CamelModel):
    id: UUID
    name: str


class UserInterestRead(CamelModel):
    id: UUID
    name: str
    weight: float


class SaveInterestsBody(CamelModel):
    # Shape is checked in the route to return INVALID_INPUT
    interest_ids: Any = None
