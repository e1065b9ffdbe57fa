"""
Interest endpoints — the public catalog and onboarding selections.

  GET  /       — all interests (public)
  GET  /user   — the caller's saved interests
  POST /user   — replace the caller's selection
"""

import logging
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.api.deps import CurrentUser, require_auth
from learnpath.core.errors import bad_request
from learnpath.database import get_db
from learnpath.schemas.common import Envelope, MessageResponse
from learnpath.schemas.interest import InterestRead, SaveInterestsBody, UserInterestRead
from learnpath.services import interest_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=Envelope[list[InterestRead]])
async def list_interests(db: AsyncSession = Depends(get_db)):
    interests = await interest_service.get_all_interests(db)
    return Envelope(data=[InterestRead.model_validate(i) for i in interests])


@router.get("/user", response_model=Envelope[list[UserInterestRead]])
async def get_user_interests(
    current: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    selections = await interest_service.get_user_interests(db, current.user_id)
    return Envelope(
        data=[
            UserInterestRead(id=ui.interest.id, name=ui.interest.name, weight=ui.weight)
            for ui in selections
        ]
    )


@router.post("/user", response_model=MessageResponse)
async def save_user_interests(
    payload: SaveInterestsBody,
    current: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """Replace the caller's interests with ``interestIds``."""
    raw_ids = payload.interest_ids
    if not isinstance(raw_ids, list):
        raise bad_request("INVALID_INPUT", "interestIds must be an array")
    if not raw_ids:
        raise bad_request("NO_INTERESTS_SELECTED", "At least one interest must be selected")

    try:
        interest_ids = [uuid.UUID(str(value)) for value in raw_ids]
    except ValueError:
        raise bad_request("INVALID_INTEREST_IDS", "One or more interest IDs are invalid")

    if not await interest_service.validate_interest_ids(db, interest_ids):
        raise bad_request("INVALID_INTEREST_IDS", "One or more interest IDs are invalid")

    saved = await interest_service.save_user_interests(db, current.user_id, interest_ids)
    logger.info("User %s saved %d interests", current.user_id, saved)
    return MessageResponse(message="Interests saved successfully")
