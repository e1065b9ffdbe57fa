"""
Cleanup Celery task — hourly purge of terminal auth records.

Deletes expired/used OTPs, stale rate-limit windows and expired or
long-revoked refresh tokens.
"""

import asyncio
import logging

from learnpath.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


async def _cleanup_expired_records_async() -> dict:
    """
    Run one sweep in its own session.

    Uses async_session() directly (not FastAPI deps — Celery runs
    outside request lifecycle).
    """
    from learnpath.database import async_session
    from learnpath.services.cleanup_service import cleanup_expired_records

    async with async_session() as session:
        result = await cleanup_expired_records(session)
    return result.as_dict()


@celery_app.task(name="learnpath.tasks.cleanup_tasks.cleanup_expired_records")
def cleanup_expired_records():
    """
    Delete rows that reached a terminal state.

    Celery tasks are synchronous, so the async sweep runs in a fresh
    event loop.
    """
    logger.info("Running scheduled cleanup")
    loop = asyncio.new_event_loop()
    try:
        result = loop.run_until_complete(_cleanup_expired_records_async())
        logger.info(
            "Cleanup complete: %d OTPs, %d rate limits, %d tokens deleted",
            result["otps_deleted"],
            result["rate_limits_deleted"],
            result["tokens_deleted"],
        )
        return result
    except Exception:
        logger.exception("Scheduled cleanup failed")
        raise
    finally:
        loop.close()
