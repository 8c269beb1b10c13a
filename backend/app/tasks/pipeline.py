"""
Background Tasks for the Ingestion and Matching Pipeline

Celery tasks for:
- Processing a single profile (search, store, match)
- Processing every active profile
- Re-scoring a profile's existing matches after it changes

All tasks support:
- Automatic retries on failure
- Prometheus metrics
"""

import asyncio
import logging
import time
from typing import List, Optional

from prometheus_client import Histogram, Counter

from app.celery import celery_app

logger = logging.getLogger(__name__)

# ==================== Prometheus Metrics ====================

TASK_DURATION = Histogram(
    "jobcompass_task_duration_seconds",
    "Time spent executing Celery tasks",
    ["task_name"]
)

TASK_FAILURES = Counter(
    "jobcompass_task_failures_total",
    "Number of Celery task failures",
    ["task_name"]
)


# ==================== Helper Functions ====================

def get_active_profile_ids() -> List[str]:
    """Ids of active, non-deleted profiles (synchronous session)."""
    from app.database import get_db_session
    from app.models import UserProfile

    session = get_db_session()
    try:
        rows = (
            session.query(UserProfile.id)
            .filter(UserProfile.is_active.is_(True), UserProfile.deleted_at.is_(None))
            .all()
        )
        return [row[0] for row in rows]
    finally:
        session.close()


def run_async(coro):
    """Run a coroutine to completion on a fresh event loop."""
    from app.database import engine

    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        # Pooled connections are bound to the loop that opened them
        loop.run_until_complete(engine.dispose())
        loop.close()


async def _refresh_matches(profile_id: str, status: Optional[str]) -> dict:
    from app.database import async_session
    from app.models import UserProfile
    from app.scheduler import build_match_engine
    from app.services.processing import refresh_profile_matches

    async with async_session() as db:
        profile = await db.get(UserProfile, profile_id)
        if profile is None or profile.deleted_at is not None:
            return {"error": "Profile not found"}
        engine = await build_match_engine()
        return await refresh_profile_matches(db, profile, engine, status)


# ==================== Celery Tasks ====================

@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def process_profile_task(self, profile_id: str) -> dict:
    """
    Search every active board for one profile and match new listings.

    Args:
        profile_id: Profile UUID to process

    Returns:
        Dict with pipeline statistics
    """
    from app.scheduler import run_profile_pipeline

    start_time = time.time()
    try:
        stats = run_async(run_profile_pipeline(profile_id))
        logger.info(f"Processed profile {profile_id}: {stats}")
        return stats

    except Exception as exc:
        TASK_FAILURES.labels(task_name="process_profile_task").inc()
        logger.error(f"Task failed: {exc}")
        raise self.retry(exc=exc, countdown=60)

    finally:
        duration = time.time() - start_time
        TASK_DURATION.labels(task_name="process_profile_task").observe(duration)


@celery_app.task(bind=True, max_retries=3)
def process_all_profiles_task(self) -> dict:
    """
    Fan out one process_profile_task per active profile.

    Returns:
        Dict with the number of tasks queued
    """
    start_time = time.time()
    try:
        profile_ids = get_active_profile_ids()
        for profile_id in profile_ids:
            process_profile_task.delay(profile_id)

        logger.info(f"Queued processing for {len(profile_ids)} profiles")
        return {"queued": len(profile_ids)}

    except Exception as exc:
        TASK_FAILURES.labels(task_name="process_all_profiles_task").inc()
        raise self.retry(exc=exc, countdown=60)

    finally:
        duration = time.time() - start_time
        TASK_DURATION.labels(task_name="process_all_profiles_task").observe(duration)


@celery_app.task(bind=True, max_retries=3)
def refresh_matches_task(self, profile_id: str, status: Optional[str] = None) -> dict:
    """
    Re-score existing matches when a profile changes.

    Statuses and interest flags of the matches are preserved.

    Args:
        profile_id: Profile UUID that was updated
        status: Only refresh matches currently in this status

    Returns:
        Dict with refresh statistics
    """
    start_time = time.time()
    try:
        stats = run_async(_refresh_matches(profile_id, status))
        if "error" in stats:
            logger.error(f"Profile not found: {profile_id}")
        return stats

    except Exception as exc:
        TASK_FAILURES.labels(task_name="refresh_matches_task").inc()
        raise self.retry(exc=exc, countdown=60)

    finally:
        duration = time.time() - start_time
        TASK_DURATION.labels(task_name="refresh_matches_task").observe(duration)
