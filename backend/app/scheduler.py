"""
Background Scheduler - Periodic Listing Ingestion and Matching

This module drives the automated pipeline using APScheduler.

Processing Pipeline:
    1. Poll boards whose search frequency has elapsed
    2. For every active profile, search each active board with the
       profile's default criteria and store new listings
    3. Score the new listings against the profile and upsert matches

Default Schedule: poll every hour (configurable via SCRAPE_INTERVAL_HOURS)
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import select
from app.database import async_session, utcnow
from app.errors import AppError
from app.models import Board, UserProfile
from app.services.ai_client import AIClient
from app.services.cache import get_cache
from app.services.match_engine import MatchEngine
from app.services.processing import process_all_profiles, process_profile
from app.services.scrapers import TavilyScraper
from app.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()
scheduler = AsyncIOScheduler()


async def build_match_engine() -> MatchEngine:
    return MatchEngine(AIClient(), cache=await get_cache())


async def run_profile_pipeline(profile_id: str) -> dict:
    """Ingest and match for a single profile in its own session."""
    async with async_session() as db:
        profile = await db.get(UserProfile, profile_id)
        if profile is None or profile.deleted_at is not None:
            logger.warning(f"Profile {profile_id} not found, skipping pipeline")
            return {}

        try:
            engine = await build_match_engine()
            return await process_profile(db, profile, TavilyScraper(), engine)
        except AppError as e:
            logger.error(f"Pipeline failed for profile {profile_id}: {e}")
            return {}


async def run_all_profiles_pipeline() -> dict:
    async with async_session() as db:
        try:
            engine = await build_match_engine()
            return await process_all_profiles(db, TavilyScraper(), engine)
        except AppError as e:
            logger.error(f"Pipeline failed: {e}")
            return {}


async def poll_due_boards():
    """
    Scheduled task: run the pipeline when at least one active board is due.

    Boards without a previous search are always due.
    """
    now = utcnow()
    async with async_session() as db:
        result = await db.execute(
            select(Board).where(Board.is_active.is_(True), Board.not_deleted())
        )
        due = [board.name for board in result.scalars().all() if board.is_due(now)]

    if not due:
        logger.info("No boards due for searching")
        return None

    logger.info(f"Boards due for searching: {', '.join(due)}")
    summary = await run_all_profiles_pipeline()
    logger.info(
        f"Pipeline finished: {summary.get('processed', 0)} profiles processed, "
        f"{summary.get('failed', 0)} failed"
    )
    return summary


def start_scheduler():
    """Start the background scheduler"""
    scheduler.add_job(
        poll_due_boards,
        trigger=IntervalTrigger(hours=settings.scrape_interval_hours),
        id="poll_due_boards",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started: polling boards every {settings.scrape_interval_hours} hours")


def stop_scheduler():
    """Stop the background scheduler"""
    if scheduler.running:
        scheduler.shutdown()
