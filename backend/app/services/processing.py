"""
Profile Processing Pipeline

Ties ingestion and matching together for scheduled and on-demand runs:

    process_profile()
        default criteria → ingest from every active board
        → pre-filter new listings → score → upsert Match rows

    process_all_profiles()
        process_profile() for each active profile; a failing profile is
        logged, rolled back and skipped

    refresh_profile_matches()
        re-score the listings a profile already has matches for

Board-level provider failures are logged and skipped; a missing provider
credential aborts the run before any board is searched.
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import AppError
from app.models import Board, Listing, Match, UserProfile
from app.services.criteria import get_default_criteria
from app.services.ingestion import ingest
from app.services.lifecycle import find_match, new_match
from app.services.match_engine import MatchEngine, prefilter_listings

logger = logging.getLogger(__name__)


async def match_listings(
    db: AsyncSession,
    engine: MatchEngine,
    profile: UserProfile,
    listings: Sequence[Listing],
    criteria=None,
) -> List[Match]:
    """
    Score listings and create or refresh the profile's matches.

    Existing matches keep their status, history and flags; only the
    analysis fields change. Soft-deleted matches are left alone.
    """
    scored = await engine.score_batch(listings, profile, criteria)
    criteria_id = criteria.id if criteria is not None else None

    matches = []
    for listing, result in scored:
        fields = result.to_match_fields()
        match = await find_match(db, profile.id, listing.id)

        if match is None:
            match = new_match(profile.id, listing.id, criteria_id, **fields)
            db.add(match)
        elif match.deleted_at is not None:
            continue
        else:
            for field, value in fields.items():
                setattr(match, field, value)
            if criteria_id:
                match.search_criteria_id = criteria_id

        matches.append(match)

    await db.commit()
    return matches


async def active_boards(db: AsyncSession) -> List[Board]:
    result = await db.execute(
        select(Board)
        .where(Board.is_active.is_(True), Board.not_deleted())
        .order_by(Board.name)
    )
    return list(result.scalars().all())


async def process_profile(
    db: AsyncSession,
    profile: UserProfile,
    scraper,
    engine: MatchEngine,
    max_results: Optional[int] = None,
) -> dict:
    """
    Ingest new listings for a profile's default criteria and match them.

    Raises:
        ConfigurationError: search provider credentials missing
        NotFoundError: the profile has no search criteria
    """
    scraper.ensure_configured()
    criteria = await get_default_criteria(db, profile.id)

    stats = {
        "profile_id": profile.id,
        "criteria_id": criteria.id,
        "boards_searched": 0,
        "boards_failed": 0,
        "listings_saved": 0,
        "listings_skipped": 0,
        "listings_failed": 0,
        "listings_matched": 0,
    }

    if not criteria.is_active:
        logger.info(f"Profile {profile.id} has no active search criteria, skipping")
        return stats

    boards = await active_boards(db)
    new_listings = []

    # Without configured boards, search the default job-board domains
    for board in boards or [None]:
        board_name = board.name if board is not None else "default boards"
        try:
            report = await ingest(db, scraper, criteria=criteria, board=board, max_results=max_results)
        except AppError as e:
            logger.error(f"Error ingesting from {board_name} for profile {profile.id}: {e}")
            stats["boards_failed"] += 1
            continue

        stats["boards_searched"] += 1
        stats["listings_saved"] += report.saved
        stats["listings_skipped"] += report.skipped
        stats["listings_failed"] += report.failed
        new_listings.extend(report.listings)

    candidates = prefilter_listings(new_listings, criteria)
    if candidates:
        matches = await match_listings(db, engine, profile, candidates, criteria)
        stats["listings_matched"] = len(matches)

    logger.info(
        f"Processed profile {profile.id}: {stats['listings_saved']} new listings, "
        f"{stats['listings_matched']} matched"
    )
    return stats


async def process_all_profiles(
    db: AsyncSession,
    scraper,
    engine: MatchEngine,
    max_results: Optional[int] = None,
) -> dict:
    result = await db.execute(
        select(UserProfile.id).where(UserProfile.is_active.is_(True), UserProfile.not_deleted())
    )
    profile_ids = [row[0] for row in result.all()]

    summary = {"processed": 0, "failed": 0, "results": []}
    for profile_id in profile_ids:
        try:
            profile = await db.get(UserProfile, profile_id)
            stats = await process_profile(db, profile, scraper, engine, max_results)
        except Exception as e:
            logger.error(f"Error processing profile {profile_id}: {e}")
            await db.rollback()
            summary["failed"] += 1
            continue

        summary["processed"] += 1
        summary["results"].append(stats)

    return summary


async def refresh_profile_matches(
    db: AsyncSession,
    profile: UserProfile,
    engine: MatchEngine,
    status: Optional[str] = None,
) -> dict:
    """Re-score every listing the profile already has a live match for."""
    query = (
        select(Listing)
        .join(Match, Match.listing_id == Listing.id)
        .where(
            Match.user_profile_id == profile.id,
            Match.not_deleted(),
            Listing.not_deleted(),
        )
    )
    if status:
        query = query.where(Match.status == status)

    result = await db.execute(query)
    listings = list(result.scalars().all())

    matches = await match_listings(db, engine, profile, listings)
    return {
        "profile_id": profile.id,
        "listings": len(listings),
        "refreshed": len(matches),
        "failed": len(listings) - len(matches),
    }
