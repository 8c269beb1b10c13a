from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Optional
from app.database import get_db
from app.models import Board, Listing, Match, MatchStatus
from app.schemas import success_response
from app.auth import get_current_user

router = APIRouter()


@router.get("")
async def get_stats(
    user_profile_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    total_result = await db.execute(select(func.count(Listing.id)).where(Listing.not_deleted()))
    total_listings = total_result.scalar() or 0

    source_query = (
        select(Listing.source, func.count(Listing.id))
        .where(Listing.not_deleted())
        .group_by(Listing.source)
    )
    source_result = await db.execute(source_query)
    listings_by_source = {row[0]: row[1] for row in source_result.all()}

    boards_result = await db.execute(
        select(func.count(Board.id)).where(Board.not_deleted(), Board.is_active.is_(True))
    )
    active_boards = boards_result.scalar() or 0

    match_filter = [Match.not_deleted()]
    if user_profile_id:
        match_filter.append(Match.user_profile_id == user_profile_id)

    # Matches by status - single GROUP BY query instead of N+1
    status_query = select(Match.status, func.count(Match.id)).where(*match_filter).group_by(Match.status)
    status_result = await db.execute(status_query)
    status_counts = {row[0]: row[1] for row in status_result.all()}
    for status in MatchStatus:
        status_counts.setdefault(status.value, 0)

    avg_result = await db.execute(select(func.avg(Match.overall_score)).where(*match_filter))
    avg_match_score = round(avg_result.scalar() or 0, 1)

    interested_result = await db.execute(
        select(func.count(Match.id)).where(*match_filter, Match.is_interested.is_(True))
    )

    return success_response(
        {
            "total_listings": total_listings,
            "listings_by_source": listings_by_source,
            "active_boards": active_boards,
            "total_matches": sum(status_counts.values()),
            "matches_by_status": status_counts,
            "interested_matches": interested_result.scalar() or 0,
            "avg_match_score": avg_match_score,
        },
        "Statistics retrieved successfully",
    )
