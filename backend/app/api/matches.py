"""
Match endpoints

CRUD plus lifecycle actions:
    POST /matches/{id}/view | apply | reject | interested | not-interested
    GET  /matches/suggestions
    POST /matches/score  - score listings for a profile and upsert matches
"""

from enum import Enum

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Literal, Optional
from app.database import get_db
from app.models import Listing, Match, MatchStatus
from app.schemas import (
    MatchCreate, MatchUpdate, MatchResponse, ScoreListingsRequest, success_response,
)
from app.auth import get_current_user
from app.api.dependencies import paginate, get_match_engine
from app.api.profiles import get_profile_or_404
from app.services import lifecycle
from app.services.criteria import get_criteria, get_default_criteria
from app.services.match_engine import MatchEngine, prefilter_listings
from app.services.processing import match_listings

router = APIRouter()

SORTABLE_FIELDS = {
    "overall_score": Match.overall_score,
    "created_at": Match.created_at,
    "updated_at": Match.updated_at,
    "status": Match.status,
    "viewed_at": Match.viewed_at,
    "applied_at": Match.applied_at,
}


@router.get("")
async def list_matches(
    user_profile_id: Optional[str] = Query(None),
    status: Optional[MatchStatus] = Query(None),
    min_score: Optional[int] = Query(None, ge=0, le=100),
    max_score: Optional[int] = Query(None, ge=0, le=100),
    is_interested: Optional[bool] = Query(None),
    is_not_interested: Optional[bool] = Query(None),
    sort_by: Literal[
        "overall_score", "created_at", "updated_at", "status", "viewed_at", "applied_at"
    ] = Query("overall_score"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    per_page: int = Query(15, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    query = select(Match).where(Match.not_deleted())

    if user_profile_id:
        query = query.where(Match.user_profile_id == user_profile_id)
    if status:
        query = query.where(Match.status == status.value)
    if min_score is not None:
        query = query.where(Match.overall_score >= min_score)
    if max_score is not None:
        query = query.where(Match.overall_score <= max_score)
    if is_interested is not None:
        query = query.where(Match.is_interested.is_(is_interested))
    if is_not_interested is not None:
        query = query.where(Match.is_not_interested.is_(is_not_interested))

    column = SORTABLE_FIELDS[sort_by]
    query = query.order_by(column.desc() if sort_order == "desc" else column.asc(), Match.id)

    matches, pagination = await paginate(db, query, page, per_page)
    return success_response(
        [MatchResponse.model_validate(match) for match in matches],
        "Matches retrieved successfully",
        pagination,
    )


@router.get("/suggestions")
async def get_suggestions(
    user_profile_id: str = Query(...),
    limit: int = Query(5, ge=1, le=lifecycle.MAX_SUGGESTIONS),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    await get_profile_or_404(db, user_profile_id)
    matches = await lifecycle.get_suggestions(db, user_profile_id, limit)
    return success_response(
        [MatchResponse.model_validate(match) for match in matches],
        "Match suggestions retrieved successfully",
    )


@router.post("/score")
async def score_listings(
    request: ScoreListingsRequest,
    db: AsyncSession = Depends(get_db),
    engine: MatchEngine = Depends(get_match_engine),
    _: bool = Depends(get_current_user),
):
    profile = await get_profile_or_404(db, request.user_profile_id)
    if request.search_criteria_id:
        criteria = await get_criteria(db, request.search_criteria_id)
    else:
        criteria = await get_default_criteria(db, profile.id)

    query = select(Listing).where(Listing.not_deleted(), Listing.is_active.is_(True))
    if request.listing_ids:
        query = query.where(Listing.id.in_(request.listing_ids))
    query = query.order_by(Listing.created_at.desc()).limit(request.limit)

    result = await db.execute(query)
    listings = prefilter_listings(list(result.scalars().all()), criteria)
    matches = await match_listings(db, engine, profile, listings, criteria)

    return success_response(
        [MatchResponse.model_validate(match) for match in sorted(
            matches, key=lambda match: match.overall_score or 0, reverse=True
        )],
        f"{len(matches)} listings scored",
    )


@router.post("", status_code=201)
async def create_match(
    data: MatchCreate,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    fields = data.model_dump(exclude={"user_profile_id", "listing_id", "search_criteria_id"})
    match = await lifecycle.create_match(
        db, data.user_profile_id, data.listing_id, data.search_criteria_id, **fields
    )
    return success_response(MatchResponse.model_validate(match), "Match created successfully")


@router.get("/{match_id}")
async def get_match(
    match_id: str,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    match = await lifecycle.get_match(db, match_id)
    return success_response(MatchResponse.model_validate(match), "Match retrieved successfully")


@router.patch("/{match_id}")
async def update_match(
    match_id: str,
    update: MatchUpdate,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    match = await lifecycle.get_match(db, match_id)
    lifecycle.apply_update(match, update.model_dump(exclude_unset=True))

    await db.commit()
    await db.refresh(match)
    return success_response(MatchResponse.model_validate(match), "Match updated successfully")


@router.delete("/{match_id}")
async def delete_match(
    match_id: str,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    match = await lifecycle.get_match(db, match_id)
    match.soft_delete()
    await db.commit()
    return success_response(None, "Match deleted successfully")


class MatchAction(str, Enum):
    VIEW = "view"
    APPLY = "apply"
    REJECT = "reject"
    INTERESTED = "interested"
    NOT_INTERESTED = "not-interested"


ACTIONS = {
    MatchAction.VIEW: (lifecycle.mark_viewed, "Match marked as viewed"),
    MatchAction.APPLY: (lifecycle.mark_applied, "Match marked as applied"),
    MatchAction.REJECT: (lifecycle.mark_rejected, "Match marked as rejected"),
    MatchAction.INTERESTED: (lifecycle.mark_interested, "Match marked as interested"),
    MatchAction.NOT_INTERESTED: (lifecycle.mark_not_interested, "Match marked as not interested"),
}


@router.post("/{match_id}/{action}")
async def run_action(
    match_id: str,
    action: MatchAction,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    transition, message = ACTIONS[action]
    match = await lifecycle.get_match(db, match_id)
    transition(match)

    await db.commit()
    await db.refresh(match)
    return success_response(MatchResponse.model_validate(match), message)
