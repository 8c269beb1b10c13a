from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.database import get_db
from app.errors import NotFoundError
from app.models import Listing
from app.schemas import AnalyzeMatchRequest, CoverLetterRequest, success_response
from app.auth import get_current_user
from app.api.dependencies import get_match_engine
from app.api.profiles import get_profile_or_404
from app.services.criteria import get_criteria
from app.services.match_engine import MatchEngine

router = APIRouter()


async def _get_listing(db: AsyncSession, listing_id: str) -> Listing:
    result = await db.execute(select(Listing).where(Listing.id == listing_id, Listing.not_deleted()))
    listing = result.scalar_one_or_none()
    if not listing:
        raise NotFoundError("Listing", listing_id)
    return listing


@router.post("/analyze-match")
async def analyze_match(
    request: AnalyzeMatchRequest,
    db: AsyncSession = Depends(get_db),
    engine: MatchEngine = Depends(get_match_engine),
    _: bool = Depends(get_current_user),
):
    profile = await get_profile_or_404(db, request.user_profile_id)
    listing = await _get_listing(db, request.listing_id)
    criteria = await get_criteria(db, request.search_criteria_id) if request.search_criteria_id else None

    result = await engine.score(listing, profile, criteria)
    return success_response(
        {
            "user_profile_id": profile.id,
            "listing_id": listing.id,
            "overall_score": result.overall_score,
            "analysis": result.analysis,
        },
        "Match analysis completed successfully",
    )


@router.post("/generate-cover-letter")
async def generate_cover_letter(
    request: CoverLetterRequest,
    db: AsyncSession = Depends(get_db),
    engine: MatchEngine = Depends(get_match_engine),
    _: bool = Depends(get_current_user),
):
    profile = await get_profile_or_404(db, request.user_profile_id)
    listing = await _get_listing(db, request.listing_id)

    letter = await engine.generate_cover_letter(
        listing,
        profile,
        **request.model_dump(exclude={"user_profile_id", "listing_id"}),
    )
    return success_response(
        {"cover_letter": letter, "listing_id": listing.id, "user_profile_id": profile.id},
        "Cover letter generated successfully",
    )
