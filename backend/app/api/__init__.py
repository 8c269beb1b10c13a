from fastapi import APIRouter
from app.api import auth, boards, listings, profiles, criteria, matches, ai, ingestion, stats

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
api_router.include_router(boards.router, prefix="/boards", tags=["boards"])
api_router.include_router(criteria.router, prefix="/criteria", tags=["criteria"])
api_router.include_router(listings.router, prefix="/listings", tags=["listings"])
api_router.include_router(matches.router, prefix="/matches", tags=["matches"])
api_router.include_router(ai.router, prefix="/ai", tags=["ai"])
api_router.include_router(ingestion.router, prefix="/ingestion", tags=["ingestion"])
api_router.include_router(stats.router, prefix="/stats", tags=["stats"])
