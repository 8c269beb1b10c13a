"""
FastAPI Dependencies

Provider and helper dependencies shared by the routers. Tests replace
the provider factories through app.dependency_overrides.
"""

from typing import Any, List, Tuple

from fastapi import Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas import build_pagination
from app.services.ai_client import AIClient
from app.services.cache import AnalysisCache, get_cache
from app.services.match_engine import MatchEngine
from app.services.scrapers import BrightDataScraper, TavilyScraper


async def get_analysis_cache() -> AnalysisCache:
    return await get_cache()


def get_ai_client() -> AIClient:
    return AIClient()


def get_match_engine(
    ai_client: AIClient = Depends(get_ai_client),
    cache: AnalysisCache = Depends(get_analysis_cache),
) -> MatchEngine:
    return MatchEngine(ai_client, cache=cache)


def get_search_scraper() -> TavilyScraper:
    return TavilyScraper()


def get_brightdata_scraper() -> BrightDataScraper:
    return BrightDataScraper()


async def paginate(
    db: AsyncSession,
    query,
    page: int,
    per_page: int,
) -> Tuple[List[Any], dict]:
    """Run `query` for one page and build the pagination block."""
    total_result = await db.execute(select(func.count()).select_from(query.order_by(None).subquery()))
    total = total_result.scalar() or 0

    result = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
    items = list(result.scalars().all())

    return items, build_pagination(total, page, per_page, len(items))
