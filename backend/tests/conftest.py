import os
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Keep tests off the on-disk database and away from real providers
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from app.database import Base, get_db
from app.main import app
from app.auth import get_current_user
from app.api.dependencies import (
    get_analysis_cache,
    get_match_engine,
    get_search_scraper,
    get_brightdata_scraper,
)
from app.models import Board, Listing, UserProfile, SearchCriteria


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    TestingSession = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with TestingSession() as session:
        yield session


@pytest.fixture
def fake_cache():
    """Cache double that always misses."""
    cache = MagicMock()
    cache.get_analysis = AsyncMock(return_value=None)
    cache.set_analysis = AsyncMock(return_value=True)
    cache.get_cover_letter = AsyncMock(return_value=None)
    cache.set_cover_letter = AsyncMock(return_value=True)
    cache.invalidate_listing = AsyncMock(return_value=0)
    cache.health_check = AsyncMock(return_value=False)
    return cache


@pytest.fixture
def fake_engine():
    """Match engine double; tests set score/score_batch return values."""
    engine = MagicMock()
    engine.score = AsyncMock()
    engine.score_batch = AsyncMock(return_value=[])
    engine.generate_cover_letter = AsyncMock(return_value="Dear Hiring Manager,")
    return engine


@pytest.fixture
def fake_scraper():
    scraper = MagicMock()
    scraper.source = "tavily"
    scraper.is_configured = MagicMock(return_value=True)
    scraper.ensure_configured = MagicMock()
    scraper.search = AsyncMock(return_value=[])
    return scraper


@pytest_asyncio.fixture
async def client(db_session, fake_cache, fake_engine, fake_scraper):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: True
    app.dependency_overrides[get_analysis_cache] = lambda: fake_cache
    app.dependency_overrides[get_match_engine] = lambda: fake_engine
    app.dependency_overrides[get_search_scraper] = lambda: fake_scraper
    app.dependency_overrides[get_brightdata_scraper] = lambda: fake_scraper

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


# ==================== Model Factories ====================

@pytest_asyncio.fixture
async def profile(db_session):
    profile = UserProfile(
        name="Ada Lovelace",
        email="ada@example.com",
        title="Senior Python Developer",
        summary="Backend engineer with a focus on data pipelines.",
        skills=["Python", "Django", "PostgreSQL"],
        experience=[],
        education=[],
        certifications=[],
        languages=[],
        preferences={},
    )
    db_session.add(profile)
    await db_session.commit()
    return profile


@pytest_asyncio.fixture
async def board(db_session):
    board = Board(name="Indeed", url="https://www.indeed.com", domain="indeed.com", search_parameters={})
    db_session.add(board)
    await db_session.commit()
    return board


@pytest_asyncio.fixture
async def criteria(db_session, profile):
    criteria = SearchCriteria(
        user_profile_id=profile.id,
        name="Python roles",
        is_default=True,
        keywords=["python developer"],
        locations=["Austin, TX"],
        skills_included=["Python"],
    )
    db_session.add(criteria)
    await db_session.commit()
    return criteria


def make_listing(index: int = 1, **overrides) -> Listing:
    data = {
        "external_id": f"ext-{index}",
        "title": f"Python Developer {index}",
        "description": "Build APIs with Python and PostgreSQL.",
        "company_name": "Acme",
        "location": "Austin, TX",
        "listing_url": f"https://www.indeed.com/viewjob?jk={index}",
        "source": "indeed.com",
        "skills": ["Python"],
        "categories": [],
    }
    data.update(overrides)
    return Listing(**data)


@pytest_asyncio.fixture
async def listing(db_session):
    listing = make_listing()
    db_session.add(listing)
    await db_session.commit()
    return listing


@pytest.fixture
def listing_factory():
    return make_listing
