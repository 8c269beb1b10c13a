"""
Tests for Listing Ingestion

Tests cover:
- De-duplication within a batch and against stored listings
- Per-result failure counting
- Board scoping and last_searched_at stamping
- Credential and query checks
"""

import pytest
from sqlalchemy import select, func

from app.errors import ConfigurationError, ValidationError
from app.models import Listing
from app.schemas import ListingCreate
from app.services.ingestion import ingest, ingest_structured
from app.services.scrapers import TavilyScraper
from app.services.scrapers.base import RawResult


def raw(index: int, url: str = None) -> RawResult:
    return RawResult(
        title=f"Python Developer {index} at Acme",
        url=url or f"https://www.indeed.com/viewjob?jk={index}",
        content="Python and Django, Austin, TX",
    )


async def count_listings(db_session) -> int:
    result = await db_session.execute(select(func.count(Listing.id)))
    return result.scalar()


class TestIngest:
    """Test search → normalize → store."""

    @pytest.mark.asyncio
    async def test_duplicate_urls_in_batch_saved_once(self, db_session, fake_scraper):
        fake_scraper.search.return_value = [
            raw(1), raw(2), raw(3), raw(4),
            raw(5, url="https://www.indeed.com/viewjob?jk=2"),
        ]

        report = await ingest(db_session, fake_scraper, query="python developer")

        assert report.saved == 4
        assert report.skipped == 1
        assert report.failed == 0
        assert await count_listings(db_session) == 4
        assert all(listing.id for listing in report.listings)

    @pytest.mark.asyncio
    async def test_second_run_skips_stored_listings(self, db_session, fake_scraper):
        fake_scraper.search.return_value = [raw(1), raw(2)]
        await ingest(db_session, fake_scraper, query="python developer")

        fake_scraper.search.return_value = [raw(1), raw(2), raw(3)]
        report = await ingest(db_session, fake_scraper, query="python developer")

        assert report.saved == 1
        assert report.skipped == 2
        assert await count_listings(db_session) == 3

    @pytest.mark.asyncio
    async def test_soft_deleted_listing_is_not_reingested(self, db_session, fake_scraper):
        fake_scraper.search.return_value = [raw(1)]
        first = await ingest(db_session, fake_scraper, query="python developer")
        first.listings[0].soft_delete()
        await db_session.commit()

        report = await ingest(db_session, fake_scraper, query="python developer")

        assert report.saved == 0
        assert report.skipped == 1

    @pytest.mark.asyncio
    async def test_bad_results_are_counted_not_fatal(self, db_session, fake_scraper):
        fake_scraper.search.return_value = [raw(1), RawResult(title="No link", url=""), raw(2)]

        report = await ingest(db_session, fake_scraper, query="python developer")

        assert report.saved == 2
        assert report.failed == 1

    @pytest.mark.asyncio
    async def test_query_built_from_criteria(self, db_session, fake_scraper, criteria):
        await ingest(db_session, fake_scraper, criteria=criteria)

        query = fake_scraper.search.call_args[0][0]
        assert query == "python developer Austin, TX"

    @pytest.mark.asyncio
    async def test_board_scopes_search_and_is_stamped(self, db_session, fake_scraper, board):
        fake_scraper.search.return_value = [raw(1)]
        assert board.last_searched_at is None

        report = await ingest(db_session, fake_scraper, board=board, query="python")

        assert fake_scraper.search.call_args.kwargs["domains"] == ["indeed.com"]
        assert report.listings[0].board_id == board.id
        assert board.last_searched_at is not None

    @pytest.mark.asyncio
    async def test_same_url_allowed_on_different_boards(self, db_session, fake_scraper, board):
        fake_scraper.search.return_value = [raw(1)]
        await ingest(db_session, fake_scraper, query="python")

        report = await ingest(db_session, fake_scraper, board=board, query="python")

        assert report.saved == 1

    @pytest.mark.asyncio
    async def test_missing_query_raises_validation_error(self, db_session, fake_scraper):
        with pytest.raises(ValidationError) as exc_info:
            await ingest(db_session, fake_scraper)
        assert "query" in exc_info.value.errors
        fake_scraper.search.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_credentials_abort_before_search(self, db_session):
        scraper = TavilyScraper(api_key="")

        with pytest.raises(ConfigurationError):
            await ingest(db_session, scraper, query="python")
        assert await count_listings(db_session) == 0


class TestIngestStructured:
    """Test storing provider-normalized listings."""

    @pytest.mark.asyncio
    async def test_deduplicates_by_external_id(self, db_session):
        jobs = [
            ListingCreate(
                external_id="li-1",
                title="Backend Engineer",
                company_name="Globex",
                location="Remote",
                listing_url=f"https://www.linkedin.com/jobs/view/{suffix}",
                source="linkedin",
            )
            for suffix in ("1", "1-copy")
        ]

        report = await ingest_structured(db_session, jobs, "linkedin")

        assert report.saved == 1
        assert report.skipped == 1
        assert report.to_dict()["listing_ids"] == [report.listings[0].id]
