"""
Listing Ingestion - search provider → normalized, de-duplicated listings

Pipeline:
    1. Check provider credentials (fatal if missing)
    2. Build the query from criteria (or use the explicit query)
    3. Search, scoped to the board domain when one is given
    4. Normalize each result; a failing result is logged and counted
    5. Drop URLs repeated within the batch
    6. Drop URLs / external ids already stored for the board
    7. Persist the rest in one commit and stamp the board

The report counts saved, skipped (duplicates) and failed results.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional, Sequence

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import utcnow
from app.errors import ValidationError
from app.middleware.metrics import record_ingestion
from app.models import Board, Listing
from app.schemas import ListingCreate
from app.services.normalizer import build_search_query, normalize_result

logger = logging.getLogger(__name__)


@dataclass
class IngestionReport:
    source: str
    query: str = ""
    saved: int = 0
    skipped: int = 0
    failed: int = 0
    listings: List[Listing] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "query": self.query,
            "saved": self.saved,
            "skipped": self.skipped,
            "failed": self.failed,
            "listing_ids": [listing.id for listing in self.listings],
        }


async def _existing_keys(
    db: AsyncSession,
    candidates: Sequence[ListingCreate],
    board_id: Optional[str],
) -> set:
    """URLs and external ids already stored for the board, soft-deleted rows included."""
    urls = [candidate.listing_url for candidate in candidates]
    external_ids = [candidate.external_id for candidate in candidates]
    if not urls:
        return set()

    board_filter = Listing.board_id == board_id if board_id else Listing.board_id.is_(None)
    result = await db.execute(
        select(Listing.listing_url, Listing.external_id).where(
            board_filter,
            or_(Listing.listing_url.in_(urls), Listing.external_id.in_(external_ids)),
        )
    )
    keys = set()
    for url, external_id in result.all():
        keys.add(("url", url))
        keys.add(("id", external_id))
    return keys


async def store_listings(
    db: AsyncSession,
    candidates: Sequence[ListingCreate],
    report: IngestionReport,
    board: Optional[Board] = None,
) -> IngestionReport:
    """De-duplicate candidates against the batch and the store, then persist."""
    settings = get_settings()
    board_id = board.id if board else None

    unique = []
    seen = set()
    for candidate in candidates:
        keys = {("url", candidate.listing_url), ("id", candidate.external_id)}
        if keys & seen:
            report.skipped += 1
            continue
        seen |= keys
        unique.append(candidate)

    existing = await _existing_keys(db, unique, board_id)
    expires_at = utcnow() + timedelta(days=settings.listing_ttl_days)

    for candidate in unique:
        if {("url", candidate.listing_url), ("id", candidate.external_id)} & existing:
            report.skipped += 1
            continue

        data = candidate.model_dump()
        data["board_id"] = board_id
        if data.get("expires_at") is None:
            data["expires_at"] = expires_at
        listing = Listing(**data)
        db.add(listing)
        report.listings.append(listing)
        report.saved += 1

    if board is not None:
        board.last_searched_at = utcnow()

    await db.commit()

    record_ingestion(report.source, report.saved, report.skipped, report.failed)
    logger.info(
        f"Ingestion from {report.source}: {report.saved} saved, "
        f"{report.skipped} skipped, {report.failed} failed"
    )
    return report


async def ingest(
    db: AsyncSession,
    scraper,
    criteria=None,
    board: Optional[Board] = None,
    query: Optional[str] = None,
    max_results: Optional[int] = None,
) -> IngestionReport:
    """
    Run one search and store the new listings.

    Raises:
        ConfigurationError: provider credentials missing
        ValidationError: neither a query nor usable criteria
        UpstreamError: the provider call failed
    """
    scraper.ensure_configured()

    query = (query or build_search_query(criteria)).strip()
    if not query:
        raise ValidationError.for_field("query", "A search query or criteria keywords are required")

    settings = get_settings()
    report = IngestionReport(source=scraper.source, query=query)
    domains = [board.domain] if board is not None and board.domain else None

    results = await scraper.search(query, domains=domains, max_results=max_results)

    candidates = []
    for result in results:
        try:
            candidates.append(
                normalize_result(
                    result,
                    criteria=criteria,
                    board_id=board.id if board else None,
                    max_length=settings.description_max_length,
                )
            )
        except Exception as e:
            logger.error(f"Error processing search result {getattr(result, 'url', None)!r}: {e}")
            report.failed += 1

    return await store_listings(db, candidates, report, board)


async def ingest_structured(
    db: AsyncSession,
    listings: Sequence[ListingCreate],
    source: str,
    board: Optional[Board] = None,
) -> IngestionReport:
    """Store listings a provider has already normalized (Bright Data)."""
    return await store_listings(db, listings, IngestionReport(source=source), board)
