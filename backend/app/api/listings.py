from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from typing import Optional
from app.database import get_db
from app.errors import ConflictError, NotFoundError
from app.models import Listing
from app.schemas import ListingCreate, ListingUpdate, ListingResponse, success_response
from app.auth import get_current_user
from app.api.dependencies import paginate, get_analysis_cache
from app.services.cache import AnalysisCache

router = APIRouter()


async def _get_listing(db: AsyncSession, listing_id: str) -> Listing:
    result = await db.execute(select(Listing).where(Listing.id == listing_id, Listing.not_deleted()))
    listing = result.scalar_one_or_none()
    if not listing:
        raise NotFoundError("Listing", listing_id)
    return listing


@router.get("")
async def list_listings(
    search: Optional[str] = Query(None),
    board_id: Optional[str] = Query(None),
    source: Optional[str] = Query(None),
    is_remote: Optional[bool] = Query(None),
    job_type: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(15, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    query = select(Listing).where(Listing.not_deleted())

    if search:
        query = query.where(
            Listing.title.ilike(f"%{search}%") | Listing.company_name.ilike(f"%{search}%")
        )
    if board_id:
        query = query.where(Listing.board_id == board_id)
    if source:
        query = query.where(Listing.source == source)
    if is_remote is not None:
        query = query.where(Listing.is_remote.is_(is_remote))
    if job_type:
        query = query.where(Listing.job_type == job_type)
    if is_active is not None:
        query = query.where(Listing.is_active.is_(is_active))

    query = query.order_by(Listing.posted_at.desc(), Listing.created_at.desc())
    listings, pagination = await paginate(db, query, page, per_page)

    return success_response(
        [ListingResponse.model_validate(listing) for listing in listings],
        "Listings retrieved successfully",
        pagination,
    )


@router.post("", status_code=201)
async def create_listing(
    data: ListingCreate,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    board_filter = Listing.board_id == data.board_id if data.board_id else Listing.board_id.is_(None)
    existing = await db.execute(
        select(Listing.id).where(
            board_filter,
            or_(Listing.external_id == data.external_id, Listing.listing_url == data.listing_url),
        )
    )
    if existing.first():
        raise ConflictError("A listing with this external id or URL already exists")

    listing = Listing(**data.model_dump())
    db.add(listing)
    await db.commit()
    await db.refresh(listing)
    return success_response(ListingResponse.model_validate(listing), "Listing created successfully")


@router.get("/{listing_id}")
async def get_listing(
    listing_id: str,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    listing = await _get_listing(db, listing_id)
    return success_response(ListingResponse.model_validate(listing), "Listing retrieved successfully")


@router.patch("/{listing_id}")
async def update_listing(
    listing_id: str,
    update: ListingUpdate,
    db: AsyncSession = Depends(get_db),
    cache: AnalysisCache = Depends(get_analysis_cache),
    _: bool = Depends(get_current_user),
):
    listing = await _get_listing(db, listing_id)

    update_data = update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(listing, field, value)

    await db.commit()
    await db.refresh(listing)
    await cache.invalidate_listing(listing.id)
    return success_response(ListingResponse.model_validate(listing), "Listing updated successfully")


@router.delete("/{listing_id}")
async def delete_listing(
    listing_id: str,
    db: AsyncSession = Depends(get_db),
    cache: AnalysisCache = Depends(get_analysis_cache),
    _: bool = Depends(get_current_user),
):
    listing = await _get_listing(db, listing_id)
    listing.soft_delete()
    listing.is_active = False
    await db.commit()
    await cache.invalidate_listing(listing_id)
    return success_response(None, "Listing deleted successfully")
