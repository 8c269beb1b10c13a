from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
from app.database import get_db
from app.models import SearchCriteria
from app.schemas import CriteriaCreate, CriteriaUpdate, CriteriaResponse, success_response
from app.auth import get_current_user
from app.api.dependencies import paginate
from app.services import criteria as criteria_service

router = APIRouter()


@router.get("")
async def list_criteria(
    user_profile_id: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(15, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    query = select(SearchCriteria).where(SearchCriteria.not_deleted())
    if user_profile_id:
        query = query.where(SearchCriteria.user_profile_id == user_profile_id)
    if is_active is not None:
        query = query.where(SearchCriteria.is_active.is_(is_active))

    query = query.order_by(SearchCriteria.is_default.desc(), SearchCriteria.created_at.desc())
    items, pagination = await paginate(db, query, page, per_page)
    return success_response(
        [CriteriaResponse.model_validate(item) for item in items],
        "Search criteria retrieved successfully",
        pagination,
    )


@router.post("", status_code=201)
async def create_criteria(
    data: CriteriaCreate,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    criteria = await criteria_service.create_criteria(db, data.model_dump())
    return success_response(CriteriaResponse.model_validate(criteria), "Search criteria created successfully")


@router.get("/{criteria_id}")
async def get_criteria(
    criteria_id: str,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    criteria = await criteria_service.get_criteria(db, criteria_id)
    return success_response(CriteriaResponse.model_validate(criteria), "Search criteria retrieved successfully")


@router.patch("/{criteria_id}")
async def update_criteria(
    criteria_id: str,
    update: CriteriaUpdate,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    criteria = await criteria_service.update_criteria(db, criteria_id, update.model_dump(exclude_unset=True))
    return success_response(CriteriaResponse.model_validate(criteria), "Search criteria updated successfully")


@router.delete("/{criteria_id}")
async def delete_criteria(
    criteria_id: str,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    await criteria_service.delete_criteria(db, criteria_id)
    return success_response(None, "Search criteria deleted successfully")
