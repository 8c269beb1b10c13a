from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
from app.database import get_db
from app.errors import ConflictError, NotFoundError
from app.models import UserProfile
from app.schemas import (
    ProfileCreate, ProfileUpdate, ProfileResponse, CriteriaResponse, success_response,
)
from app.auth import get_current_user
from app.api.dependencies import paginate
from app.services.criteria import get_default_criteria

router = APIRouter()


async def get_profile_or_404(db: AsyncSession, profile_id: str) -> UserProfile:
    result = await db.execute(
        select(UserProfile).where(UserProfile.id == profile_id, UserProfile.not_deleted())
    )
    profile = result.scalar_one_or_none()
    if not profile:
        raise NotFoundError("User profile", profile_id)
    return profile


async def _ensure_email_available(db: AsyncSession, email: str, exclude_id: Optional[str] = None) -> None:
    query = select(UserProfile.id).where(UserProfile.email == email)
    if exclude_id:
        query = query.where(UserProfile.id != exclude_id)
    result = await db.execute(query)
    if result.first():
        raise ConflictError("A profile with this email already exists")


@router.get("")
async def list_profiles(
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(15, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    query = select(UserProfile).where(UserProfile.not_deleted())
    if search:
        query = query.where(
            UserProfile.name.ilike(f"%{search}%") | UserProfile.email.ilike(f"%{search}%")
        )
    if is_active is not None:
        query = query.where(UserProfile.is_active.is_(is_active))

    profiles, pagination = await paginate(db, query.order_by(UserProfile.name), page, per_page)
    return success_response(
        [ProfileResponse.model_validate(profile) for profile in profiles],
        "Profiles retrieved successfully",
        pagination,
    )


@router.post("", status_code=201)
async def create_profile(
    data: ProfileCreate,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    await _ensure_email_available(db, data.email)

    profile = UserProfile(**data.model_dump(mode="json"))
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    return success_response(ProfileResponse.model_validate(profile), "Profile created successfully")


@router.get("/{profile_id}")
async def get_profile(
    profile_id: str,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    profile = await get_profile_or_404(db, profile_id)
    return success_response(ProfileResponse.model_validate(profile), "Profile retrieved successfully")


@router.patch("/{profile_id}")
async def update_profile(
    profile_id: str,
    update: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    profile = await get_profile_or_404(db, profile_id)

    update_data = update.model_dump(mode="json", exclude_unset=True)
    if update_data.get("email"):
        await _ensure_email_available(db, update_data["email"], exclude_id=profile.id)

    for field, value in update_data.items():
        setattr(profile, field, value)

    await db.commit()
    await db.refresh(profile)
    return success_response(ProfileResponse.model_validate(profile), "Profile updated successfully")


@router.delete("/{profile_id}")
async def delete_profile(
    profile_id: str,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    profile = await get_profile_or_404(db, profile_id)
    profile.soft_delete()
    profile.is_active = False
    await db.commit()
    return success_response(None, "Profile deleted successfully")


@router.get("/{profile_id}/default-criteria")
async def get_profile_default_criteria(
    profile_id: str,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    await get_profile_or_404(db, profile_id)
    criteria = await get_default_criteria(db, profile_id)
    return success_response(CriteriaResponse.model_validate(criteria), "Default search criteria retrieved successfully")
