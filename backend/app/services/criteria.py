"""
Search Criteria Service

Keeps the per-profile rules the table cannot express:

    - at most one criteria row per profile has is_default=True; a write
      that sets the flag clears it on the others (last writer wins)
    - a profile always keeps at least one criteria row

The clear-others update and the row write run in one transaction with
the owning profile row locked (FOR UPDATE where the backend supports it).
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import SearchCriteria, UserProfile

logger = logging.getLogger(__name__)


async def _lock_profile(db: AsyncSession, profile_id: str) -> UserProfile:
    result = await db.execute(
        select(UserProfile)
        .where(UserProfile.id == profile_id, UserProfile.not_deleted())
        .with_for_update()
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        raise NotFoundError("User profile", profile_id)
    return profile


async def _clear_other_defaults(db: AsyncSession, profile_id: str, keep_id: Optional[str] = None) -> None:
    stmt = update(SearchCriteria).where(
        SearchCriteria.user_profile_id == profile_id,
        SearchCriteria.is_default.is_(True),
    )
    if keep_id:
        stmt = stmt.where(SearchCriteria.id != keep_id)
    await db.execute(stmt.values(is_default=False, updated_at=utcnow()))


def _check_salary_band(min_salary, max_salary) -> None:
    if min_salary is not None and max_salary is not None and max_salary <= min_salary:
        raise ValidationError.for_field("max_salary", "max_salary must be greater than min_salary")


async def get_criteria(db: AsyncSession, criteria_id: str) -> SearchCriteria:
    result = await db.execute(
        select(SearchCriteria).where(SearchCriteria.id == criteria_id, SearchCriteria.not_deleted())
    )
    criteria = result.scalar_one_or_none()
    if criteria is None:
        raise NotFoundError("Search criteria", criteria_id)
    return criteria


async def create_criteria(db: AsyncSession, data: Dict[str, Any]) -> SearchCriteria:
    _check_salary_band(data.get("min_salary"), data.get("max_salary"))

    try:
        await _lock_profile(db, data["user_profile_id"])
        criteria = SearchCriteria(**data)
        if criteria.is_default:
            await _clear_other_defaults(db, criteria.user_profile_id)
        db.add(criteria)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(criteria)
    return criteria


async def update_criteria(db: AsyncSession, criteria_id: str, changes: Dict[str, Any]) -> SearchCriteria:
    criteria = await get_criteria(db, criteria_id)
    _check_salary_band(
        changes.get("min_salary", criteria.min_salary),
        changes.get("max_salary", criteria.max_salary),
    )

    try:
        await _lock_profile(db, criteria.user_profile_id)
        if changes.get("is_default"):
            await _clear_other_defaults(db, criteria.user_profile_id, keep_id=criteria.id)
        for field, value in changes.items():
            setattr(criteria, field, value)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(criteria)
    return criteria


async def delete_criteria(db: AsyncSession, criteria_id: str) -> None:
    """Soft-delete a criteria row unless it is the profile's last one."""
    criteria = await get_criteria(db, criteria_id)

    try:
        await _lock_profile(db, criteria.user_profile_id)
        remaining = await db.execute(
            select(func.count(SearchCriteria.id)).where(
                SearchCriteria.user_profile_id == criteria.user_profile_id,
                SearchCriteria.not_deleted(),
            )
        )
        if (remaining.scalar() or 0) <= 1:
            raise ConflictError("Cannot delete the only search criteria for a profile")

        criteria.soft_delete()
        criteria.is_default = False
        await db.commit()
    except Exception:
        await db.rollback()
        raise


async def get_default_criteria(db: AsyncSession, profile_id: str) -> SearchCriteria:
    """The profile's default criteria, else its newest active one."""
    base = select(SearchCriteria).where(
        SearchCriteria.user_profile_id == profile_id,
        SearchCriteria.not_deleted(),
    )

    result = await db.execute(base.where(SearchCriteria.is_default.is_(True)))
    criteria = result.scalars().first()
    if criteria is None:
        newest_active = base.where(SearchCriteria.is_active.is_(True)).order_by(SearchCriteria.created_at.desc())
        result = await db.execute(newest_active.limit(1))
        criteria = result.scalars().first()

    if criteria is None:
        raise NotFoundError("Search criteria", profile_id)
    return criteria
