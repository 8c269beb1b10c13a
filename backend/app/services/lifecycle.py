"""
Match Lifecycle - status transitions and interest flags

Transitions are permissive: any status may follow any other. What is
enforced:

    - every status change appends exactly one {status, changed_at}
      entry to status_history; entries are never rewritten
    - mark_viewed only acts the first time (guarded by viewed_at)
    - is_interested and is_not_interested are never both true

The transition helpers mutate the Match in place; callers commit.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import Match, MatchStatus, Listing, UserProfile

logger = logging.getLogger(__name__)

SUGGESTION_EXCLUDED_STATUSES = (MatchStatus.REJECTED.value, MatchStatus.CLOSED.value)
MAX_SUGGESTIONS = 20


def _status_value(status) -> str:
    value = status.value if isinstance(status, MatchStatus) else str(status)
    try:
        return MatchStatus(value).value
    except ValueError:
        raise ValidationError.for_field("status", f"Invalid status: {value}")


def _append_history(match: Match, status: str, changed_at) -> None:
    # Reassign so the JSON column registers the change
    match.status_history = [
        *(match.status_history or []),
        {"status": status, "changed_at": changed_at.isoformat()},
    ]


def update_status(match: Match, status) -> bool:
    """Set status, appending history only when it differs. Returns True on change."""
    status = _status_value(status)
    if status == match.status:
        return False
    match.status = status
    _append_history(match, status, utcnow())
    return True


def mark_viewed(match: Match) -> Match:
    if match.viewed_at is not None:
        return match

    now = utcnow()
    match.viewed_at = now
    match.status = MatchStatus.VIEWED.value
    _append_history(match, match.status, now)
    return match


def mark_applied(match: Match) -> Match:
    now = utcnow()
    match.applied_at = now
    match.status = MatchStatus.APPLIED.value
    _append_history(match, match.status, now)
    return match


def mark_rejected(match: Match) -> Match:
    now = utcnow()
    match.rejected_at = now
    match.status = MatchStatus.REJECTED.value
    _append_history(match, match.status, now)
    return match


def mark_interested(match: Match) -> Match:
    match.is_interested = True
    match.is_not_interested = False
    return match


def mark_not_interested(match: Match) -> Match:
    match.is_interested = False
    match.is_not_interested = True
    return match


def apply_update(match: Match, changes: Dict[str, Any]) -> Match:
    """
    Generic edit path used by PATCH /matches/{id}.

    Setting one interest flag true clears the other; asking for both
    at once is a validation error.
    """
    changes = dict(changes)

    if changes.get("is_interested") and changes.get("is_not_interested"):
        raise ValidationError({
            "is_interested": ["Cannot be set together with is_not_interested"],
            "is_not_interested": ["Cannot be set together with is_interested"],
        })

    status = changes.pop("status", None)
    interested = changes.pop("is_interested", None)
    not_interested = changes.pop("is_not_interested", None)

    for field, value in changes.items():
        setattr(match, field, value)

    if interested:
        mark_interested(match)
    elif interested is not None:
        match.is_interested = False

    if not_interested:
        mark_not_interested(match)
    elif not_interested is not None:
        match.is_not_interested = False

    if status is not None:
        update_status(match, status)
    return match


def new_match(
    user_profile_id: str,
    listing_id: str,
    search_criteria_id: Optional[str] = None,
    **fields,
) -> Match:
    """Unsaved Match in status new with its creation history entry."""
    match = Match(
        user_profile_id=user_profile_id,
        listing_id=listing_id,
        search_criteria_id=search_criteria_id,
        status=MatchStatus.NEW.value,
        status_history=[],
        is_interested=False,
        is_not_interested=False,
        **fields,
    )
    _append_history(match, MatchStatus.NEW.value, utcnow())
    return match


async def find_match(db: AsyncSession, user_profile_id: str, listing_id: str) -> Optional[Match]:
    """Existing match for the pair, soft-deleted rows included."""
    result = await db.execute(
        select(Match).where(
            Match.user_profile_id == user_profile_id,
            Match.listing_id == listing_id,
        )
    )
    return result.scalar_one_or_none()


async def create_match(
    db: AsyncSession,
    user_profile_id: str,
    listing_id: str,
    search_criteria_id: Optional[str] = None,
    **fields,
) -> Match:
    """
    Persist a new match.

    Raises:
        NotFoundError: profile or listing missing
        ConflictError: a match for the pair already exists
    """
    profile = await db.get(UserProfile, user_profile_id)
    if profile is None or profile.deleted_at is not None:
        raise NotFoundError("User profile", user_profile_id)

    listing = await db.get(Listing, listing_id)
    if listing is None or listing.deleted_at is not None:
        raise NotFoundError("Listing", listing_id)

    if await find_match(db, user_profile_id, listing_id) is not None:
        raise ConflictError("A match for this profile and listing already exists")

    match = new_match(user_profile_id, listing_id, search_criteria_id, **fields)
    db.add(match)
    await db.commit()
    await db.refresh(match)
    return match


async def get_match(db: AsyncSession, match_id: str) -> Match:
    result = await db.execute(
        select(Match).where(Match.id == match_id, Match.not_deleted())
    )
    match = result.scalar_one_or_none()
    if match is None:
        raise NotFoundError("Match", match_id)
    return match


async def get_suggestions(db: AsyncSession, user_profile_id: str, limit: int = 5) -> List[Match]:
    """Best-scoring matches the user has not yet acted on."""
    limit = max(1, min(limit, MAX_SUGGESTIONS))
    result = await db.execute(
        select(Match)
        .where(
            Match.user_profile_id == user_profile_id,
            Match.not_deleted(),
            Match.is_interested.is_(False),
            Match.is_not_interested.is_(False),
            Match.status.not_in(SUGGESTION_EXCLUDED_STATUSES),
        )
        .order_by(Match.overall_score.desc(), Match.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
