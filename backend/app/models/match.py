"""
Match Model - Scored association between a profile and a listing

Status Flow (permissive, any status may follow any other):
    new → viewed → applied → interview → offer → rejected → closed

Every status change appends {status, changed_at} to `status_history`.
The interest flags are independent of status and never both true.
"""

from enum import Enum

from sqlalchemy import (
    Column, String, Integer, Text, DateTime, Boolean, JSON, ForeignKey,
    UniqueConstraint, Index,
)
from app.database import Base, TimestampMixin, SoftDeleteMixin
import uuid


class MatchStatus(str, Enum):
    NEW = "new"
    VIEWED = "viewed"
    APPLIED = "applied"
    INTERVIEW = "interview"
    OFFER = "offer"
    REJECTED = "rejected"
    CLOSED = "closed"


class Match(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("user_profile_id", "listing_id", name="uq_match_profile_listing"),
        Index("ix_match_profile_score", "user_profile_id", "overall_score"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_profile_id = Column(String, ForeignKey("user_profiles.id"), nullable=False, index=True)
    listing_id = Column(String, ForeignKey("listings.id"), nullable=False, index=True)
    search_criteria_id = Column(String, ForeignKey("search_criteria.id"), nullable=True)

    overall_score = Column(Integer, nullable=False, default=0)
    skills_score = Column(Integer, nullable=True)
    experience_score = Column(Integer, nullable=True)
    education_score = Column(Integer, nullable=True)
    company_fit_score = Column(Integer, nullable=True)

    strengths = Column(JSON, nullable=False, default=list)
    weaknesses = Column(JSON, nullable=False, default=list)
    matching_skills = Column(JSON, nullable=False, default=list)
    missing_skills = Column(JSON, nullable=False, default=list)
    match_summary = Column(Text, nullable=True)
    improvement_suggestions = Column(Text, nullable=True)
    application_advice = Column(Text, nullable=True)

    is_interested = Column(Boolean, nullable=False, default=False)
    is_not_interested = Column(Boolean, nullable=False, default=False)
    user_notes = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=MatchStatus.NEW.value, index=True)
    status_history = Column(JSON, nullable=False, default=list)
    viewed_at = Column(DateTime, nullable=True)
    applied_at = Column(DateTime, nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    last_analyzed_at = Column(DateTime, nullable=True)
