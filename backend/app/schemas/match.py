from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Optional
from app.models.match import MatchStatus
from app.schemas.common import reject_null


class MatchCreate(BaseModel):
    user_profile_id: str
    listing_id: str
    search_criteria_id: Optional[str] = None
    overall_score: int = Field(0, ge=0, le=100)
    skills_score: Optional[int] = Field(None, ge=0, le=100)
    experience_score: Optional[int] = Field(None, ge=0, le=100)
    education_score: Optional[int] = Field(None, ge=0, le=100)
    company_fit_score: Optional[int] = Field(None, ge=0, le=100)
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    matching_skills: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    match_summary: Optional[str] = None
    improvement_suggestions: Optional[str] = None
    application_advice: Optional[str] = None
    user_notes: Optional[str] = None


class MatchUpdate(BaseModel):
    status: Optional[MatchStatus] = None
    is_interested: Optional[bool] = None
    is_not_interested: Optional[bool] = None
    user_notes: Optional[str] = None
    overall_score: Optional[int] = Field(None, ge=0, le=100)
    match_summary: Optional[str] = None
    application_advice: Optional[str] = None

    check_not_null = reject_null("status", "is_interested", "is_not_interested", "overall_score")


class MatchResponse(BaseModel):
    id: str
    user_profile_id: str
    listing_id: str
    search_criteria_id: Optional[str] = None
    overall_score: Optional[float] = None
    skills_score: Optional[float] = None
    experience_score: Optional[float] = None
    education_score: Optional[float] = None
    company_fit_score: Optional[float] = None
    strengths: list[Any]
    weaknesses: list[Any]
    matching_skills: list[Any]
    missing_skills: list[Any]
    match_summary: Optional[str] = None
    improvement_suggestions: Optional[str] = None
    application_advice: Optional[str] = None
    is_interested: bool
    is_not_interested: bool
    user_notes: Optional[str] = None
    status: str
    status_history: list[dict[str, Any]]
    viewed_at: Optional[datetime] = None
    applied_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    last_analyzed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ScoreListingsRequest(BaseModel):
    user_profile_id: str
    search_criteria_id: Optional[str] = None
    listing_ids: Optional[list[str]] = None
    limit: int = Field(20, ge=1, le=100)
