from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Optional

from app.schemas.common import reject_null


class ListingBase(BaseModel):
    external_id: str
    board_id: Optional[str] = None
    title: str
    description: str = ""
    company_name: str
    company_website: Optional[str] = None
    location: str
    is_remote: bool = False
    job_type: Optional[str] = None
    experience_level: Optional[str] = None
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    salary_currency: Optional[str] = None
    salary_period: Optional[str] = None
    salary_is_estimate: bool = False
    skills: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    apply_url: Optional[str] = None
    listing_url: str
    source: str
    posted_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class ListingCreate(ListingBase):
    raw_data: Optional[dict[str, Any]] = None


class ListingUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    company_name: Optional[str] = None
    location: Optional[str] = None
    is_remote: Optional[bool] = None
    job_type: Optional[str] = None
    experience_level: Optional[str] = None
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    salary_currency: Optional[str] = None
    skills: Optional[list[str]] = None
    apply_url: Optional[str] = None
    expires_at: Optional[datetime] = None
    is_active: Optional[bool] = None

    check_not_null = reject_null("title", "description", "company_name", "location", "is_remote", "skills", "is_active")


class ListingResponse(ListingBase):
    id: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
