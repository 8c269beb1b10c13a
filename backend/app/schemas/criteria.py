from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import Optional

from app.schemas.common import reject_null


class CriteriaFields(BaseModel):
    keywords: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)
    job_type: Optional[str] = Field(None, max_length=50)
    experience_level: Optional[str] = Field(None, max_length=50)
    min_salary: Optional[int] = Field(None, ge=0)
    max_salary: Optional[int] = Field(None, ge=0)
    salary_currency: Optional[str] = Field(None, min_length=3, max_length=3)
    is_remote: Optional[bool] = None
    industries: list[str] = Field(default_factory=list)
    companies: list[str] = Field(default_factory=list)
    job_titles: list[str] = Field(default_factory=list)
    skills_included: list[str] = Field(default_factory=list)
    skills_excluded: list[str] = Field(default_factory=list)
    days_posted: Optional[int] = Field(None, ge=1)

    @model_validator(mode="after")
    def check_salary_band(self):
        if self.min_salary is not None and self.max_salary is not None:
            if self.max_salary <= self.min_salary:
                raise ValueError("max_salary must be greater than min_salary")
        return self


class CriteriaCreate(CriteriaFields):
    user_profile_id: str
    name: str = Field(..., min_length=1, max_length=255)
    is_default: bool = False
    is_active: bool = True


class CriteriaUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    is_default: Optional[bool] = None
    keywords: Optional[list[str]] = None
    locations: Optional[list[str]] = None
    job_type: Optional[str] = Field(None, max_length=50)
    experience_level: Optional[str] = Field(None, max_length=50)
    min_salary: Optional[int] = Field(None, ge=0)
    max_salary: Optional[int] = Field(None, ge=0)
    salary_currency: Optional[str] = Field(None, min_length=3, max_length=3)
    is_remote: Optional[bool] = None
    industries: Optional[list[str]] = None
    companies: Optional[list[str]] = None
    job_titles: Optional[list[str]] = None
    skills_included: Optional[list[str]] = None
    skills_excluded: Optional[list[str]] = None
    days_posted: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None

    check_not_null = reject_null(
        "name", "is_default", "is_active", "keywords", "locations", "industries",
        "companies", "job_titles", "skills_included", "skills_excluded",
    )


class CriteriaResponse(CriteriaFields):
    id: str
    user_profile_id: str
    name: str
    is_default: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
