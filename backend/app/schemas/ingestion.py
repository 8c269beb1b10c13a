from pydantic import BaseModel, Field, model_validator
from typing import Any, Optional


class SearchRequest(BaseModel):
    """Either a stored criteria id or ad hoc search parameters."""

    search_criteria_id: Optional[str] = None
    board_id: Optional[str] = None
    query: Optional[str] = Field(None, min_length=2, max_length=255)
    keywords: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)
    job_type: Optional[str] = None
    experience_level: Optional[str] = None
    is_remote: Optional[bool] = None
    skills_included: list[str] = Field(default_factory=list)
    max_results: Optional[int] = Field(None, ge=1, le=50)

    @model_validator(mode="after")
    def check_has_query(self):
        if not (self.search_criteria_id or self.query or self.keywords):
            raise ValueError("search_criteria_id, query or keywords is required")
        return self


class BrightDataSearchRequest(BaseModel):
    query: str = Field(..., min_length=2, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    country: str = Field("us", min_length=2, max_length=2)
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=50)
    filters: dict[str, Any] = Field(default_factory=dict)
    board_id: Optional[str] = None
    save: bool = False
