from pydantic import BaseModel, Field
from typing import Literal, Optional


class AnalyzeMatchRequest(BaseModel):
    user_profile_id: str
    listing_id: str
    search_criteria_id: Optional[str] = None


class CoverLetterRequest(BaseModel):
    user_profile_id: str
    listing_id: str
    tone: Literal["professional", "enthusiastic", "friendly", "formal"] = "professional"
    length: Literal["short", "medium", "long"] = "medium"
    highlight_skills: list[str] = Field(default_factory=list)
    include_salary_expectations: bool = False
    custom_instructions: Optional[str] = Field(None, max_length=1000)
