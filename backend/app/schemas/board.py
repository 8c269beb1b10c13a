from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Optional

from app.schemas.common import reject_null


class BoardBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=2000)
    domain: Optional[str] = Field(None, max_length=255)
    type: str = "general"
    description: Optional[str] = None
    requires_authentication: bool = False
    authentication_details: Optional[dict[str, Any]] = None
    search_parameters: dict[str, Any] = Field(default_factory=dict)
    search_frequency_hours: int = Field(24, ge=1)
    is_active: bool = True


class BoardCreate(BoardBase):
    pass


class BoardUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    url: Optional[str] = Field(None, min_length=1, max_length=2000)
    domain: Optional[str] = Field(None, max_length=255)
    type: Optional[str] = None
    description: Optional[str] = None
    requires_authentication: Optional[bool] = None
    authentication_details: Optional[dict[str, Any]] = None
    search_parameters: Optional[dict[str, Any]] = None
    search_frequency_hours: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None

    check_not_null = reject_null(
        "name", "url", "type", "requires_authentication", "search_parameters",
        "search_frequency_hours", "is_active",
    )


class BoardResponse(BoardBase):
    id: str
    last_searched_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
