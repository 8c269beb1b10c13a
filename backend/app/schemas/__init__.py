from app.schemas.auth import LoginRequest
from app.schemas.common import success_response, error_response, build_pagination
from app.schemas.board import BoardCreate, BoardUpdate, BoardResponse
from app.schemas.listing import ListingCreate, ListingUpdate, ListingResponse
from app.schemas.profile import ProfileCreate, ProfileUpdate, ProfileResponse
from app.schemas.criteria import CriteriaCreate, CriteriaUpdate, CriteriaResponse
from app.schemas.match import MatchCreate, MatchUpdate, MatchResponse, ScoreListingsRequest
from app.schemas.ai import AnalyzeMatchRequest, CoverLetterRequest
from app.schemas.ingestion import SearchRequest, BrightDataSearchRequest

__all__ = [
    "LoginRequest",
    "success_response",
    "error_response",
    "build_pagination",
    "BoardCreate",
    "BoardUpdate",
    "BoardResponse",
    "ListingCreate",
    "ListingUpdate",
    "ListingResponse",
    "ProfileCreate",
    "ProfileUpdate",
    "ProfileResponse",
    "CriteriaCreate",
    "CriteriaUpdate",
    "CriteriaResponse",
    "MatchCreate",
    "MatchUpdate",
    "MatchResponse",
    "ScoreListingsRequest",
    "AnalyzeMatchRequest",
    "CoverLetterRequest",
    "SearchRequest",
    "BrightDataSearchRequest",
]
