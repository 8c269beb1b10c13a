from app.models.board import Board
from app.models.listing import Listing
from app.models.profile import UserProfile
from app.models.criteria import SearchCriteria
from app.models.match import Match, MatchStatus

__all__ = [
    "Board",
    "Listing",
    "UserProfile",
    "SearchCriteria",
    "Match",
    "MatchStatus",
]
