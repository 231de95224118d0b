"""
TMDB Services - Modular TMDB API services
Person lookups and TV episode overlap confirmation on top of a shared core.
"""

from api.tmdb.core import TMDBService
from api.tmdb.models import (
    CandidatePair,
    CollaborationResult,
    Credit,
    EpisodeMatch,
    PersonProfile,
    PersonSummary,
)
from api.tmdb.person import TMDBPersonService
from api.tmdb.tv_overlap import TMDBTvOverlapService

__all__ = [
    # Services
    "TMDBService",
    "TMDBPersonService",
    "TMDBTvOverlapService",
    # Models
    "Credit",
    "PersonProfile",
    "EpisodeMatch",
    "CandidatePair",
    "PersonSummary",
    "CollaborationResult",
]
