"""
Media types shared between the TMDB layer and the collaboration service.
Values match TMDB's ``media_type`` field.
"""

from enum import Enum


class MCType(str, Enum):
    MOVIE = "movie"
    TV_SERIES = "tv"


CREDIT_MEDIA_TYPES = (MCType.MOVIE, MCType.TV_SERIES)


def media_label(media_type: MCType | str | None) -> str:
    """Display label for a credit's media type ("Movie", "TV")."""
    if media_type == MCType.MOVIE:
        return "Movie"
    if media_type == MCType.TV_SERIES:
        return "TV"
    if isinstance(media_type, MCType):
        return media_type.value
    return media_type or ""
