"""
TMDB Models - Pydantic models for raw TMDB API payloads.
Only the fields the collaboration lookup consumes are declared; everything else
TMDB returns is ignored.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, model_validator

from utils.pydantic_tools import BaseModelWithMethods


class _NullSafeListsModel(BaseModelWithMethods):
    """TMDB occasionally sends null where a list is expected."""

    @model_validator(mode="before")
    @classmethod
    def _null_lists_to_empty(cls, data: Any) -> Any:
        if isinstance(data, dict):
            for field_name in ("cast", "crew", "guest_stars", "seasons", "episodes", "results"):
                if field_name in data and data[field_name] is None:
                    data = {**data, field_name: []}
        return data


# ============================================================================
# Person endpoints
# ============================================================================


class TMDBSearchPersonItem(BaseModelWithMethods):
    """Model for a person result from /search/person."""

    id: int
    name: str | None = None
    known_for_department: str | None = None
    popularity: float = 0.0


class TMDBSearchPersonResult(_NullSafeListsModel):
    results: list[TMDBSearchPersonItem] = Field(default_factory=list)
    total_results: int = 0
    total_pages: int = 0
    page: int = 1


class TMDBPersonDetailsResult(BaseModelWithMethods):
    """Model for /person/{id}."""

    id: int
    name: str | None = None
    birthday: str | None = None
    deathday: str | None = None
    known_for_department: str | None = None


class TMDBCombinedCredit(BaseModelWithMethods):
    """One cast or crew entry from /person/{id}/combined_credits.

    Movies carry ``title``/``release_date``; TV series carry
    ``name``/``first_air_date``. Cast entries have ``character``, crew entries
    have ``job``.
    """

    id: int
    media_type: str | None = None
    title: str | None = None
    name: str | None = None
    release_date: str | None = None
    first_air_date: str | None = None
    character: str | None = None
    job: str | None = None
    poster_path: str | None = None


# ============================================================================
# Credit lists (combined, aggregate, episode)
# ============================================================================


class TMDBCombinedCreditsResponse(_NullSafeListsModel):
    id: int | None = None
    cast: list[TMDBCombinedCredit] = Field(default_factory=list)
    crew: list[TMDBCombinedCredit] = Field(default_factory=list)


class TMDBCreditPerson(BaseModelWithMethods):
    """A person listed in aggregate or episode credits."""

    id: int
    name: str | None = None


class TMDBAggregateCreditsResponse(_NullSafeListsModel):
    """Model for /tv/{id}/season/{n}/aggregate_credits."""

    id: int | None = None
    cast: list[TMDBCreditPerson] = Field(default_factory=list)
    crew: list[TMDBCreditPerson] = Field(default_factory=list)

    def person_ids(self) -> set[int]:
        return {p.id for p in self.cast} | {p.id for p in self.crew}


class TMDBEpisodeCreditsResponse(_NullSafeListsModel):
    """Model for /tv/{id}/season/{n}/episode/{e}/credits."""

    id: int | None = None
    cast: list[TMDBCreditPerson] = Field(default_factory=list)
    guest_stars: list[TMDBCreditPerson] = Field(default_factory=list)
    crew: list[TMDBCreditPerson] = Field(default_factory=list)

    def person_ids(self) -> set[int]:
        return (
            {p.id for p in self.cast}
            | {p.id for p in self.guest_stars}
            | {p.id for p in self.crew}
        )


# ============================================================================
# TV series / seasons
# ============================================================================


class TMDBSeasonSummary(BaseModelWithMethods):
    season_number: int | None = None
    name: str | None = None
    air_date: str | None = None
    episode_count: int | None = None


class TMDBTvDetailsResult(_NullSafeListsModel):
    """Model for /tv/{id}."""

    id: int
    name: str | None = None
    seasons: list[TMDBSeasonSummary] = Field(default_factory=list)


class TMDBSeasonEpisode(BaseModelWithMethods):
    episode_number: int
    name: str | None = None
    air_date: str | None = None


class TMDBSeasonDetailsResult(_NullSafeListsModel):
    """Model for /tv/{id}/season/{n}."""

    season_number: int | None = None
    episodes: list[TMDBSeasonEpisode] = Field(default_factory=list)
