"""
Models - Consumer models returned by the collaboration lookup.
Built from the raw TMDB payload models in tmdb_models.py.
"""

from datetime import date

from api.tmdb.tmdb_models import (
    TMDBCombinedCredit,
    TMDBPersonDetailsResult,
    TMDBSeasonEpisode,
)
from contracts.models import CREDIT_MEDIA_TYPES, MCType
from utils.dates import age_at_date, parse_date_maybe, year_of
from utils.pydantic_tools import BaseModelWithMethods

UNTITLED = "(untitled)"

CreditKey = tuple[int, MCType]


class Credit(BaseModelWithMethods):
    """A single appearance of a person in a movie or TV series."""

    id: int
    media_type: MCType
    title: str = UNTITLED
    release_date: date | None = None
    role: str | None = None
    poster_path: str | None = None

    @property
    def key(self) -> CreditKey:
        # TMDB movie and tv ids live in separate namespaces
        return (self.id, self.media_type)

    @classmethod
    def from_tmdb(cls, item: TMDBCombinedCredit) -> "Credit | None":
        """Normalize a combined-credits entry. Returns None for non movie/tv entries."""
        if item.media_type not in [t.value for t in CREDIT_MEDIA_TYPES]:
            return None
        return cls(
            id=item.id,
            media_type=MCType(item.media_type),
            title=item.title or item.name or UNTITLED,
            release_date=parse_date_maybe(item.release_date or item.first_air_date),
            role=item.character or item.job or None,
            poster_path=item.poster_path,
        )


class PersonProfile(BaseModelWithMethods):
    id: int
    name: str | None = None
    birth_date: date | None = None

    @classmethod
    def from_person_details(cls, details: TMDBPersonDetailsResult) -> "PersonProfile":
        return cls(
            id=details.id,
            name=details.name,
            birth_date=parse_date_maybe(details.birthday),
        )


class EpisodeMatch(BaseModelWithMethods):
    """The first episode found in which both people appear."""

    season_number: int
    episode_number: int
    air_date: date | None = None
    episode_name: str | None = None

    @classmethod
    def from_season_episode(
        cls, season_number: int, episode: TMDBSeasonEpisode
    ) -> "EpisodeMatch":
        return cls(
            season_number=season_number,
            episode_number=episode.episode_number,
            air_date=parse_date_maybe(episode.air_date),
            episode_name=episode.name or None,
        )

    @property
    def label(self) -> str:
        text = f"S{self.season_number}E{self.episode_number}"
        if self.episode_name:
            text += f" – {self.episode_name}"
        return text


class CandidatePair(BaseModelWithMethods):
    """A credit shared by both people, with both roles and ages at release."""

    id: int
    media_type: MCType
    title: str = UNTITLED
    release_date: date | None = None
    year: int | None = None
    poster_path: str | None = None
    person1_role: str | None = None
    person2_role: str | None = None
    person1_age: int | None = None
    person2_age: int | None = None
    episode: EpisodeMatch | None = None

    @property
    def key(self) -> CreditKey:
        return (self.id, self.media_type)

    @classmethod
    def from_credits(
        cls,
        credit1: Credit,
        credit2: Credit,
        profile1: PersonProfile,
        profile2: PersonProfile,
    ) -> "CandidatePair":
        """Merge the two people's records for the same credit, preferring person 1's."""
        release_date = credit1.release_date or credit2.release_date
        title = credit1.title if credit1.title != UNTITLED else credit2.title
        return cls(
            id=credit1.id,
            media_type=credit1.media_type or credit2.media_type,
            title=title,
            release_date=release_date,
            year=year_of(release_date),
            poster_path=credit1.poster_path or credit2.poster_path,
            person1_role=credit1.role,
            person2_role=credit2.role,
            person1_age=age_at_date(profile1.birth_date, release_date),
            person2_age=age_at_date(profile2.birth_date, release_date),
        )

    def confirm_episode(
        self, match: EpisodeMatch, profile1: PersonProfile, profile2: PersonProfile
    ) -> "CandidatePair":
        """Attach a TV episode match, moving the release date to the episode's air date."""
        if self.media_type != MCType.TV_SERIES:
            raise ValueError(f"Episode match attached to non-tv credit {self.id}")
        release_date = match.air_date or self.release_date
        return self.model_copy(
            update={
                "episode": match,
                "release_date": release_date,
                "year": year_of(release_date),
                "person1_age": age_at_date(profile1.birth_date, release_date),
                "person2_age": age_at_date(profile2.birth_date, release_date),
            }
        )


class PersonSummary(BaseModelWithMethods):
    id: int
    name: str
    birth_date: date | None = None


class CollaborationResult(BaseModelWithMethods):
    """Shared credits of two people plus summary statistics."""

    person1: PersonSummary
    person2: PersonSummary
    credits: list[CandidatePair]
    count: int = 0
    first_collaboration: date | None = None
    first_year: int | None = None
    most_recent: date | None = None
    since_last: str | None = None
