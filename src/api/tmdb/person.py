"""
TMDB Person Service - Filmography lookups for the collaboration finder.
Resolves names to TMDB person ids and fetches combined credits and profiles.
"""

from api.tmdb.core import TMDBService
from api.tmdb.models import Credit, PersonProfile
from api.tmdb.tmdb_models import (
    TMDBCombinedCreditsResponse,
    TMDBPersonDetailsResult,
    TMDBSearchPersonResult,
)
from utils.cancellation import CancellationToken
from utils.get_logger import get_logger

logger = get_logger(__name__)


class TMDBPersonService(TMDBService):
    """
    TMDB Person Service - Handles person search, credits and details.
    Extends TMDBService with person-specific functionality.
    """

    async def resolve_person_id(
        self, name: str, token: CancellationToken | None = None
    ) -> int | None:
        """Resolve a display name to a TMDB person id.

        The first search result is authoritative; ambiguous names are not
        disambiguated.

        Args:
            name: Person name as typed by the user
            token: Cancellation token of the calling search

        Returns:
            TMDB person id, or None when the search has no results
        """
        params = {"query": name, "include_adult": self.config.include_adult}
        data = await self._make_request("search/person", params, token=token)
        result = TMDBSearchPersonResult.model_validate(data)
        if not result.results:
            logger.info(f"No TMDB person found for '{name}'")
            return None

        person = result.results[0]
        logger.debug(f"Resolved '{name}' to person {person.id} ({person.name})")
        return person.id

    async def fetch_combined_credits(
        self, person_id: int, token: CancellationToken | None = None
    ) -> list[Credit]:
        """Fetch a person's movie and TV credits.

        Cast credits only, unless the config enables crew credits, in which case
        crew entries are appended after the cast.
        """
        data = await self._make_request(f"person/{person_id}/combined_credits", token=token)
        response = TMDBCombinedCreditsResponse.model_validate(data)

        raw_credits = list(response.cast)
        if self.config.include_crew:
            raw_credits.extend(response.crew)

        credits = []
        for item in raw_credits:
            credit = Credit.from_tmdb(item)
            if credit is not None:
                credits.append(credit)

        logger.debug(f"Person {person_id}: {len(credits)} credits")
        return credits

    async def fetch_profile(
        self, person_id: int, token: CancellationToken | None = None
    ) -> PersonProfile:
        data = await self._make_request(f"person/{person_id}", token=token)
        details = TMDBPersonDetailsResult.model_validate(data)
        return PersonProfile.from_person_details(details)
