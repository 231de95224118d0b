"""
Collaboration Service - finds the movies and TV episodes two people share.

This module handles the full lookup:
1. Resolve: turn both names into TMDB person ids
2. Gather: fetch both credit lists and both profiles
3. Compare: intersect the credit lists into candidate pairs
4. Confirm: keep a TV series only if both people share an episode of it
5. Clean: merge, dedupe and sort, then compute summary statistics

CollaborationSearch sits on top of CollaborationService and models the
interactive caller: starting a new search cancels the previous one, and a
superseded search never reports its result or error.
"""

import asyncio
from collections.abc import Callable
from datetime import date
from typing import Literal

from adapters.config import CollabConfig
from api.tmdb.models import (
    CandidatePair,
    CollaborationResult,
    Credit,
    CreditKey,
    PersonProfile,
    PersonSummary,
)
from api.tmdb.person import TMDBPersonService
from api.tmdb.tv_overlap import TMDBTvOverlapService
from contracts.models import MCType
from utils.cancellation import CancellationToken, ensure_token
from utils.concurrency import map_limit
from utils.dates import format_since, year_of
from utils.errors import NetworkError, NotFoundError, SearchCancelledError
from utils.get_logger import get_logger
from utils.pydantic_tools import BaseModelWithMethods

logger = get_logger(__name__)

StatusCallback = Callable[[str], None]

STATUS_RESOLVING = "Searching... resolving names..."
STATUS_GATHERING = "Searching... gathering credit lists..."
STATUS_COMPARING = "Searching... comparing appearances..."
STATUS_TV_EPISODES = "Searching... comparing tv episodes..."
STATUS_CLEANING = "Searching... cleaning results..."

MISSING_NAMES_MESSAGE = "Please enter both names."
NOT_FOUND_MESSAGE = "Could not find one or both people. Please check the spelling."
ERROR_MESSAGE = "An error occurred. Please try again later."


def intersect_credits(
    credits1: list[Credit],
    credits2: list[Credit],
    profile1: PersonProfile,
    profile2: PersonProfile,
) -> list[CandidatePair]:
    """Pair up the credits both people have, in the second person's order."""
    by_key = {credit.key: credit for credit in credits1}
    pairs = []
    for credit2 in credits2:
        credit1 = by_key.get(credit2.key)
        if credit1 is None:
            continue
        pairs.append(CandidatePair.from_credits(credit1, credit2, profile1, profile2))
    return pairs


def dedupe_and_sort(pairs: list[CandidatePair]) -> list[CandidatePair]:
    """Drop duplicate credits (last one wins) and sort newest first, undated last."""
    unique: dict[CreditKey, CandidatePair] = {}
    for pair in pairs:
        unique[pair.key] = pair

    # sorted() is stable, so ties keep insertion order
    dated = [p for p in unique.values() if p.release_date is not None]
    undated = [p for p in unique.values() if p.release_date is None]
    dated = sorted(dated, key=lambda p: p.release_date, reverse=True)
    return dated + undated


def build_result(
    person1: PersonSummary,
    person2: PersonSummary,
    credits: list[CandidatePair],
    today: date | None = None,
) -> CollaborationResult:
    release_dates = [c.release_date for c in credits if c.release_date is not None]
    first_collaboration = min(release_dates) if release_dates else None
    most_recent = max(release_dates) if release_dates else None

    return CollaborationResult(
        person1=person1,
        person2=person2,
        credits=credits,
        count=len(credits),
        first_collaboration=first_collaboration,
        first_year=year_of(first_collaboration),
        most_recent=most_recent,
        since_last=format_since(most_recent, today=today) if most_recent else None,
    )


class CollaborationService:
    """Runs one collaboration lookup between two people."""

    def __init__(
        self,
        config: CollabConfig | None = None,
        person_service: TMDBPersonService | None = None,
        tv_service: TMDBTvOverlapService | None = None,
    ):
        self.config = config or CollabConfig()
        self.person_service = person_service or TMDBPersonService(self.config)
        self.tv_service = tv_service or TMDBTvOverlapService(self.config)

    async def find_collaborations(
        self,
        name1: str,
        name2: str,
        token: CancellationToken | None = None,
        on_status: StatusCallback | None = None,
    ) -> CollaborationResult:
        """Find every movie and TV episode in which both people appear.

        Args:
            name1: First person's name
            name2: Second person's name
            token: Cancellation token; signalling it abandons the lookup
            on_status: Optional progress callback receiving stage messages

        Returns:
            CollaborationResult with credits sorted newest first

        Raises:
            NotFoundError: If either name resolves to no person
            NetworkError: If a required request fails
            SearchCancelledError: If the token is signalled
        """
        token = ensure_token(token)
        token.raise_if_cancelled()

        def report(message: str) -> None:
            if on_status is not None:
                on_status(message)

        report(STATUS_RESOLVING)
        person1_id, person2_id = await asyncio.gather(
            self.person_service.resolve_person_id(name1, token=token),
            self.person_service.resolve_person_id(name2, token=token),
        )
        missing = [name for name, pid in ((name1, person1_id), (name2, person2_id)) if pid is None]
        if missing:
            raise NotFoundError(missing)

        report(STATUS_GATHERING)
        credits1, credits2, profile1, profile2 = await asyncio.gather(
            self.person_service.fetch_combined_credits(person1_id, token=token),
            self.person_service.fetch_combined_credits(person2_id, token=token),
            self.person_service.fetch_profile(person1_id, token=token),
            self.person_service.fetch_profile(person2_id, token=token),
        )

        report(STATUS_COMPARING)
        candidates = intersect_credits(credits1, credits2, profile1, profile2)
        movies = [c for c in candidates if c.media_type != MCType.TV_SERIES]
        tv_candidates = [c for c in candidates if c.media_type == MCType.TV_SERIES]
        logger.info(
            f"{name1} / {name2}: {len(movies)} shared movies, "
            f"{len(tv_candidates)} shared series to confirm"
        )

        report(STATUS_TV_EPISODES)

        async def confirm_tv(candidate: CandidatePair) -> CandidatePair | None:
            match = await self.tv_service.confirm(candidate.id, person1_id, person2_id, token=token)
            if match is None:
                return None
            return candidate.confirm_episode(match, profile1, profile2)

        confirmed = await map_limit(
            tv_candidates, self.config.tv_candidate_concurrency, confirm_tv
        )
        tv_confirmed = [c for c in confirmed if c is not None]

        report(STATUS_CLEANING)
        credits = dedupe_and_sort(movies + tv_confirmed)

        return build_result(
            PersonSummary(id=person1_id, name=name1, birth_date=profile1.birth_date),
            PersonSummary(id=person2_id, name=name2, birth_date=profile2.birth_date),
            credits,
        )


class SearchOutcome(BaseModelWithMethods):
    """What a finished search reports to its caller."""

    status: Literal["ok", "not_found", "error"]
    result: CollaborationResult | None = None
    message: str | None = None


class CollaborationSearch:
    """
    Coordinates user-initiated searches.

    Only the most recent search is current. Starting a search signals the
    previous search's token; the superseded search returns None instead of a
    result or an error.
    """

    def __init__(
        self,
        service: CollaborationService | None = None,
        on_status: StatusCallback | None = None,
    ):
        self.service = service or CollaborationService()
        self.on_status = on_status
        self.current_token: CancellationToken | None = None

    def start_new_search(self) -> CancellationToken:
        """Signal the current search (if any) and return a fresh token."""
        if self.current_token is not None:
            self.current_token.cancel()
        self.current_token = CancellationToken()
        return self.current_token

    async def search(self, name1: str, name2: str) -> SearchOutcome | None:
        """Run a search for two names.

        Raises:
            ValueError: If either name is empty after trimming
        """
        name1 = (name1 or "").strip()
        name2 = (name2 or "").strip()
        if not name1 or not name2:
            raise ValueError(MISSING_NAMES_MESSAGE)

        token = self.start_new_search()

        def report(message: str) -> None:
            if self.on_status is not None and not token.cancelled:
                self.on_status(message)

        try:
            result = await self.service.find_collaborations(
                name1, name2, token=token, on_status=report
            )
        except SearchCancelledError:
            logger.debug(f"Search for {name1} / {name2} was superseded")
            return None
        except NotFoundError as e:
            if token.cancelled:
                return None
            logger.info(str(e))
            return SearchOutcome(status="not_found", message=NOT_FOUND_MESSAGE)
        except NetworkError as e:
            if token.cancelled:
                return None
            logger.error(f"Search for {name1} / {name2} failed: {e}")
            return SearchOutcome(status="error", message=ERROR_MESSAGE)
        except Exception as e:
            if token.cancelled:
                return None
            logger.error(f"Unexpected error searching {name1} / {name2}: {e}", exc_info=True)
            return SearchOutcome(status="error", message=ERROR_MESSAGE)

        if token.cancelled:
            return None
        return SearchOutcome(status="ok", result=result)
