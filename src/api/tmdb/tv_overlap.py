"""
TMDB TV Overlap Service - same-episode confirmation for shared TV credits.

Two people sharing a series id only proves they were in the same show. This
service narrows that down to one episode both appear in:

1. List the series' seasons (no specials by default, most recent first, capped).
2. Pre-filter seasons with the season aggregate credits. A season whose
   aggregate credits cannot be fetched stays a candidate.
3. Scan candidate seasons episode by episode until an episode's credits
   (cast, guest stars, crew) contain both people.

Seasons and episodes are scanned concurrently. All workers of one confirm()
call share a MatchCell; they check it before starting a new fetch and stop
claiming work once it holds a match. Fetches already in flight finish normally,
so the early exit saves most but not all of the remaining calls.

When several seasons produce a match, the match recorded first (by completion
order, not season order) is returned. That choice is race-dependent.
"""

from pydantic import ValidationError

from api.tmdb.core import TMDBService
from api.tmdb.models import EpisodeMatch
from api.tmdb.tmdb_models import TMDBSeasonEpisode
from utils.cancellation import CancellationToken, ensure_token
from utils.concurrency import MatchCell, map_limit
from utils.errors import NetworkError
from utils.get_logger import get_logger

logger = get_logger(__name__)


class TMDBTvOverlapService(TMDBService):
    """
    TMDB TV Overlap Service - confirms that two people share an episode.
    Extends TMDBService with season and episode scanning.
    """

    async def list_season_numbers(
        self, tv_id: int, token: CancellationToken | None = None
    ) -> list[int]:
        """Season numbers to scan, in scan order, after filtering and capping."""
        details = await self.get_tv_details(tv_id, token=token)

        season_numbers = [
            s.season_number for s in details.seasons if s.season_number is not None
        ]
        if not self.config.include_specials:
            season_numbers = [n for n in season_numbers if n > 0]

        season_numbers.sort(reverse=self.config.season_order == "desc")
        return season_numbers[: self.config.max_seasons]

    async def season_contains_both(
        self,
        tv_id: int,
        season_number: int,
        person1_id: int,
        person2_id: int,
        token: CancellationToken | None = None,
    ) -> bool:
        """Whether both people appear anywhere in the season's aggregate credits.

        Fails open: if the aggregate credits are unavailable the season is kept
        as a candidate, since skipping it could hide a real shared episode.
        """
        try:
            aggregate = await self.get_season_aggregate_credits(tv_id, season_number, token=token)
        except (NetworkError, ValidationError) as e:
            logger.info(
                f"Aggregate credits unavailable for tv {tv_id} season {season_number} "
                f"({e}); falling back to episode scan"
            )
            return True

        ids = aggregate.person_ids()
        return person1_id in ids and person2_id in ids

    async def find_shared_episode_in_season(
        self,
        tv_id: int,
        season_number: int,
        person1_id: int,
        person2_id: int,
        match_cell: MatchCell[EpisodeMatch] | None = None,
        token: CancellationToken | None = None,
    ) -> EpisodeMatch | None:
        """Scan a season's episodes for one whose credits contain both people.

        Args:
            match_cell: Shared cell; workers stop starting new fetches once it is set
            token: Cancellation token of the calling search

        Returns:
            The first matching episode in episode order among those scanned, or None
        """
        token = ensure_token(token)
        if match_cell is None:
            match_cell = MatchCell()

        season = await self.get_season_details(tv_id, season_number, token=token)

        async def scan_episode(episode: TMDBSeasonEpisode) -> EpisodeMatch | None:
            if match_cell.is_set:
                return None
            token.raise_if_cancelled()

            credits = await self.get_episode_credits(
                tv_id, season_number, episode.episode_number, token=token
            )
            ids = credits.person_ids()
            if person1_id not in ids or person2_id not in ids:
                return None

            match = EpisodeMatch.from_season_episode(season_number, episode)
            if match_cell.offer(match):
                logger.info(f"Shared episode found for tv {tv_id}: {match.label}")
            return match

        results = await map_limit(season.episodes, self.config.episode_concurrency, scan_episode)
        return next((m for m in results if m is not None), None)

    async def confirm(
        self,
        tv_id: int,
        person1_id: int,
        person2_id: int,
        token: CancellationToken | None = None,
    ) -> EpisodeMatch | None:
        """Find an episode of series ``tv_id`` in which both people appear.

        Returns:
            The first match recorded by any season worker, or None when no
            scanned season contains a shared episode
        """
        token = ensure_token(token)
        token.raise_if_cancelled()

        season_numbers = await self.list_season_numbers(tv_id, token=token)
        match_cell: MatchCell[EpisodeMatch] = MatchCell()
        logger.debug(f"Confirming tv {tv_id} overlap across seasons {season_numbers}")

        async def scan_season(season_number: int) -> None:
            if match_cell.is_set:
                return
            token.raise_if_cancelled()

            if not await self.season_contains_both(
                tv_id, season_number, person1_id, person2_id, token=token
            ):
                return
            if match_cell.is_set:
                return

            await self.find_shared_episode_in_season(
                tv_id, season_number, person1_id, person2_id, match_cell=match_cell, token=token
            )

        await map_limit(season_numbers, self.config.season_concurrency, scan_season)

        if match_cell.value is None:
            logger.debug(f"No shared episode for tv {tv_id}")
        return match_cell.value
