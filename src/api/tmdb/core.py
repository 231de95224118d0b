"""
TMDB Core Service - Base service for TMDB API operations.
Brokers every TMDB call through the shared RequestClient and exposes the series,
season and episode endpoints used for TV overlap confirmation.
"""

from __future__ import annotations

from typing import Any

from adapters.config import CollabConfig
from api.tmdb.auth import Auth
from api.tmdb.tmdb_models import (
    TMDBAggregateCreditsResponse,
    TMDBEpisodeCreditsResponse,
    TMDBSeasonDetailsResult,
    TMDBTvDetailsResult,
)
from utils.cancellation import CancellationToken
from utils.get_logger import get_logger
from utils.request_client import RequestClient

logger = get_logger(__name__)


class TMDBService(Auth, RequestClient):
    """
    Core TMDB service for API communication.
    Subclasses add person lookups and TV overlap confirmation.
    """

    _rate_limit_period = 1.0

    def __init__(self, config: CollabConfig | None = None):
        self.config = config or CollabConfig()
        Auth.__init__(self, base_url=self.config.tmdb_base_url, read_token=self.config.tmdb_read_token)
        RequestClient.__init__(
            self,
            headers=self.auth_headers(),
            timeout=self.config.request_timeout,
            rate_limit_max=self.config.rate_limit_max,
            rate_limit_period=self._rate_limit_period,
        )

    async def _make_request(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        token: CancellationToken | None = None,
    ) -> Any:
        """Make a cached, deduplicated request to a TMDB endpoint.

        Args:
            endpoint: API endpoint (e.g. 'tv/1399/season/1')
            params: Optional query parameters
            token: Cancellation token of the calling search

        Returns:
            Parsed JSON payload

        Raises:
            NetworkError: If the request fails
            SearchCancelledError: If the token is signalled
        """
        url = f"{self.base_url}/{endpoint}"
        return await self.fetch_json(
            url,
            params=params,
            token=token,
            use_persistent=self.config.use_persistent_cache,
        )

    async def get_tv_details(
        self, tv_id: int, token: CancellationToken | None = None
    ) -> TMDBTvDetailsResult:
        data = await self._make_request(f"tv/{tv_id}", token=token)
        return TMDBTvDetailsResult.model_validate(data)

    async def get_season_aggregate_credits(
        self, tv_id: int, season_number: int, token: CancellationToken | None = None
    ) -> TMDBAggregateCreditsResponse:
        data = await self._make_request(
            f"tv/{tv_id}/season/{season_number}/aggregate_credits", token=token
        )
        return TMDBAggregateCreditsResponse.model_validate(data)

    async def get_season_details(
        self, tv_id: int, season_number: int, token: CancellationToken | None = None
    ) -> TMDBSeasonDetailsResult:
        data = await self._make_request(f"tv/{tv_id}/season/{season_number}", token=token)
        return TMDBSeasonDetailsResult.model_validate(data)

    async def get_episode_credits(
        self,
        tv_id: int,
        season_number: int,
        episode_number: int,
        token: CancellationToken | None = None,
    ) -> TMDBEpisodeCreditsResponse:
        data = await self._make_request(
            f"tv/{tv_id}/season/{season_number}/episode/{episode_number}/credits", token=token
        )
        return TMDBEpisodeCreditsResponse.model_validate(data)
