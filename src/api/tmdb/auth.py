"""
TMDB Auth Service - Base service with authentication utilities.
"""

import os

from utils.get_logger import get_logger

logger = get_logger(__name__)


class Auth:
    """
    Base TMDB service with authentication utilities.

    A bearer token is optional: when the base URL points at a proxy that injects
    credentials itself, requests are sent without an Authorization header.
    """

    base_url: str = "https://api.themoviedb.org/3"

    def __init__(self, base_url: str | None = None, read_token: str | None = None):
        if base_url:
            self.base_url = base_url.rstrip("/")
        self._tmdb_read_token = read_token

    @property
    def tmdb_read_token(self) -> str | None:
        """Lazy-load the TMDB read token from the environment."""
        if self._tmdb_read_token is None:
            self._tmdb_read_token = os.getenv("TMDB_READ_TOKEN") or None
            if self._tmdb_read_token is None:
                logger.debug("TMDB_READ_TOKEN not set; sending unauthenticated requests")
        return self._tmdb_read_token

    def auth_headers(self) -> dict[str, str]:
        """Return the headers for TMDB API requests."""
        headers = {"Accept": "application/json"}
        if self.tmdb_read_token:
            headers["Authorization"] = f"Bearer {self.tmdb_read_token}"
        return headers
