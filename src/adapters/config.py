import os
from dataclasses import dataclass

from dotenv import load_dotenv

SEASON_ORDERS = ("desc", "asc")


def load_env():
    """Load environment variables from env file.

    Defaults to config/local.env for local development.
    Set ENV_FILE environment variable to override.
    """
    env = os.getenv("ENV_FILE", "config/local.env")
    load_dotenv(env)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Invalid boolean for {name}: {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Invalid integer for {name}: {raw!r}")


@dataclass
class CollabConfig:
    """Configuration for collaboration lookups."""

    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_read_token: str | None = None
    include_crew: bool = False
    include_adult: bool = False
    # TV overlap scanning (speed/accuracy trade-off)
    include_specials: bool = False
    max_seasons: int = 50
    season_order: str = "desc"
    season_concurrency: int = 4
    episode_concurrency: int = 6
    tv_candidate_concurrency: int = 1
    # Request layer
    request_timeout: int = 20
    rate_limit_max: int = 35
    use_persistent_cache: bool = True

    def __post_init__(self):
        if self.season_order not in SEASON_ORDERS:
            raise ValueError(f"season_order must be one of {SEASON_ORDERS}, got {self.season_order!r}")
        for name in (
            "max_seasons",
            "season_concurrency",
            "episode_concurrency",
            "tv_candidate_concurrency",
            "request_timeout",
            "rate_limit_max",
        ):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")

    @classmethod
    def from_env(cls) -> "CollabConfig":
        """Create config from environment variables."""
        load_env()
        return cls(
            tmdb_base_url=os.getenv("TMDB_BASE_URL", "https://api.themoviedb.org/3").rstrip("/"),
            tmdb_read_token=os.getenv("TMDB_READ_TOKEN") or None,
            include_crew=_env_bool("INCLUDE_CREW", False),
            include_adult=_env_bool("INCLUDE_ADULT", False),
            include_specials=_env_bool("TV_INCLUDE_SPECIALS", False),
            max_seasons=_env_int("TV_MAX_SEASONS", 50),
            season_order=os.getenv("TV_SEASON_ORDER", "desc").strip().lower(),
            season_concurrency=_env_int("TV_SEASON_CONCURRENCY", 4),
            episode_concurrency=_env_int("TV_EPISODE_CONCURRENCY", 6),
            tv_candidate_concurrency=_env_int("TV_CANDIDATE_CONCURRENCY", 1),
            request_timeout=_env_int("REQUEST_TIMEOUT", 20),
            rate_limit_max=_env_int("TMDB_RATE_LIMIT", 35),
            use_persistent_cache=_env_bool("USE_PERSISTENT_CACHE", True),
        )
