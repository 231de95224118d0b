"""
Entry point for looking up collaborations between two people.

Usage:
    collab-finder "Tom Hanks" "Meg Ryan"
    collab-finder "Bryan Cranston" "Aaron Paul" --max-seasons 10 --season-order asc
    collab-finder "Tom Hanks" "Meg Ryan" --include-crew --json

Configuration is read from the environment (see adapters/config.py); flags
override the corresponding values.

Exit codes: 0 on success (including no collaborations), 1 when a name could
not be found, 2 on any other error.
"""

import argparse
import asyncio
import dataclasses
import logging
import sys

from adapters.config import SEASON_ORDERS, CollabConfig, load_env
from api.tmdb.models import CandidatePair, CollaborationResult
from contracts.models import media_label
from services.collaboration_service import (
    CollaborationSearch,
    CollaborationService,
    SearchOutcome,
)
from utils.get_logger import configure_from_env, get_logger, set_level
from utils.request_cache import PersistentStore
from utils.request_client import RequestClient

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Find the movies and TV episodes two people have worked on together"
    )
    parser.add_argument("name1", help="First person's name")
    parser.add_argument("name2", help="Second person's name")
    parser.add_argument(
        "--include-crew",
        action="store_true",
        default=None,
        help="Also match crew credits (directing, writing, ...)",
    )
    parser.add_argument(
        "--include-adult",
        action="store_true",
        default=None,
        help="Include adult results in the name search",
    )
    parser.add_argument(
        "--include-specials",
        action="store_true",
        default=None,
        help="Scan season 0 (specials) when confirming TV episodes",
    )
    parser.add_argument(
        "--max-seasons",
        type=int,
        help="Maximum number of seasons scanned per series",
    )
    parser.add_argument(
        "--season-order",
        choices=SEASON_ORDERS,
        help="Scan seasons newest first (desc) or oldest first (asc)",
    )
    parser.add_argument(
        "--season-concurrency",
        type=int,
        help="Seasons scanned at once",
    )
    parser.add_argument(
        "--episode-concurrency",
        type=int,
        help="Episodes scanned at once within a season",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="as_json",
        help="Print the result as JSON",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def config_from_args(args: argparse.Namespace, base: CollabConfig | None = None) -> CollabConfig:
    """Apply command line overrides on top of the environment config."""
    config = base or CollabConfig.from_env()
    overrides = {
        "include_crew": args.include_crew,
        "include_adult": args.include_adult,
        "include_specials": args.include_specials,
        "max_seasons": args.max_seasons,
        "season_order": args.season_order,
        "season_concurrency": args.season_concurrency,
        "episode_concurrency": args.episode_concurrency,
    }
    return dataclasses.replace(config, **{k: v for k, v in overrides.items() if v is not None})


def format_credit(credit: CandidatePair, result: CollaborationResult) -> str:
    parts = [media_label(credit.media_type)]
    if credit.person1_role or credit.person2_role:
        parts.append(f"roles: {credit.person1_role or '—'} & {credit.person2_role or '—'}")

    ages = []
    if credit.person1_age is not None:
        ages.append(f"{result.person1.name}: {credit.person1_age}")
    if credit.person2_age is not None:
        ages.append(f"{result.person2.name}: {credit.person2_age}")
    if ages:
        parts.append(f"ages at release: {' · '.join(ages)}")

    if credit.episode is not None:
        parts.append(f"episode: {credit.episode.label}")

    year = credit.year if credit.year is not None else "—"
    return f"   - {credit.title} ({year}) • {' • '.join(parts)}"


def format_result(result: CollaborationResult) -> str:
    names = f"{result.person1.name} and {result.person2.name}"
    if not result.count:
        return f"No. {names} have not appeared together."

    plural = "s" if result.count > 1 else ""
    summary = f"Yes. {names} have worked together {result.count} time{plural}."
    if result.first_year is not None:
        summary += f" First: {result.first_year}."
    if result.since_last is not None:
        summary += f" Most recent: {result.since_last}."

    lines = [summary]
    lines.extend(format_credit(credit, result) for credit in result.credits)
    return "\n".join(lines)


def report_outcome(outcome: SearchOutcome | None, as_json: bool = False) -> int:
    """Print an outcome and return the process exit code."""
    if outcome is None:
        print("Search was cancelled", file=sys.stderr)
        return EXIT_ERROR

    if outcome.status == "not_found":
        print(outcome.message, file=sys.stderr)
        return EXIT_NOT_FOUND
    if outcome.status == "error" or outcome.result is None:
        print(outcome.message, file=sys.stderr)
        return EXIT_ERROR

    if as_json:
        print(outcome.result.to_json(indent=2))
    else:
        print(format_result(outcome.result))
    return EXIT_OK


async def run_search(config: CollabConfig, name1: str, name2: str, verbose: bool = False) -> SearchOutcome | None:
    if config.use_persistent_cache:
        RequestClient.configure_persistent_store(PersistentStore())

    def on_status(message: str) -> None:
        if verbose:
            logger.info(message)

    search = CollaborationSearch(CollaborationService(config), on_status=on_status)
    return await search.search(name1, name2)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Loggers are created at import time, before the env file is read
    load_env()
    try:
        configure_from_env()
    except ValueError as e:
        parser.error(str(e))
    if args.verbose:
        set_level(logging.DEBUG)

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    if not args.name1.strip() or not args.name2.strip():
        parser.error("Please enter both names.")

    outcome = asyncio.run(run_search(config, args.name1, args.name2, verbose=args.verbose))
    return report_outcome(outcome, as_json=args.as_json)


if __name__ == "__main__":
    sys.exit(main())
