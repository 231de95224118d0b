"""
Unit tests for CollaborationService and CollaborationSearch.
"""

import asyncio
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest

from adapters.config import CollabConfig
from api.tmdb.models import CandidatePair, Credit, EpisodeMatch, PersonProfile, PersonSummary
from api.tmdb.tests.conftest import load_fixture
from contracts.models import MCType
from services.collaboration_service import (
    ERROR_MESSAGE,
    NOT_FOUND_MESSAGE,
    STATUS_CLEANING,
    STATUS_COMPARING,
    STATUS_GATHERING,
    STATUS_RESOLVING,
    STATUS_TV_EPISODES,
    CollaborationSearch,
    CollaborationService,
    build_result,
    dedupe_and_sort,
    intersect_credits,
)
from utils.cancellation import CancellationToken
from utils.dates import format_since
from utils.errors import NetworkError, NotFoundError, SearchCancelledError

pytestmark = pytest.mark.unit

HANKS_ID = 31
RYAN_ID = 5344
CRYSTAL_ID = 7904

PERSON_A = PersonProfile(id=1, name="A", birth_date=date(1970, 1, 1))
PERSON_B = PersonProfile(id=2, name="B", birth_date=None)


def person_router(extra: dict | None = None) -> AsyncMock:
    """_make_request double for the person endpoints of three real people."""
    searches = {
        "Tom Hanks": load_fixture("search_person_tom_hanks.json"),
        "Meg Ryan": {"results": [{"id": RYAN_ID, "name": "Meg Ryan"}]},
        "Billy Crystal": {"results": [{"id": CRYSTAL_ID, "name": "Billy Crystal"}]},
    }
    endpoints = {
        f"person/{HANKS_ID}/combined_credits": load_fixture("combined_credits_tom_hanks.json"),
        f"person/{RYAN_ID}/combined_credits": load_fixture("combined_credits_meg_ryan.json"),
        f"person/{CRYSTAL_ID}/combined_credits": {
            "id": CRYSTAL_ID,
            "cast": [
                {
                    "id": 11130,
                    "media_type": "movie",
                    "title": "When Harry Met Sally...",
                    "release_date": "1989-07-12",
                    "character": "Harry Burns",
                }
            ],
            "crew": [],
        },
        f"person/{HANKS_ID}": load_fixture("person_details_tom_hanks.json"),
        f"person/{RYAN_ID}": load_fixture("person_details_meg_ryan.json"),
        f"person/{CRYSTAL_ID}": {"id": CRYSTAL_ID, "name": "Billy Crystal", "birthday": "1948-03-14"},
    }
    endpoints.update(extra or {})

    async def _make_request(endpoint, params=None, token=None):
        if endpoint == "search/person":
            return searches.get(params["query"], {"results": []})
        if endpoint not in endpoints:
            raise NetworkError(404, endpoint)
        response = endpoints[endpoint]
        if isinstance(response, Exception):
            raise response
        return response

    return AsyncMock(side_effect=_make_request)


def make_service(**config_overrides) -> CollaborationService:
    return CollaborationService(CollabConfig(use_persistent_cache=False, **config_overrides))


def credit(id, media_type=MCType.MOVIE, release_date=None, role=None):
    return Credit(id=id, media_type=media_type, release_date=release_date, role=role)


def pair(id, release_date=None, media_type=MCType.MOVIE, title="Title"):
    return CandidatePair(id=id, media_type=media_type, release_date=release_date, title=title)


class TestIntersectCredits:
    def test_only_shared_credits(self):
        """Person A: 10 (movie), 20 (tv). Person B: 10 (movie), 30 (movie). Only 10 is shared."""
        credits_a = [
            credit(10, release_date=date(2010, 1, 1)),
            credit(20, MCType.TV_SERIES, release_date=date(2015, 1, 1)),
        ]
        credits_b = [
            credit(10, release_date=date(2010, 1, 1)),
            credit(30, release_date=date(2020, 1, 1)),
        ]

        pairs = intersect_credits(credits_a, credits_b, PERSON_A, PERSON_B)

        assert len(pairs) == 1
        assert pairs[0].id == 10
        assert pairs[0].media_type == MCType.MOVIE
        assert pairs[0].release_date == date(2010, 1, 1)
        assert pairs[0].person1_age == 40
        assert pairs[0].person2_age is None

    def test_movie_and_tv_ids_do_not_collide(self):
        credits_a = [credit(10, MCType.MOVIE)]
        credits_b = [credit(10, MCType.TV_SERIES)]

        assert intersect_credits(credits_a, credits_b, PERSON_A, PERSON_B) == []

    def test_roles_from_each_person(self):
        credits_a = [credit(10, role="Director")]
        credits_b = [credit(10, role="Lead")]

        (shared,) = intersect_credits(credits_a, credits_b, PERSON_A, PERSON_B)

        assert shared.person1_role == "Director"
        assert shared.person2_role == "Lead"


class TestDedupeAndSort:
    def test_no_duplicate_keys_last_seen_wins(self):
        pairs = [
            pair(1, date(2001, 1, 1), title="first"),
            pair(2, date(2002, 1, 1)),
            pair(1, date(2001, 1, 1), title="second"),
            pair(1, date(2001, 1, 1), media_type=MCType.TV_SERIES),
        ]

        result = dedupe_and_sort(pairs)

        keys = [p.key for p in result]
        assert len(keys) == len(set(keys)) == 3
        movie_1 = next(p for p in result if p.key == (1, MCType.MOVIE))
        assert movie_1.title == "second"

    def test_newest_first_undated_last(self):
        pairs = [
            pair(1, None),
            pair(2, date(1990, 3, 9)),
            pair(3, date(1998, 12, 18)),
            pair(4, None),
            pair(5, date(1993, 6, 24)),
        ]

        result = dedupe_and_sort(pairs)

        assert [p.id for p in result] == [3, 5, 2, 1, 4]
        dated = [p.release_date for p in result if p.release_date is not None]
        assert dated == sorted(dated, reverse=True)

    def test_equal_dates_keep_input_order(self):
        pairs = [pair(1, date(2000, 1, 1)), pair(2, date(2000, 1, 1))]
        assert [p.id for p in dedupe_and_sort(pairs)] == [1, 2]


class TestBuildResult:
    def test_summary_statistics(self):
        credits = [pair(3, date(1998, 12, 18)), pair(5, date(1993, 6, 24)), pair(1, None)]

        result = build_result(
            PersonSummary(id=1, name="A"),
            PersonSummary(id=2, name="B"),
            credits,
            today=date(2024, 1, 1),
        )

        assert result.count == 3
        assert result.first_collaboration == date(1993, 6, 24)
        assert result.first_year == 1993
        assert result.most_recent == date(1998, 12, 18)
        assert result.since_last == "25y 0m ago"

    def test_no_dated_credits(self):
        result = build_result(PersonSummary(id=1, name="A"), PersonSummary(id=2, name="B"), [pair(1)])

        assert result.count == 1
        assert result.first_collaboration is None
        assert result.first_year is None
        assert result.most_recent is None
        assert result.since_last is None

    def test_empty(self):
        result = build_result(PersonSummary(id=1, name="A"), PersonSummary(id=2, name="B"), [])

        assert result.count == 0
        assert result.credits == []


class TestFindCollaborations:
    @pytest.mark.asyncio
    async def test_movies_and_confirmed_episode(self):
        service = make_service()
        snl_match = EpisodeMatch(
            season_number=24, episode_number=10, air_date=date(1998, 12, 12), episode_name="Host"
        )
        mock_confirm = AsyncMock(return_value=snl_match)
        statuses = []

        with (
            patch.object(service.person_service, "_make_request", new=person_router()),
            patch.object(service.tv_service, "confirm", new=mock_confirm),
        ):
            result = await service.find_collaborations(
                "Tom Hanks", "Meg Ryan", on_status=statuses.append
            )

        assert statuses == [
            STATUS_RESOLVING,
            STATUS_GATHERING,
            STATUS_COMPARING,
            STATUS_TV_EPISODES,
            STATUS_CLEANING,
        ]
        # Series confirmation gets both person ids
        mock_confirm.assert_awaited_once()
        assert mock_confirm.await_args.args == (1667, HANKS_ID, RYAN_ID)

        assert [c.id for c in result.credits] == [9489, 1667, 858, 2565]
        snl = result.credits[1]
        assert snl.episode == snl_match
        assert snl.release_date == date(1998, 12, 12)
        assert snl.person1_age == 42
        assert snl.person2_age == 37

        mail = result.credits[0]
        assert mail.person1_role == "Joe Fox"
        assert mail.person2_role == "Kathleen Kelly"

        assert result.person1 == PersonSummary(id=HANKS_ID, name="Tom Hanks", birth_date=date(1956, 7, 9))
        assert result.person2.id == RYAN_ID
        assert result.count == 4
        assert result.first_collaboration == date(1990, 3, 9)
        assert result.first_year == 1990
        assert result.most_recent == date(1998, 12, 18)
        assert result.since_last == format_since(date(1998, 12, 18))

    @pytest.mark.asyncio
    async def test_unconfirmed_series_dropped(self):
        service = make_service()

        with (
            patch.object(service.person_service, "_make_request", new=person_router()),
            patch.object(service.tv_service, "confirm", new=AsyncMock(return_value=None)),
        ):
            result = await service.find_collaborations("Tom Hanks", "Meg Ryan")

        assert [c.id for c in result.credits] == [9489, 858, 2565]
        assert all(c.media_type == MCType.MOVIE for c in result.credits)

    @pytest.mark.asyncio
    async def test_no_shared_credits(self):
        service = make_service()

        with (
            patch.object(service.person_service, "_make_request", new=person_router()),
            patch.object(service.tv_service, "confirm", new=AsyncMock()) as mock_confirm,
        ):
            result = await service.find_collaborations("Tom Hanks", "Billy Crystal")

        assert result.count == 0
        assert result.since_last is None
        mock_confirm.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_name_raises_not_found(self):
        service = make_service()

        with patch.object(service.person_service, "_make_request", new=person_router()):
            with pytest.raises(NotFoundError) as exc_info:
                await service.find_collaborations("Tom Hanks", "Nobody Atall")

        assert exc_info.value.names == ["Nobody Atall"]

    @pytest.mark.asyncio
    async def test_network_error_discards_partial_results(self):
        service = make_service()
        router = person_router({f"person/{RYAN_ID}": NetworkError(500, f"person/{RYAN_ID}")})

        with patch.object(service.person_service, "_make_request", new=router):
            with pytest.raises(NetworkError):
                await service.find_collaborations("Tom Hanks", "Meg Ryan")

    @pytest.mark.asyncio
    async def test_tv_failure_propagates(self):
        service = make_service()

        with (
            patch.object(service.person_service, "_make_request", new=person_router()),
            patch.object(
                service.tv_service, "confirm", new=AsyncMock(side_effect=NetworkError(500, "tv/1667"))
            ),
        ):
            with pytest.raises(NetworkError):
                await service.find_collaborations("Tom Hanks", "Meg Ryan")

    @pytest.mark.asyncio
    async def test_crew_credits_when_enabled(self):
        service = make_service(include_crew=True)
        extra = {
            f"person/{RYAN_ID}/combined_credits": {
                "id": RYAN_ID,
                "cast": [],
                "crew": [
                    {
                        "id": 9591,
                        "media_type": "movie",
                        "title": "That Thing You Do!",
                        "release_date": "1996-10-04",
                        "job": "Producer",
                    }
                ],
            }
        }

        with patch.object(service.person_service, "_make_request", new=person_router(extra)):
            result = await service.find_collaborations("Tom Hanks", "Meg Ryan")

        assert [c.id for c in result.credits] == [9591]
        assert result.credits[0].person1_role == "Director"
        assert result.credits[0].person2_role == "Producer"

    @pytest.mark.asyncio
    async def test_cancelled_token_declines_to_start(self):
        service = make_service()
        router = person_router()
        token = CancellationToken()
        token.cancel()

        with patch.object(service.person_service, "_make_request", new=router):
            with pytest.raises(SearchCancelledError):
                await service.find_collaborations("Tom Hanks", "Meg Ryan", token=token)

        router.assert_not_awaited()


class TestCollaborationSearch:
    @pytest.mark.asyncio
    async def test_ok_outcome(self):
        service = make_service()
        statuses = []
        search = CollaborationSearch(service, on_status=statuses.append)

        with (
            patch.object(service.person_service, "_make_request", new=person_router()),
            patch.object(service.tv_service, "confirm", new=AsyncMock(return_value=None)),
        ):
            outcome = await search.search("  Tom Hanks ", "Meg Ryan")

        assert outcome.status == "ok"
        assert outcome.result.count == 3
        assert outcome.result.person1.name == "Tom Hanks"
        assert statuses[0] == STATUS_RESOLVING

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name1,name2", [("", "Meg Ryan"), ("Tom Hanks", "   "), (None, "x")])
    async def test_blank_names_rejected(self, name1, name2):
        search = CollaborationSearch(make_service())

        with pytest.raises(ValueError):
            await search.search(name1, name2)

        assert search.current_token is None

    @pytest.mark.asyncio
    async def test_not_found_outcome(self):
        service = make_service()
        search = CollaborationSearch(service)

        with patch.object(service.person_service, "_make_request", new=person_router()):
            outcome = await search.search("Tom Hanks", "Nobody Atall")

        assert outcome.status == "not_found"
        assert outcome.message == NOT_FOUND_MESSAGE
        assert outcome.result is None

    @pytest.mark.asyncio
    async def test_network_error_outcome(self):
        service = make_service()
        search = CollaborationSearch(service)
        router = person_router({f"person/{HANKS_ID}": NetworkError(503, f"person/{HANKS_ID}")})

        with patch.object(service.person_service, "_make_request", new=router):
            outcome = await search.search("Tom Hanks", "Meg Ryan")

        assert outcome.status == "error"
        assert outcome.message == ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_unexpected_error_outcome(self):
        service = make_service()
        search = CollaborationSearch(service)

        with patch.object(service, "find_collaborations", new=AsyncMock(side_effect=KeyError("x"))):
            outcome = await search.search("Tom Hanks", "Meg Ryan")

        assert outcome.status == "error"

    @pytest.mark.asyncio
    async def test_new_search_supersedes_episode_scan_in_flight(self):
        """The earlier search's eventual result never reaches the caller."""
        service = make_service()
        search = CollaborationSearch(service)
        scan_started = asyncio.Event()
        release_scan = asyncio.Event()

        async def slow_confirm(tv_id, person1_id, person2_id, token=None):
            scan_started.set()
            await release_scan.wait()
            return EpisodeMatch(season_number=1, episode_number=1)

        with (
            patch.object(service.person_service, "_make_request", new=person_router()),
            patch.object(service.tv_service, "confirm", new=AsyncMock(side_effect=slow_confirm)),
        ):
            first = asyncio.create_task(search.search("Tom Hanks", "Meg Ryan"))
            await scan_started.wait()
            first_token = search.current_token

            second = await search.search("Billy Crystal", "Meg Ryan")
            assert first_token.cancelled

            release_scan.set()
            assert await first is None

        assert second.status == "ok"
        assert [c.id for c in second.result.credits] == [11130]

    @pytest.mark.asyncio
    async def test_superseded_error_is_swallowed(self):
        service = make_service()
        search = CollaborationSearch(service)
        started = asyncio.Event()
        release = asyncio.Event()

        async def failing_find(name1, name2, token=None, on_status=None):
            started.set()
            await release.wait()
            raise NetworkError(500, "person/31")

        with patch.object(service, "find_collaborations", new=AsyncMock(side_effect=failing_find)):
            first = asyncio.create_task(search.search("Tom Hanks", "Meg Ryan"))
            await started.wait()
            search.start_new_search()
            release.set()

            assert await first is None

    @pytest.mark.asyncio
    async def test_cancellation_is_swallowed(self):
        service = make_service()
        search = CollaborationSearch(service)

        async def guarded_find(name1, name2, token=None, on_status=None):
            await token.guard(asyncio.Event().wait())

        with patch.object(service, "find_collaborations", new=AsyncMock(side_effect=guarded_find)):
            first = asyncio.create_task(search.search("Tom Hanks", "Meg Ryan"))
            await asyncio.sleep(0)
            search.start_new_search()

            assert await first is None
