"""
Tests for the resolution session manager: queueing, staggering,
stamp-and-check invalidation and failure handling.
"""
import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from game_identifier.catalog import CatalogDetailProvider, CatalogStore, DetailProvider
from game_identifier.exceptions import DetailFetchError
from game_identifier.models import GameDetails
from game_identifier.resolution import CatalogQueryAdapter, MatchType, SearchOutcome
from game_identifier.session import (
    NO_MATCH_MESSAGE,
    UNAVAILABLE_MESSAGE,
    CandidateBoard,
    CandidateStatus,
    ResolutionCandidate,
    ResolutionSessionManager,
)


class RecordingSleep:
    """Sleep replacement that records every delay and only yields."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)
        await asyncio.sleep(0)


class ScriptedAdapter:
    """Adapter double that records queries and can be held open."""

    def __init__(self, outcome_for=None):
        self.queries = []
        self.gate = None
        self._outcome_for = outcome_for or (lambda query: SearchOutcome(query=query, searched_term=query))

    async def search(self, query, limit=10):
        self.queries.append(query)
        if self.gate is not None:
            await self.gate.wait()
        return self._outcome_for(query)


class HangingStore(CatalogStore):
    """Store that never answers and counts how often it was asked."""

    def __init__(self):
        self.calls = 0

    async def range_query(self, collection, field, lower_bound, upper_bound, order_by, limit):
        self.calls += 1
        await asyncio.sleep(10)

    async def get_by_id(self, collection, entry_id):
        return None

    async def scan(self, collection, limit):
        self.calls += 1
        await asyncio.sleep(10)


def add_candidate(board, session_key, index, title):
    return board.add(
        ResolutionCandidate(id=f"{session_key}-{index}", raw_title=title, session_key=session_key)
    )


def make_manager(adapter, board, **kwargs):
    kwargs.setdefault("sleep", RecordingSleep())
    kwargs.setdefault("clock", lambda: 0.0)
    return ResolutionSessionManager(adapter, board, **kwargs)


class TestSessions:
    """Tests for session token handling."""

    def test_begin_session_supersedes(self):
        """Test that each session key is new and only the latest is active."""
        manager = make_manager(ScriptedAdapter(), CandidateBoard())

        first = manager.begin_session()
        second = manager.begin_session()

        assert first != second
        assert first.startswith("session-")
        assert manager.is_active(second)
        assert not manager.is_active(first)

    def test_stagger_delay(self):
        """Test the initial delay plus per-item offset."""
        manager = make_manager(ScriptedAdapter(), CandidateBoard())

        assert [manager.stagger_delay_ms(i) for i in range(3)] == [300, 520, 740]


class TestQueue:
    """Tests for FIFO processing and staggering."""

    def test_jobs_run_in_submission_order(self):
        """Test that jobs start in submission order even with out-of-order delays."""
        adapter = ScriptedAdapter()
        board = CandidateBoard()
        manager = make_manager(adapter, board)

        async def scenario():
            session = manager.begin_session()
            for index, (title, delay) in enumerate([("Catan", 500), ("Pandemic", 0), ("Azul", 100)]):
                add_candidate(board, session, index, title)
                manager.enqueue_resolution(session, f"{session}-{index}", title, delay_ms=delay)
            await manager.join()

        asyncio.run(scenario())

        assert adapter.queries == ["Catan", "Pandemic", "Azul"]

    def test_staggered_delays_and_pauses(self):
        """Test that each job waits for its ready time and pauses after completion."""
        adapter = ScriptedAdapter()
        board = CandidateBoard()
        sleep = RecordingSleep()
        manager = make_manager(adapter, board, sleep=sleep, inter_job_pause=0.15)

        async def scenario():
            session = manager.begin_session()
            for index, title in enumerate(["Catan", "Pandemic"]):
                add_candidate(board, session, index, title)
                manager.enqueue_resolution(
                    session, f"{session}-{index}", title, delay_ms=manager.stagger_delay_ms(index)
                )
            await manager.join()

        asyncio.run(scenario())

        assert sleep.delays == pytest.approx([0.3, 0.15, 0.52, 0.15])

    def test_one_job_in_flight(self):
        """Test that the second lookup does not start until the first finishes."""
        adapter = ScriptedAdapter()
        board = CandidateBoard()
        manager = make_manager(adapter, board)

        async def scenario():
            adapter.gate = asyncio.Event()
            session = manager.begin_session()
            for index, title in enumerate(["Catan", "Pandemic"]):
                add_candidate(board, session, index, title)
                manager.enqueue_resolution(session, f"{session}-{index}", title)
            for _ in range(5):
                await asyncio.sleep(0)
            started = list(adapter.queries)
            adapter.gate.set()
            await manager.join()
            return started

        started = asyncio.run(scenario())

        assert started == ["Catan"]
        assert adapter.queries == ["Catan", "Pandemic"]


class TestResolution:
    """Tests for the per-job outcome handling."""

    def test_matched_with_details(self, store):
        """Test that a hit is matched and enriched with details."""
        board = CandidateBoard()
        manager = make_manager(
            CatalogQueryAdapter(store), board, detail_provider=CatalogDetailProvider(store)
        )

        async def scenario():
            session = manager.begin_session()
            add_candidate(board, session, 0, "Catan")
            manager.enqueue_resolution(session, f"{session}-0", "Catan")
            await manager.join()
            return board.get(f"{session}-0")

        candidate = asyncio.run(scenario())

        assert candidate.status == CandidateStatus.MATCHED
        assert candidate.resolved_entry.id == "13"
        assert candidate.match_type == MatchType.EXACT
        assert candidate.details.rank == 500

    def test_detail_failure_keeps_match(self, store):
        """Test that a failing detail fetch only omits display fields."""
        provider = Mock(spec=DetailProvider)
        provider.get_details = AsyncMock(side_effect=DetailFetchError("BGG down"))
        board = CandidateBoard()
        manager = make_manager(CatalogQueryAdapter(store), board, detail_provider=provider)

        async def scenario():
            session = manager.begin_session()
            add_candidate(board, session, 0, "Pandemic")
            manager.enqueue_resolution(session, f"{session}-0", "Pandemic")
            await manager.join()
            return board.get(f"{session}-0")

        candidate = asyncio.run(scenario())

        assert candidate.status == CandidateStatus.MATCHED
        assert candidate.details is None

    def test_no_match_records_searched_term(self, store):
        """Test that an empty result keeps the literal searched term."""
        board = CandidateBoard()
        manager = make_manager(CatalogQueryAdapter(store), board)

        async def scenario():
            session = manager.begin_session()
            add_candidate(board, session, 0, "  Zzyzx Quest ")
            manager.enqueue_resolution(session, f"{session}-0", "  Zzyzx Quest ")
            await manager.join()
            return board.get(f"{session}-0")

        candidate = asyncio.run(scenario())

        assert candidate.status == CandidateStatus.NO_MATCH
        assert candidate.searched_term == "Zzyzx Quest"
        assert candidate.error_message == NO_MATCH_MESSAGE

    def test_timeout_leaves_confirmable_error(self):
        """Test that a lookup exceeding the timeout ends in a confirmable error."""
        adapter = ScriptedAdapter()
        board = CandidateBoard()
        manager = make_manager(adapter, board, search_timeout=0.01)

        async def scenario():
            adapter.gate = asyncio.Event()
            session = manager.begin_session()
            add_candidate(board, session, 0, "Catan")
            manager.enqueue_resolution(session, f"{session}-0", "Catan")
            await manager.join()
            return board.get(f"{session}-0")

        candidate = asyncio.run(scenario())

        assert candidate.status == CandidateStatus.ERROR
        assert candidate.error_message
        assert candidate.is_settled

    def test_hung_store_opens_circuit(self):
        """Test that lookups cut short by the job timeout still open the circuit."""
        store = HangingStore()
        adapter = CatalogQueryAdapter(store, query_timeout=0.05)
        board = CandidateBoard()
        manager = make_manager(adapter, board, search_timeout=0.08)

        async def scenario():
            session = manager.begin_session()
            for index, title in enumerate(["Catan", "Pandemic", "Carcassonne", "Monopoly"]):
                add_candidate(board, session, index, title)
                manager.enqueue_resolution(session, f"{session}-{index}", title)
            await manager.join()
            return board.for_session(session)

        candidates = asyncio.run(scenario())

        assert [c.status for c in candidates] == [CandidateStatus.ERROR] * 4
        assert adapter.circuit_open
        assert store.calls == 4

    def test_store_error_outcome(self):
        """Test that an error outcome from the adapter becomes an error candidate."""
        adapter = ScriptedAdapter(
            lambda query: SearchOutcome(query=query, searched_term=query, error="store unreachable")
        )
        board = CandidateBoard()
        manager = make_manager(adapter, board)

        async def scenario():
            session = manager.begin_session()
            add_candidate(board, session, 0, "Catan")
            manager.enqueue_resolution(session, f"{session}-0", "Catan")
            await manager.join()
            return board.get(f"{session}-0")

        candidate = asyncio.run(scenario())

        assert candidate.status == CandidateStatus.ERROR
        assert candidate.error_message == UNAVAILABLE_MESSAGE

    def test_unexpected_exception_is_contained(self):
        """Test that an exception inside a job becomes candidate state, not a crash."""
        adapter = Mock()
        adapter.search = AsyncMock(side_effect=RuntimeError("boom"))
        board = CandidateBoard()
        manager = make_manager(adapter, board)

        async def scenario():
            session = manager.begin_session()
            add_candidate(board, session, 0, "Catan")
            add_candidate(board, session, 1, "Pandemic")
            manager.enqueue_resolution(session, f"{session}-0", "Catan")
            manager.enqueue_resolution(session, f"{session}-1", "Pandemic")
            await manager.join()
            return board.list()

        candidates = asyncio.run(scenario())

        assert [c.status for c in candidates] == [CandidateStatus.ERROR, CandidateStatus.ERROR]
        assert adapter.search.await_count == 2


class TestInvalidation:
    """Tests for stamp-and-check when a new session supersedes an old one."""

    def test_stale_job_leaves_no_mutation(self, store):
        """Test that an in-flight job from a superseded session changes nothing."""
        adapter = ScriptedAdapter()
        board = CandidateBoard()
        manager = make_manager(adapter, board)

        async def scenario():
            adapter.gate = asyncio.Event()
            old = manager.begin_session()
            add_candidate(board, old, 0, "Catan")
            add_candidate(board, old, 1, "Pandemic")
            manager.enqueue_resolution(old, f"{old}-0", "Catan")
            manager.enqueue_resolution(old, f"{old}-1", "Pandemic")
            while not adapter.queries:
                await asyncio.sleep(0)

            manager.begin_session()
            snapshot = board.list()
            adapter.gate.set()
            await manager.join()
            return snapshot, board.list()

        before, after = asyncio.run(scenario())

        assert before == after
        assert before[0].status == CandidateStatus.LOADING
        assert before[1].status == CandidateStatus.IDLE
        assert adapter.queries == ["Catan"]

    def test_new_session_jobs_still_run(self, store):
        """Test that the queue keeps serving the new session after supersession."""
        board = CandidateBoard()
        manager = make_manager(CatalogQueryAdapter(store), board)

        async def scenario():
            old = manager.begin_session()
            add_candidate(board, old, 0, "Catan")
            manager.enqueue_resolution(old, f"{old}-0", "Catan", delay_ms=300)
            new = manager.begin_session()
            add_candidate(board, new, 0, "Pandemic")
            manager.enqueue_resolution(new, f"{new}-0", "Pandemic")
            await manager.join()
            return board.get(f"{old}-0"), board.get(f"{new}-0")

        old_candidate, new_candidate = asyncio.run(scenario())

        assert old_candidate.status == CandidateStatus.IDLE
        assert new_candidate.status == CandidateStatus.MATCHED

    def test_user_selection_wins_over_queued_job(self, store, make_entry):
        """Test that a candidate chosen by hand is not overwritten by its queued lookup."""
        board = CandidateBoard()
        manager = make_manager(CatalogQueryAdapter(store), board)

        async def scenario():
            session = manager.begin_session()
            candidate = add_candidate(board, session, 0, "Catan")
            manager.enqueue_resolution(session, candidate.id, "Catan", delay_ms=300)
            board.replace(candidate.select(make_entry("999", "Catan: Cities & Knights")))
            await manager.join()
            return board.get(candidate.id)

        candidate = asyncio.run(scenario())

        assert candidate.resolved_entry.id == "999"


class TestResolveNow:
    """Tests for immediate user-triggered lookups."""

    def test_bypasses_stagger(self, store):
        """Test that a correction lookup runs without queue delays."""
        board = CandidateBoard()
        sleep = RecordingSleep()
        manager = make_manager(CatalogQueryAdapter(store), board, sleep=sleep)

        async def scenario():
            session = manager.begin_session()
            candidate = add_candidate(board, session, 0, "Catn")
            board.replace(candidate.begin_loading().mark_no_match("Catn", NO_MATCH_MESSAGE))
            return await manager.resolve_now(candidate.id, "Catan")

        candidate = asyncio.run(scenario())

        assert candidate.status == CandidateStatus.MATCHED
        assert candidate.resolved_entry.id == "13"
        assert sleep.delays == []

    def test_missing_candidate_returns_none(self, store):
        """Test that resolving an unknown id is a no-op."""
        manager = make_manager(CatalogQueryAdapter(store), CandidateBoard())

        async def scenario():
            manager.begin_session()
            return await manager.resolve_now("nope", "Catan")

        assert asyncio.run(scenario()) is None

    def test_fetch_details_without_provider(self, store):
        """Test that enrichment is skipped when no provider is configured."""
        manager = make_manager(CatalogQueryAdapter(store), CandidateBoard())

        assert asyncio.run(manager.fetch_details("13")) is None

    def test_fetch_details_timeout(self):
        """Test that a slow detail provider is abandoned."""
        provider = Mock(spec=DetailProvider)

        async def slow(entry_id):
            await asyncio.sleep(1)
            return GameDetails(id=entry_id)

        provider.get_details = slow
        manager = make_manager(ScriptedAdapter(), CandidateBoard(), detail_provider=provider, detail_timeout=0.01)

        assert asyncio.run(manager.fetch_details("13")) is None
