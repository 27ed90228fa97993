"""
Integration tests for GameIdentifierApp and GameIdentificationService.
"""
import asyncio
import json

import pytest

from game_identifier.app import GameIdentifierApp
from game_identifier.catalog.memory_store import InMemoryCatalogStore
from game_identifier.config import GameIdentifierConfig
from game_identifier.exceptions import CandidateNotFoundError, RecognizerPayloadError
from game_identifier.resolution import MatchType
from game_identifier.service import NOTHING_RECOGNIZED_MESSAGE
from game_identifier.session import NO_MATCH_MESSAGE, CandidateStatus

RECOGNIZER_RESPONSE = json.dumps({
    "games": [
        {"title": "Catan", "confidence": "high"},
        {"title": "smallworld", "confidence": "medium", "notes": "spine only"},
        {"title": "CATAN", "confidence": "low"},
        {"title": "Zzyzx Quest", "confidence": "low"},
    ],
    "comments": "Shelf photo",
})


class GatedStore(InMemoryCatalogStore):
    """Store whose range queries wait until ``gate`` is set."""

    gate = None

    async def range_query(self, *args, **kwargs):
        if self.gate is not None:
            await self.gate.wait()
        return await super().range_query(*args, **kwargs)


@pytest.fixture
def config():
    return GameIdentifierConfig(stagger_initial_ms=0, stagger_step_ms=0, inter_job_pause_ms=0)


@pytest.fixture
def service(config, store):
    app = GameIdentifierApp(config, store=store)
    app.initialize()
    return app.service


class TestApp:
    """Tests for the composition root."""

    def test_service_requires_initialize(self, config, store):
        """Test that the service is unavailable before initialize()."""
        app = GameIdentifierApp(config, store=store)

        with pytest.raises(RuntimeError):
            app.service

    def test_initialize_is_idempotent(self, config, store):
        """Test that a second initialize() keeps the same service."""
        app = GameIdentifierApp(config, store=store)
        app.initialize()
        first = app.service
        app.initialize()

        assert app.service is first

    def test_initialize_loads_csv(self, tmp_path):
        """Test that the store is built from the configured CSV."""
        csv_path = tmp_path / "ranks.csv"
        csv_path.write_text("id,name,yearpublished,rank\n13,Catan,1995,500\n", encoding="utf-8")
        app = GameIdentifierApp(GameIdentifierConfig(catalog_csv_path=str(csv_path)))

        app.initialize()

        assert len(app.store) == 1


class TestCapture:
    """Tests for the capture → resolve workflow."""

    def test_capture_resolves_every_title(self, service):
        """Test that unique titles become candidates and each reaches a final state."""
        async def scenario():
            result = await service.begin_capture(RECOGNIZER_RESPONSE)
            await service.wait_idle()
            return result, service.candidates

        result, candidates = asyncio.run(scenario())

        assert len(result.candidates) == 3
        assert result.comments == "Shelf photo"
        by_title = {c.raw_title: c for c in candidates}
        assert by_title["Catan"].resolved_entry.id == "13"
        assert by_title["Catan"].confidence_label == "high"
        assert by_title["smallworld"].resolved_entry.id == "40692"
        assert by_title["smallworld"].match_type == MatchType.EXACT
        assert by_title["Zzyzx Quest"].status == CandidateStatus.NO_MATCH
        assert by_title["Zzyzx Quest"].error_message == NO_MATCH_MESSAGE

    def test_capture_accepts_title_list(self, service):
        """Test that a plain list of titles is accepted."""
        async def scenario():
            await service.begin_capture(["Pandemic", "Ticket to Ride"])
            return await service.wait_idle()

        candidates = asyncio.run(scenario())

        assert [c.resolved_entry.id for c in candidates] == ["30549", "9209"]

    def test_nothing_recognized(self, service):
        """Test the message when the recognizer found no titles."""
        result = asyncio.run(service.begin_capture({"games": []}))

        assert result.candidates == []
        assert result.message == NOTHING_RECOGNIZED_MESSAGE

    def test_malformed_payload(self, service):
        """Test that an unreadable recognizer response is reported."""
        with pytest.raises(RecognizerPayloadError):
            asyncio.run(service.begin_capture("not json"))

    def test_new_capture_supersedes_pending(self, service):
        """Test that starting a capture drops the previous session's candidates."""
        async def scenario():
            first = await service.begin_capture(["Catan"])
            second = await service.begin_capture(["Pandemic"])
            await service.wait_idle()
            return first, second

        first, second = asyncio.run(scenario())

        assert service.board.find(first.candidates[0].id) is None
        assert service.board.get(second.candidates[0].id).status == CandidateStatus.MATCHED

    def test_new_capture_clears_in_flight_candidate(self, config, catalog_entries):
        """Test that a candidate still loading is cleared by the next capture."""
        store = GatedStore(catalog_entries)
        app = GameIdentifierApp(config, store=store)
        app.initialize()
        service = app.service

        async def scenario():
            store.gate = asyncio.Event()
            first = await service.begin_capture(["Catan"])
            first_id = first.candidates[0].id
            while service.board.get(first_id).status != CandidateStatus.LOADING:
                await asyncio.sleep(0)
            await service.begin_capture(["Pandemic"])
            store.gate.set()
            return first_id, await service.wait_idle()

        first_id, candidates = asyncio.run(scenario())

        assert service.board.find(first_id) is None
        assert [(c.raw_title, c.status) for c in candidates] == [
            ("Pandemic", CandidateStatus.MATCHED)
        ]

    def test_confirm_while_loading(self, config, catalog_entries):
        """Test that a title can be confirmed before its lookup finishes."""
        store = GatedStore(catalog_entries)
        app = GameIdentifierApp(config, store=store)
        app.initialize()
        service = app.service

        async def scenario():
            store.gate = asyncio.Event()
            result = await service.begin_capture(["Catan"])
            candidate_id = result.candidates[0].id
            while service.board.get(candidate_id).status != CandidateStatus.LOADING:
                await asyncio.sleep(0)
            confirmed = service.confirm(candidate_id)
            store.gate.set()
            await service.wait_idle()
            return confirmed

        confirmed = asyncio.run(scenario())

        assert confirmed.raw_title == "Catan"
        assert confirmed.status == CandidateStatus.LOADING
        assert service.board.confirmed == [confirmed]
        assert service.candidates == []


class TestCorrection:
    """Tests for the correction workflow through the facade."""

    def test_suggest_select_and_confirm(self, service):
        """Test correcting a no_match candidate and confirming it."""
        async def scenario():
            result = await service.begin_capture(["Zzyzx Quest"])
            await service.wait_idle()
            suggestions = await service.suggest("ticket")
            return result.candidates[0].id, suggestions

        candidate_id, suggestions = asyncio.run(scenario())
        updated = service.select_suggestion(suggestions.suggestions[0], candidate_id=candidate_id)
        confirmed = service.confirm(candidate_id)

        assert updated.resolved_entry.id == "9209"
        assert confirmed.display_title == "Ticket to Ride"
        assert service.candidates == []

    def test_retry_candidate(self, service):
        """Test re-resolving a candidate with a corrected title."""
        async def scenario():
            result = await service.begin_capture(["Pandemc Legacy"])
            await service.wait_idle()
            return await service.retry_candidate(result.candidates[0].id, "Pandemic")

        updated = asyncio.run(scenario())

        assert updated.status == CandidateStatus.MATCHED
        assert updated.resolved_entry.id == "30549"

    def test_discard_unknown_raises(self, service):
        """Test that discarding an unknown id is an error."""
        with pytest.raises(CandidateNotFoundError):
            service.discard("missing")

    def test_search(self, service):
        """Test direct ranked search through the facade."""
        outcome = asyncio.run(service.search("catan", limit=2))

        assert [m.entry.id for m in outcome.matches] == ["13", "999"]
