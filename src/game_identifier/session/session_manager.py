"""
Resolution session manager.

Owns the active session token and the resolution job queue. Jobs run one at a
time in submission order; every update a job makes is stamped with the
session it was enqueued under and dropped if that session has been
superseded. Nothing a job does propagates an exception to the caller.
"""
import asyncio
import logging
import time
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Deque, Optional

from ..catalog.detail_provider import DetailProvider
from ..exceptions import InvalidTransitionError
from ..models import GameDetails
from ..resolution.catalog_query import CatalogQueryAdapter
from .candidate import ResolutionCandidate
from .candidate_board import CandidateBoard

logger = logging.getLogger(__name__)

NO_MATCH_MESSAGE = "No matches on BoardGameGeek yet."
UNAVAILABLE_MESSAGE = "BGG metadata unavailable. You can still confirm this game."

Mutation = Callable[[ResolutionCandidate], ResolutionCandidate]


@dataclass(frozen=True)
class ResolutionJob:
    """
    One queued lookup.

    Attributes:
        session_key: Session active when the job was enqueued
        candidate_id: Candidate the result is written to
        query: Title to search for
        ready_at: Clock time before which the job must not start
    """
    session_key: str
    candidate_id: str
    query: str
    ready_at: float


class ResolutionSessionManager:
    """
    Serializes catalog lookups for recognized titles.

    Usage:
        manager = ResolutionSessionManager(adapter, board)
        session = manager.begin_session()
        manager.enqueue_resolution(session, candidate.id, "Catan", delay_ms=300)
        await manager.join()
    """

    def __init__(
        self,
        adapter: CatalogQueryAdapter,
        board: CandidateBoard,
        detail_provider: Optional[DetailProvider] = None,
        result_limit: int = 10,
        search_timeout: float = 6.0,
        detail_timeout: float = 5.0,
        inter_job_pause: float = 0.15,
        stagger_initial_ms: int = 300,
        stagger_step_ms: int = 220,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        :param adapter: Query adapter used for every lookup
        :param board: Sink receiving candidate updates
        :param detail_provider: Optional enrichment source for matched entries
        :param result_limit: Ranked results requested per lookup
        :param search_timeout: Seconds a whole lookup may take
        :param detail_timeout: Seconds the detail fetch may take
        :param inter_job_pause: Seconds to wait after each completed job
        :param stagger_initial_ms: Delay before the first job of a batch
        :param stagger_step_ms: Extra delay per position in a batch
        :param clock: Monotonic clock, injectable for tests
        :param sleep: Coroutine used for every delay, injectable for tests
        """
        self._adapter = adapter
        self._board = board
        self._detail_provider = detail_provider
        self._result_limit = result_limit
        self._search_timeout = search_timeout
        self._detail_timeout = detail_timeout
        self._inter_job_pause = inter_job_pause
        self._stagger_initial_ms = stagger_initial_ms
        self._stagger_step_ms = stagger_step_ms
        self._clock = clock
        self._sleep = sleep

        self._queue: Deque[ResolutionJob] = deque()
        self._active_session: Optional[str] = None
        self._worker: Optional[asyncio.Task] = None

    # ----------------------------
    # Sessions
    # ----------------------------
    def begin_session(self) -> str:
        """
        Start a new session and supersede the previous one.

        In-flight lookups are not cancelled; their results are discarded.
        """
        previous = self._active_session
        self._active_session = f"session-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"
        if previous:
            logger.info(f"Session {previous} superseded by {self._active_session}")
        else:
            logger.info(f"Started session {self._active_session}")
        return self._active_session

    @property
    def active_session(self) -> Optional[str]:
        return self._active_session

    def is_active(self, session_key: Optional[str]) -> bool:
        return session_key is not None and session_key == self._active_session

    @property
    def pending_jobs(self) -> int:
        return len(self._queue)

    # ----------------------------
    # Queue
    # ----------------------------
    def stagger_delay_ms(self, index: int) -> int:
        """Delay for the ``index``-th title of a batch."""
        return self._stagger_initial_ms + index * self._stagger_step_ms

    def enqueue_resolution(
        self,
        session_key: str,
        candidate_id: str,
        raw_title: str,
        delay_ms: int = 0,
    ) -> ResolutionJob:
        """
        Append a lookup to the FIFO queue.

        Must be called from a running event loop; the worker is started on
        demand.

        :param delay_ms: Milliseconds from now before the job may start
        :return: The queued job
        """
        job = ResolutionJob(
            session_key=session_key,
            candidate_id=candidate_id,
            query=raw_title,
            ready_at=self._clock() + max(delay_ms, 0) / 1000.0,
        )
        self._queue.append(job)
        logger.debug(f"Queued '{raw_title}' for {candidate_id} (delay {delay_ms}ms)")
        self._ensure_worker()
        return job

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while self._queue:
            job = self._queue.popleft()
            if not self.is_active(job.session_key):
                logger.debug(f"Dropping queued job for stale session {job.session_key}")
                continue

            wait = job.ready_at - self._clock()
            if wait > 0:
                await self._sleep(wait)
            if not self.is_active(job.session_key):
                logger.debug(f"Dropping job for {job.candidate_id}: session superseded while waiting")
                continue

            try:
                await self._resolve(job.session_key, job.candidate_id, job.query)
            except Exception as e:
                logger.error(f"Resolution job for {job.candidate_id} failed: {e}", exc_info=True)
                self._apply(
                    job.session_key,
                    job.candidate_id,
                    lambda c: c.mark_error(UNAVAILABLE_MESSAGE, searched_term=job.query.strip()),
                )

            await self._sleep(self._inter_job_pause)

    async def join(self) -> None:
        """Wait until the queue is empty and no job is running."""
        while self._worker is not None and not self._worker.done():
            await self._worker

    # ----------------------------
    # Lookups
    # ----------------------------
    async def resolve_now(self, candidate_id: str, query: str) -> Optional[ResolutionCandidate]:
        """
        Re-run resolution for one candidate immediately, bypassing the queue.

        Used by the correction flow for a single user-triggered lookup.

        :return: The updated candidate, or None if the update was dropped
        """
        session_key = self._active_session
        try:
            return await self._resolve(session_key, candidate_id, query)
        except Exception as e:
            logger.error(f"Manual resolution for {candidate_id} failed: {e}", exc_info=True)
            return self._apply(
                session_key,
                candidate_id,
                lambda c: c.mark_error(UNAVAILABLE_MESSAGE, searched_term=query.strip()),
            )

    async def _resolve(
        self,
        session_key: Optional[str],
        candidate_id: str,
        query: str,
    ) -> Optional[ResolutionCandidate]:
        searched_term = query.strip()
        if self._apply(session_key, candidate_id, lambda c: c.begin_loading()) is None:
            return None

        try:
            outcome = await asyncio.wait_for(
                self._adapter.search(query, limit=self._result_limit),
                timeout=self._search_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Lookup for '{searched_term}' timed out after {self._search_timeout}s")
            return self._apply(
                session_key,
                candidate_id,
                lambda c: c.mark_error(UNAVAILABLE_MESSAGE, searched_term=searched_term),
            )

        if outcome.has_error():
            logger.warning(f"Lookup for '{searched_term}' failed: {outcome.error}")
            return self._apply(
                session_key,
                candidate_id,
                lambda c: c.mark_error(UNAVAILABLE_MESSAGE, searched_term=searched_term),
            )

        top = outcome.top_match
        if top is None:
            logger.info(f"No match for '{searched_term}'")
            return self._apply(
                session_key,
                candidate_id,
                lambda c: c.mark_no_match(searched_term, NO_MATCH_MESSAGE),
            )

        if not self.is_current(session_key):
            logger.debug(f"Skipping details for {candidate_id}: session superseded")
            return None

        details = await self.fetch_details(top.entry.id)
        logger.info(
            f"Resolved '{searched_term}' to '{top.entry.name}' ({top.match_type.value}, "
            f"similarity={top.similarity:.2f})"
        )
        return self._apply(
            session_key,
            candidate_id,
            lambda c: c.resolve(top.entry, match_type=top.match_type, details=details),
        )

    async def fetch_details(self, entry_id: str) -> Optional[GameDetails]:
        """
        Fetch display details for a catalog entry.

        Failures are logged and reported as None.
        """
        if self._detail_provider is None:
            return None
        try:
            return await asyncio.wait_for(
                self._detail_provider.get_details(entry_id),
                timeout=self._detail_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Detail fetch for {entry_id} timed out after {self._detail_timeout}s")
        except Exception as e:
            logger.warning(f"Detail fetch for {entry_id} failed: {e}")
        return None

    # ----------------------------
    # Stamp-and-check
    # ----------------------------
    def is_current(self, session_key: Optional[str]) -> bool:
        return session_key == self._active_session

    def _apply(
        self,
        session_key: Optional[str],
        candidate_id: str,
        mutate: Mutation,
    ) -> Optional[ResolutionCandidate]:
        """
        Apply one atomic candidate update if its session is still current.

        :return: Updated candidate, or None if the update was dropped
        """
        if not self.is_current(session_key):
            logger.debug(f"Discarding update for {candidate_id}: session {session_key} is stale")
            return None

        candidate = self._board.find(candidate_id)
        if candidate is None:
            logger.debug(f"Discarding update for {candidate_id}: candidate removed")
            return None

        try:
            updated = mutate(candidate)
        except InvalidTransitionError as e:
            logger.info(f"Discarding update: {e}")
            return None

        return self._board.replace(updated)

    async def close(self) -> None:
        """Stop the worker and forget queued jobs."""
        self._queue.clear()
        self._active_session = None
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
