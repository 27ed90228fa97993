"""
Public application facade for the game identifier.

This is the single stable entry point for the library.
All internal structure can change freely, but this API remains stable.
"""
import os
from pathlib import Path
from typing import Optional

from .catalog import create_catalog_store, create_detail_provider
from .catalog.memory_store import InMemoryCatalogStore
from .config import GameIdentifierConfig
from .resolution import create_query_adapter
from .service import GameIdentificationService
from .session import CandidateBoard, CorrectionFlow, ResolutionSessionManager


class GameIdentifierApp:
    """
    Composition root for the identification pipeline.

    All dependency wiring and factory usage is encapsulated here.

    Usage:
        config = load_config_from_env()
        app = GameIdentifierApp(config)
        app.initialize()
        result = await app.service.begin_capture(recognizer_json)
    """

    def __init__(self, config: GameIdentifierConfig, store: Optional[InMemoryCatalogStore] = None):
        """
        :param config: GameIdentifierConfig instance
        :param store: Pre-built store; loaded from the configured CSV if None
        """
        self._config = config
        self._store = store
        self._service: Optional[GameIdentificationService] = None

    def initialize(self) -> None:
        """
        Build the store, adapter, detail provider and service.

        Call this once before using ``service``. Repeated calls are no-ops.
        """
        if self._service:
            return

        # Relative CSV paths resolve against the project root, not the caller's CWD
        csv_path = self._config.catalog_csv_path
        if csv_path and not os.path.isabs(csv_path) and not os.path.exists(csv_path):
            project_dir = Path(__file__).parent.parent.parent
            self._config.catalog_csv_path = str(project_dir / csv_path)

        if self._store is None:
            self._store = create_catalog_store(self._config)

        adapter = create_query_adapter(self._store, self._config)
        detail_provider = create_detail_provider(self._config, store=self._store)
        board = CandidateBoard()
        manager = ResolutionSessionManager(
            adapter,
            board,
            detail_provider=detail_provider,
            result_limit=self._config.result_limit,
            search_timeout=self._config.search_timeout,
            detail_timeout=self._config.detail_timeout,
            inter_job_pause=self._config.inter_job_pause_ms / 1000.0,
            stagger_initial_ms=self._config.stagger_initial_ms,
            stagger_step_ms=self._config.stagger_step_ms,
        )
        correction = CorrectionFlow(adapter, manager, board, limit=self._config.correction_limit)
        self._service = GameIdentificationService(
            self._config,
            adapter=adapter,
            manager=manager,
            board=board,
            correction=correction,
        )

    @property
    def service(self) -> GameIdentificationService:
        """
        :raises: RuntimeError if initialize() has not been called
        """
        if not self._service:
            raise RuntimeError("App not initialized. Call initialize() first.")
        return self._service

    @property
    def store(self) -> Optional[InMemoryCatalogStore]:
        return self._store
