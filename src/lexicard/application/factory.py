"""
Repository Factory
Centralizes the logic for selecting the storage backend.
"""

import logging

from lexicard.application.config import AppConfig
from lexicard.domain.ports import VocabularyRepository
from lexicard.infrastructure.adapters.memory_repository import MemoryRepository
from lexicard.infrastructure.adapters.sqlite_repository import SqliteRepository

logger = logging.getLogger(__name__)


def get_repository(config: AppConfig) -> VocabularyRepository:
    """
    Returns the VocabularyRepository implementation selected by config.

    The caller owns the returned handle and must close() it.
    """
    if config.backend == "memory":
        logger.info("Backend: memory (data is discarded on exit)")
        return MemoryRepository()

    logger.info(f"Backend: sqlite ({config.database_path})")
    return SqliteRepository(config.database_path)
