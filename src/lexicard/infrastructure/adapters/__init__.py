# Infrastructure Storage Adapters Package
from .memory_repository import MemoryRepository
from .sqlite_repository import SqliteRepository

__all__ = ["MemoryRepository", "SqliteRepository"]
