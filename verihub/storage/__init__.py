"""
Storage backends for facts, questions, audit runs and findings
"""

from .base import AuditStorage, matches_query
from .memory import MemoryStorage
from .sqlite import SqliteStorage


def create_storage(config) -> AuditStorage:
    """Build the backend named by ``storage.backend`` in a ConfigManager."""
    backend = config.get("storage.backend", "memory")
    if backend == "memory":
        return MemoryStorage()
    if backend == "sqlite":
        return SqliteStorage(config.get("storage.sqlite_path"))
    raise ValueError(f"Unknown storage backend: {backend}")


__all__ = [
    "AuditStorage",
    "MemoryStorage",
    "SqliteStorage",
    "create_storage",
    "matches_query",
]
