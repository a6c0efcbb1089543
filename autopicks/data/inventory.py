"""Process-wide store accessor used by the pipeline, tools and scripts."""

from __future__ import annotations

from autopicks.config import PipelineConfig
from autopicks.data.store import SqliteListingStore

_store: SqliteListingStore | None = None


def get_store(db_path: str | None = None) -> SqliteListingStore:
    """Return the active store singleton, opening the SQLite file on first use.

    ``db_path`` only matters for that first open; it defaults to the
    configured ``AUTOPICKS_DB_PATH``.
    """
    global _store  # noqa: PLW0603
    if _store is None:
        _store = SqliteListingStore(db_path or PipelineConfig.from_env().db_path)
    return _store


def set_store(store: SqliteListingStore | None) -> None:
    """Inject a store instance (tests use an in-memory one)."""
    global _store  # noqa: PLW0603
    _store = store
