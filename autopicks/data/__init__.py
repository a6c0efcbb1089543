"""Persistence for curated listings and run audit logs."""

from autopicks.data.inventory import get_store, set_store
from autopicks.data.store import ListingStore, SqliteListingStore

__all__ = ["ListingStore", "SqliteListingStore", "get_store", "set_store"]
