"""Shared test fixtures: isolated store injection and listing factories."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable

import pytest
from helpers import TODAY, base_listing

from autopicks.data.inventory import set_store
from autopicks.data.store import SqliteListingStore
from autopicks.models import RawListing


@pytest.fixture()
def today_year() -> int:
    """Fixed "current" year so age-dependent rules are deterministic."""
    return TODAY


@pytest.fixture()
def store() -> SqliteListingStore:
    """A fresh in-memory store."""
    return SqliteListingStore(":memory:")


@pytest.fixture(autouse=True)
def _inject_test_store(store: SqliteListingStore):
    """Give every test the same isolated store through the process singleton."""
    set_store(store)
    yield
    set_store(None)


@pytest.fixture()
def make_listing() -> Callable[..., RawListing]:
    """Factory: ``make_listing(price=42_500)`` returns a modified passing listing."""

    def _make(**overrides: Any) -> RawListing:
        return replace(base_listing(), **overrides)

    return _make
