"""Listing source protocol consumed by the fetch stage."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from autopicks.models import RawListing


@runtime_checkable
class ListingSource(Protocol):
    """Anything that can hand the pipeline a batch of raw listings."""

    name: str
    cost_per_call: float

    async def fetch(self) -> list[RawListing]: ...
