"""Curation tool implementations: pipeline runs, filter checks, review queue."""

from __future__ import annotations

import json
from typing import Any

from autopicks.config import PipelineConfig, resolve_source_key
from autopicks.constants import TIER_CAUTION, TIER_GOOD_BUY, TIER_TOP_PICK
from autopicks.data.inventory import get_store
from autopicks.filtering.criteria import DEFAULT_FILTER_CRITERIA
from autopicks.filtering.engine import apply_filters, get_filter_stats
from autopicks.ingestion.pipeline import CurationPipeline
from autopicks.models import RawListing
from autopicks.scoring import curator_summary, priority_score, quality_tier, score_breakdown
from autopicks.sources.base import ListingSource
from autopicks.sources.sample import sample_listings

_TIERS = (TIER_TOP_PICK, TIER_GOOD_BUY, TIER_CAUTION)


def _dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=str)


def _coerce_listings(listings: Any) -> tuple[list[RawListing] | None, str | None]:
    if not isinstance(listings, list):
        return None, "Error: listings payload must be a list of dicts."
    parsed: list[RawListing] = []
    for i, item in enumerate(listings):
        if not isinstance(item, dict):
            return None, f"Error: listing at index {i} must be a dict."
        parsed.append(RawListing.from_dict(item))
    return parsed, None


async def run_daily_search_impl(
    *,
    data_source: str = "",
    skip_vin_validation: bool | None = None,
    source: ListingSource | None = None,
) -> str:
    """Run one curation pass and report counts and stage errors."""
    config = PipelineConfig.from_env()
    if data_source:
        config.data_source = resolve_source_key(data_source)
    if skip_vin_validation is not None:
        config.skip_vin_validation = skip_vin_validation
    result = await CurationPipeline(config, source=source, store=get_store(config.db_path)).run()
    return _dumps(result.to_dict())


def check_listing_impl(listing: Any, *, exclude_rust_belt: bool = False) -> str:
    """Dry-run one listing through the filters and, if it passes, the scorer."""
    if not isinstance(listing, dict):
        return "Error: listing payload must be a dict."
    raw = RawListing.from_dict(listing)
    criteria = DEFAULT_FILTER_CRITERIA
    if exclude_rust_belt:
        criteria = criteria.replace(exclude_rust_belt=True)

    result = apply_filters(raw, criteria)
    payload: dict[str, Any] = {"listing": raw.label(), "filter": result.to_dict()}
    if result.passed:
        breakdown = score_breakdown(raw, result, criteria)
        score = priority_score(breakdown)
        payload["score"] = {
            "priority_score": score,
            "quality_tier": quality_tier(score),
            "ai_summary": curator_summary(raw, result, breakdown, score),
            "score_breakdown": breakdown,
        }
    return _dumps(payload)


def get_filter_stats_impl(listings: Any = None) -> str:
    """Filter statistics for the given listings, or for the built-in sample set."""
    if listings is None:
        parsed = sample_listings()
    else:
        parsed, error = _coerce_listings(listings)
        if error:
            return error
    return _dumps(get_filter_stats(parsed or [], DEFAULT_FILTER_CRITERIA))


def list_curated_vehicles_impl(
    *,
    quality_tier: str = "",
    make: str = "",
    reviewed: bool | None = None,
    sort_by: str = "priority_score",
    limit: int = 25,
    offset: int = 0,
) -> str:
    if quality_tier and quality_tier not in _TIERS:
        return f"Error: quality_tier must be one of {', '.join(_TIERS)}."
    store = get_store()
    vehicles = store.list_vehicles(
        quality_tier=quality_tier or None,
        make=make or None,
        reviewed=reviewed,
        sort_by=sort_by,
        limit=limit,
        offset=offset,
    )
    return _dumps({
        "total": store.count(),
        "tiers": store.tier_counts(),
        "count": len(vehicles),
        "vehicles": [v.to_dict() for v in vehicles],
    })


def get_search_logs_impl(*, limit: int = 10) -> str:
    logs = get_store().list_search_logs(limit=limit)
    if not logs:
        return "No curation runs recorded yet."
    return _dumps([log.to_dict() for log in logs])


def review_vehicle_impl(vin: str, *, rating: int | None = None, notes: str = "") -> str:
    """Mark a curated listing reviewed, optionally with a 1-5 rating and notes."""
    if not vin or not vin.strip():
        return "Error: vin is required."
    if rating is not None and not 1 <= rating <= 5:
        return "Error: rating must be between 1 and 5."
    vehicle = get_store().mark_reviewed(vin, user_rating=rating, user_notes=notes or None)
    if vehicle is None:
        return f"Vehicle {vin.strip().upper()} not found among curated listings."
    return _dumps(vehicle.to_dict())
