"""Composite 0-100 priority score, quality tier and curator summary.

The composite score is separate from the 1-10 per-model weight returned by
:func:`autopicks.filtering.rules.model_weight`; the weight is only one of
six inputs here.
"""

from __future__ import annotations

from typing import Any

from autopicks.constants import (
    GOOD_BUY_MIN_SCORE,
    MILEAGE_ACCEPTABLE,
    MILEAGE_EXCELLENT,
    MILEAGE_GOOD,
    SCORING_WEIGHTS,
    TIER_CAUTION,
    TIER_GOOD_BUY,
    TIER_TOP_PICK,
    TOP_PICK_MIN_SCORE,
)
from autopicks.filtering.criteria import FilterCriteria
from autopicks.filtering.engine import FilterResult
from autopicks.filtering.rules import model_weight as _model_weight
from autopicks.models import RawListing, Vehicle

_MILEAGE_POINTS = {
    MILEAGE_EXCELLENT: SCORING_WEIGHTS["mileage"],
    MILEAGE_GOOD: 18,
    MILEAGE_ACCEPTABLE: 10,
}

HIGH_MILEAGE = 120_000


def _component(points: int, reason: str) -> dict[str, Any]:
    return {"points": points, "reason": reason}


def _title_points(listing: RawListing, criteria: FilterCriteria) -> dict[str, Any]:
    cap = SCORING_WEIGHTS["title"]
    if listing.title_status is None:
        return _component(cap - 5, "Title status not reported")
    if listing.title_status.lower() == criteria.title_status.lower():
        return _component(cap, "Clean title")
    return _component(0, f"Title status '{listing.title_status}'")


def _mileage_points(rating: str | None) -> dict[str, Any]:
    if rating is None:
        return _component(0, "Mileage over limit for age")
    return _component(_MILEAGE_POINTS[rating], f"Mileage rated {rating}")


def _price_points(listing: RawListing, criteria: FilterCriteria) -> dict[str, Any]:
    cap = SCORING_WEIGHTS["price"]
    price = listing.price
    if price is None or price > criteria.price_max:
        return _component(0, "Price outside budget")
    band = criteria.price_max - criteria.price_min
    if band <= 0 or price <= criteria.price_min:
        return _component(cap, "Priced at the bottom of the budget")
    headroom = (criteria.price_max - price) / band
    points = 5 + int(15 * headroom + 0.5)
    return _component(points, f"${criteria.price_max - price:,.0f} under budget cap")


def _distance_points(listing: RawListing) -> dict[str, Any]:
    distance = listing.distance
    if distance is None:
        return _component(5, "Distance unknown")
    if distance <= 20:
        return _component(SCORING_WEIGHTS["distance"], f"{distance:.0f} miles away")
    if distance <= 40:
        return _component(7, f"{distance:.0f} miles away")
    if distance <= 100:
        return _component(4, f"{distance:.0f} miles away")
    return _component(0, f"{distance:.0f} miles away")


def _model_points(weight: int) -> dict[str, Any]:
    return _component(weight * SCORING_WEIGHTS["model"] // 10, f"Model priority {weight}/10")


def _condition_points(listing: RawListing, rust_concern: bool) -> dict[str, Any]:
    cap = SCORING_WEIGHTS["condition"]
    if listing.flood_damage:
        return _component(0, "Flood damage")
    points = cap
    notes: list[str] = []
    if listing.accident_count:
        points -= 5 * listing.accident_count
        notes.append(f"{listing.accident_count} accident(s)")
    if listing.owner_count is not None and listing.owner_count > 1:
        points -= 2 if listing.owner_count == 2 else 5
        notes.append(f"{listing.owner_count} owners")
    if rust_concern:
        points -= 4
        notes.append("rust belt origin")
    if listing.is_rental:
        points -= 3
        notes.append("former rental")
    if listing.is_fleet:
        points -= 3
        notes.append("fleet vehicle")
    reason = ", ".join(notes) if notes else "No condition concerns reported"
    return _component(max(0, points), reason)


def score_breakdown(
    listing: RawListing,
    result: FilterResult,
    criteria: FilterCriteria,
) -> dict[str, dict[str, Any]]:
    """Per-component points; each component is capped by ``SCORING_WEIGHTS``."""
    weight = result.model_weight
    if weight is None:
        weight = _model_weight(listing.model, criteria.model_weights)
    return {
        "title": _title_points(listing, criteria),
        "mileage": _mileage_points(result.mileage_rating),
        "price": _price_points(listing, criteria),
        "distance": _distance_points(listing),
        "model": _model_points(weight),
        "condition": _condition_points(listing, result.is_rust_belt_concern),
    }


def priority_score(breakdown: dict[str, dict[str, Any]]) -> int:
    """Sum of component points, clamped to 0-100."""
    total = sum(int(part["points"]) for part in breakdown.values())
    return max(0, min(100, total))


def quality_tier(score: int) -> str:
    if score >= TOP_PICK_MIN_SCORE:
        return TIER_TOP_PICK
    if score >= GOOD_BUY_MIN_SCORE:
        return TIER_GOOD_BUY
    return TIER_CAUTION


def curator_summary(
    listing: RawListing,
    result: FilterResult,
    breakdown: dict[str, dict[str, Any]],
    score: int,
) -> str:
    """Short " • "-joined highlight line shown next to a curated listing."""
    if score < GOOD_BUY_MIN_SCORE:
        warnings: list[str] = []
        if listing.accident_count:
            plural = "s" if listing.accident_count > 1 else ""
            warnings.append(f"{listing.accident_count} accident{plural}")
        if listing.mileage is not None and listing.mileage > HIGH_MILEAGE:
            warnings.append("High mileage")
        if listing.owner_count is not None and listing.owner_count > 2:
            warnings.append("Multiple owners")
        if listing.is_rental:
            warnings.append("Former rental")
        if listing.is_fleet:
            warnings.append("Fleet vehicle")
        if warnings:
            return " • ".join(warnings[:3])

    highlights: list[str] = []
    if listing.title_status == "clean" and listing.accident_count == 0:
        highlights.append("Clean history")
    if listing.owner_count == 1:
        highlights.append("1-owner")
    if breakdown["price"]["points"] >= 15:
        highlights.append("Well under budget")
    if result.mileage_rating == MILEAGE_EXCELLENT:
        highlights.append("Low miles for age")
    if not result.is_rust_belt_concern:
        highlights.append("No rust belt")
    if listing.distance is not None and listing.distance <= 20:
        highlights.append("Very close")
    elif listing.distance is not None and listing.distance <= 40:
        highlights.append("Nearby")
    return " • ".join(highlights[:5]) or "Clean vehicle"


def build_vehicle(
    listing: RawListing,
    result: FilterResult,
    criteria: FilterCriteria,
    *,
    vin_decode_data: dict[str, Any] | None = None,
) -> Vehicle:
    """Derive the persisted record for a listing that survived filtering."""
    if not listing.vin:
        raise ValueError(f"cannot store {listing.label()}: VIN is required")

    breakdown = score_breakdown(listing, result, criteria)
    score = priority_score(breakdown)
    return Vehicle(
        vin=listing.vin,
        make=listing.make or "",
        model=listing.model or "",
        year=listing.year or 0,
        price=listing.price or 0.0,
        mileage=listing.mileage or 0,
        current_location=listing.location,
        source_url=listing.url,
        source_platform=listing.source,
        body_type=listing.body_type,
        dealer_name=listing.dealer_name,
        distance_miles=listing.distance,
        source_listing_id=listing.listing_id,
        images_url=list(listing.images),
        title_status=listing.title_status,
        accident_count=listing.accident_count,
        owner_count=listing.owner_count,
        is_rental=listing.is_rental,
        is_fleet=listing.is_fleet,
        has_lien=listing.has_lien,
        flood_damage=listing.flood_damage,
        state_of_origin=listing.state_of_origin,
        is_rust_belt_state=result.is_rust_belt_concern,
        mileage_rating=result.mileage_rating,
        model_weight=result.model_weight,
        priority_score=score,
        quality_tier=quality_tier(score),
        ai_summary=curator_summary(listing, result, breakdown, score),
        score_breakdown=breakdown,
        flag_rust_concern=result.is_rust_belt_concern,
        vin_decode_data=vin_decode_data,
    )
