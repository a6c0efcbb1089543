"""Filter engine: one keep/reject decision per listing plus batch helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from autopicks.constants import MEETS_ALL_CRITERIA, MILEAGE_RATINGS, WARNING_PREFIX
from autopicks.filtering.criteria import FilterCriteria
from autopicks.filtering.rules import is_rust_belt, model_weight, rate_mileage
from autopicks.filtering.validator import validate_listing
from autopicks.models import RawListing

MILEAGE_OVER_LIMIT = "Mileage exceeds acceptable threshold for vehicle age"
RUST_BELT_EXCLUDED = "Rust belt vehicles excluded by filter criteria"


@dataclass(frozen=True)
class FilterResult:
    """Outcome of :func:`apply_filters`.

    ``reasons`` holds errors, ``"Warning: "`` lines and informational lines
    in evaluation order; ``errors`` is the error-class subset and is empty
    exactly when ``passed`` is true.
    """

    passed: bool
    reasons: tuple[str, ...]
    errors: tuple[str, ...] = ()
    mileage_rating: str | None = None
    model_weight: int | None = None
    is_rust_belt_concern: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "pass": self.passed,
            "reasons": list(self.reasons),
            "errors": list(self.errors),
            "mileage_rating": self.mileage_rating,
            "model_weight": self.model_weight,
            "is_rust_belt_concern": self.is_rust_belt_concern,
        }


def apply_filters(
    listing: RawListing,
    criteria: FilterCriteria,
    *,
    today_year: int | None = None,
) -> FilterResult:
    """Validate, rate mileage, weight the model and check geography."""
    reasons: list[str] = []
    errors: list[str] = []

    # 1. must-have rules
    validation = validate_listing(listing, criteria, today_year=today_year)
    errors.extend(validation.errors)
    reasons.extend(validation.errors)
    reasons.extend(f"{WARNING_PREFIX}{w}" for w in validation.warnings)

    # 2. mileage rating
    rating: str | None = None
    if listing.mileage is not None and listing.year is not None:
        rating = rate_mileage(listing.mileage, listing.year, criteria, today_year=today_year)
        if rating is None:
            errors.append(MILEAGE_OVER_LIMIT)
            reasons.append(MILEAGE_OVER_LIMIT)
        else:
            reasons.append(f"Mileage rating: {rating}")

    # 3. model weight (informational only)
    weight: int | None = None
    if listing.model:
        weight = model_weight(listing.model, criteria.model_weights)
        reasons.append(f"Model priority: {weight}/10")

    # 4. rust belt
    rust_concern = False
    if listing.state_of_origin:
        rust_concern = is_rust_belt(listing.state_of_origin, criteria.rust_belt_states)
        if rust_concern:
            reasons.append(f"Rust belt concern: vehicle from {listing.state_of_origin}")
            if criteria.exclude_rust_belt:
                errors.append(RUST_BELT_EXCLUDED)
                reasons.append(RUST_BELT_EXCLUDED)

    passed = not errors
    if passed and not reasons:
        reasons.append(MEETS_ALL_CRITERIA)

    return FilterResult(
        passed=passed,
        reasons=tuple(reasons),
        errors=tuple(errors),
        mileage_rating=rating,
        model_weight=weight,
        is_rust_belt_concern=rust_concern,
    )


def filter_listings(
    listings: Iterable[RawListing],
    criteria: FilterCriteria,
    *,
    today_year: int | None = None,
) -> list[tuple[RawListing, FilterResult]]:
    """Return only the passing listings, each paired with its result."""
    paired = ((listing, apply_filters(listing, criteria, today_year=today_year)) for listing in listings)
    return [(listing, result) for listing, result in paired if result.passed]


def get_filter_stats(
    listings: Iterable[RawListing],
    criteria: FilterCriteria,
    *,
    today_year: int | None = None,
) -> dict[str, Any]:
    """Aggregate pass/fail counts and histograms over ``listings``."""
    results = [apply_filters(listing, criteria, today_year=today_year) for listing in listings]
    total = len(results)
    passed = sum(1 for r in results if r.passed)

    rejection_reasons: dict[str, int] = {}
    mileage_ratings: dict[str, int] = {rating: 0 for rating in MILEAGE_RATINGS}
    model_weights: dict[int, int] = {}
    for result in results:
        for reason in result.errors:
            rejection_reasons[reason] = rejection_reasons.get(reason, 0) + 1
        if result.mileage_rating:
            mileage_ratings[result.mileage_rating] += 1
        if result.model_weight is not None:
            model_weights[result.model_weight] = model_weights.get(result.model_weight, 0) + 1

    return {
        "total": total,
        "passed": passed,
        "failed": total - passed,
        "pass_rate": int(passed * 100 / total + 0.5) if total else 0,
        "rejection_reasons": dict(
            sorted(rejection_reasons.items(), key=lambda x: x[1], reverse=True)
        ),
        "mileage_ratings": mileage_ratings,
        "model_weights": dict(sorted(model_weights.items(), reverse=True)),
    }
