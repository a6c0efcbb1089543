"""Hard eligibility rules for a single listing.

Every rule runs regardless of earlier failures so callers always see the
complete set of reasons. Optional history fields that a source did not
report (``None``) are skipped rather than treated as violations.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from autopicks.filtering.criteria import FilterCriteria
from autopicks.filtering.rules import effective_age, is_rust_belt, vehicle_age
from autopicks.models import RawListing


@dataclass
class ValidationResult:
    """Accumulates errors (fatal) and warnings (informational)."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def error(self, message: str) -> None:
        self.errors.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)


def _money(value: float) -> str:
    return f"${value:,.0f}"


def _check_vin(listing: RawListing, criteria: FilterCriteria, result: ValidationResult) -> None:
    if criteria.require_vin and not listing.vin:
        result.error("Missing VIN")


def _check_make(listing: RawListing, criteria: FilterCriteria, result: ValidationResult) -> None:
    if not listing.make:
        result.error("Missing make")
        return
    allowed = {m.lower() for m in criteria.allowed_makes}
    if listing.make.lower() not in allowed:
        result.error(
            f"Make '{listing.make}' not allowed "
            f"(must be {' or '.join(criteria.allowed_makes)})"
        )


def _check_price(listing: RawListing, criteria: FilterCriteria, result: ValidationResult) -> None:
    price = listing.price
    if price is None:
        result.error("Missing or invalid price")
        return
    if price < criteria.price_min:
        result.error(f"Price {_money(price)} below minimum {_money(criteria.price_min)}")
    if price > criteria.price_max:
        result.error(f"Price {_money(price)} above maximum {_money(criteria.price_max)}")


def _check_year(
    listing: RawListing,
    criteria: FilterCriteria,
    result: ValidationResult,
    today_year: int | None,
) -> None:
    year = listing.year
    if year is None:
        result.error("Missing or invalid year")
        return
    age = vehicle_age(year, today_year=today_year)
    if year < criteria.year_min:
        result.error(f"Year {year} below minimum {criteria.year_min}")
    if year > criteria.year_max:
        result.error(f"Year {year} above maximum {criteria.year_max}")
    if age > criteria.max_age_years:
        result.error(
            f"Vehicle age {age} years exceeds maximum {criteria.max_age_years} years"
        )
    if age < criteria.ideal_age_min or age > criteria.ideal_age_max:
        result.warn(
            f"Vehicle age {age} years outside ideal range "
            f"{criteria.ideal_age_min}-{criteria.ideal_age_max} years"
        )


def _check_mileage(
    listing: RawListing,
    criteria: FilterCriteria,
    result: ValidationResult,
    today_year: int | None,
) -> None:
    mileage = listing.mileage
    if mileage is None:
        result.error("Missing or invalid mileage")
        return
    if mileage > criteria.mileage_absolute_max:
        result.error(
            f"Mileage {mileage:,} exceeds absolute maximum {criteria.mileage_absolute_max:,}"
        )
    if listing.year is None:
        return
    age = effective_age(listing.year, today_year=today_year)
    ceiling = age * criteria.mileage_per_year_max
    if mileage > ceiling:
        result.error(
            f"Mileage {mileage:,} exceeds maximum {ceiling:,} for {age}-year-old vehicle"
        )


def _check_history(listing: RawListing, criteria: FilterCriteria, result: ValidationResult) -> None:
    if listing.title_status and listing.title_status.lower() != criteria.title_status.lower():
        result.error(
            f"Title status '{listing.title_status}' must be '{criteria.title_status}'"
        )
    if listing.accident_count is not None and listing.accident_count > criteria.max_accidents:
        result.error(
            f"Accident count {listing.accident_count} exceeds maximum {criteria.max_accidents}"
        )
    if listing.owner_count is not None and listing.owner_count > criteria.max_owners:
        result.error(
            f"Owner count {listing.owner_count} exceeds maximum {criteria.max_owners}"
        )
    if criteria.exclude_rental and listing.is_rental:
        result.error("Rental vehicles excluded")
    if criteria.exclude_fleet and listing.is_fleet:
        result.error("Fleet vehicles excluded")
    if criteria.exclude_liens and listing.has_lien:
        result.error("Vehicles with liens excluded")
    if listing.flood_damage:
        result.error("Flood damage detected")


def validate_listing(
    listing: RawListing,
    criteria: FilterCriteria,
    *,
    today_year: int | None = None,
) -> ValidationResult:
    """Run every must-have rule against ``listing``.

    Geography only ever produces a warning here; the hard rust-belt switch
    is applied by :func:`autopicks.filtering.engine.apply_filters`.
    """
    result = ValidationResult()
    _check_vin(listing, criteria, result)
    _check_make(listing, criteria, result)
    _check_price(listing, criteria, result)
    _check_year(listing, criteria, result, today_year)
    _check_mileage(listing, criteria, result, today_year)
    _check_history(listing, criteria, result)

    if is_rust_belt(listing.state_of_origin, criteria.rust_belt_states):
        result.warn(f"Vehicle from rust belt state ({listing.state_of_origin})")

    return result
