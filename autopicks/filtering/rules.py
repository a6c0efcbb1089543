"""Pure scoring rules: rust-belt lookup, mileage rating, per-model weight."""

from __future__ import annotations

from typing import Iterable, Mapping

from autopicks.constants import (
    DEFAULT_MODEL_WEIGHT,
    MILEAGE_ACCEPTABLE,
    MILEAGE_EXCELLENT,
    MILEAGE_GOOD,
)
from autopicks.filtering.criteria import FilterCriteria, current_year


def vehicle_age(year: int, *, today_year: int | None = None) -> int:
    """Raw age in years; may be zero or negative for new/future model years."""
    return (today_year if today_year is not None else current_year()) - year


def effective_age(year: int, *, today_year: int | None = None) -> int:
    """Age floored at one year so per-year mileage ceilings never collapse to zero."""
    return max(1, vehicle_age(year, today_year=today_year))


def is_rust_belt(state: str | None, rust_belt_states: Iterable[str]) -> bool:
    """True when ``state`` (any case) is one of ``rust_belt_states``."""
    if not state or not state.strip():
        return False
    return state.strip().upper() in {s.upper() for s in rust_belt_states}


def rate_mileage(
    mileage: int,
    year: int,
    criteria: FilterCriteria,
    *,
    today_year: int | None = None,
) -> str | None:
    """Classify mileage relative to age.

    The flat "excellent" threshold is checked first, so an older car with
    low absolute mileage still rates excellent. ``None`` means the mileage
    exceeds every threshold and the listing is ineligible.
    """
    age = effective_age(year, today_year=today_year)
    good_max = age * criteria.mileage_per_year_ideal
    acceptable_max = age * criteria.mileage_per_year_max

    if mileage < criteria.excellent_mileage_threshold:
        return MILEAGE_EXCELLENT
    if mileage <= good_max:
        return MILEAGE_GOOD
    if mileage <= acceptable_max:
        return MILEAGE_ACCEPTABLE
    return None


def model_weight(model: str | None, weights: Mapping[str, int]) -> int:
    """Per-model weight on a 1-10 scale; unknown models get the default (5).

    Not to be confused with the 0-100 composite priority score computed in
    :mod:`autopicks.scoring`.
    """
    if not model or not model.strip():
        return DEFAULT_MODEL_WEIGHT
    name = model.strip()
    if name in weights:
        return weights[name]
    lowered = name.lower()
    for key, weight in weights.items():
        if key.lower() == lowered:
            return weight
    return DEFAULT_MODEL_WEIGHT
