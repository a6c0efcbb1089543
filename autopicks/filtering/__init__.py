"""Eligibility filtering: criteria, pure rules, validator and engine."""

from autopicks.filtering.criteria import (
    DEFAULT_FILTER_CRITERIA,
    FilterCriteria,
    current_year,
)
from autopicks.filtering.engine import (
    FilterResult,
    apply_filters,
    filter_listings,
    get_filter_stats,
)
from autopicks.filtering.rules import is_rust_belt, model_weight, rate_mileage
from autopicks.filtering.validator import ValidationResult, validate_listing

__all__ = [
    "DEFAULT_FILTER_CRITERIA",
    "FilterCriteria",
    "FilterResult",
    "ValidationResult",
    "apply_filters",
    "current_year",
    "filter_listings",
    "get_filter_stats",
    "is_rust_belt",
    "model_weight",
    "rate_mileage",
    "validate_listing",
]
