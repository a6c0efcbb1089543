"""Filter criteria value object and the canonical default instance."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

from autopicks.constants import ALLOWED_MAKES, MODEL_WEIGHTS, RUST_BELT_STATES


def current_year() -> int:
    return datetime.now(timezone.utc).year


@dataclass(frozen=True)
class FilterCriteria:
    """Immutable eligibility configuration.

    Every filtering call is a pure function of ``(listing, criteria)``.
    Build variants with :meth:`replace`; the default is never mutated.
    """

    # Price
    price_min: float = 10_000
    price_max: float = 20_000

    # Year / age
    year_min: int = 2015
    year_max: int = field(default_factory=current_year)
    max_age_years: int = 10
    ideal_age_min: int = 4
    ideal_age_max: int = 7

    # Mileage
    mileage_absolute_max: int = 160_000
    mileage_per_year_ideal: int = 15_000
    mileage_per_year_max: int = 20_000
    excellent_mileage_threshold: int = 100_000

    # Title & history
    title_status: str = "clean"
    max_accidents: int = 0
    max_owners: int = 2
    exclude_rental: bool = True
    exclude_fleet: bool = True
    exclude_liens: bool = True
    require_vin: bool = True

    # Geography
    exclude_rust_belt: bool = False
    rust_belt_states: frozenset[str] = RUST_BELT_STATES

    # Brand & model
    allowed_makes: tuple[str, ...] = ALLOWED_MAKES
    model_weights: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType(dict(MODEL_WEIGHTS))
    )

    def __post_init__(self) -> None:
        # Freeze collection fields so callers cannot mutate shared config.
        object.__setattr__(
            self, "rust_belt_states", frozenset(s.upper() for s in self.rust_belt_states)
        )
        object.__setattr__(self, "allowed_makes", tuple(self.allowed_makes))
        if not isinstance(self.model_weights, MappingProxyType):
            object.__setattr__(
                self, "model_weights", MappingProxyType(dict(self.model_weights))
            )
        for model, weight in self.model_weights.items():
            if not 1 <= weight <= 10:
                raise ValueError(f"model weight for {model!r} must be 1-10, got {weight}")
        if self.price_min > self.price_max:
            raise ValueError("price_min must not exceed price_max")
        if self.year_min > self.year_max:
            raise ValueError("year_min must not exceed year_max")

    def replace(self, **overrides: Any) -> FilterCriteria:
        """Return a copy with ``overrides`` applied."""
        return replace(self, **overrides)


DEFAULT_FILTER_CRITERIA = FilterCriteria()
