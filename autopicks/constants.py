"""Shared constants used across the filtering, scoring and VIN modules.

VIN syntax, rust-belt states, model weights and tier cut-offs live here.
"""

from __future__ import annotations

VIN_LENGTH = 17
VIN_EXCLUDED_CHARS = frozenset("IOQ")

RUST_BELT_STATES: frozenset[str] = frozenset({
    "OH", "MI", "WI", "IL", "IN", "MN", "IA",
    "PA", "NY", "MA", "CT", "VT", "NH", "ME",
})

ALLOWED_MAKES: tuple[str, ...] = ("Toyota", "Honda")

MODEL_WEIGHTS: dict[str, int] = {
    "RAV4": 10,
    "C-HR": 9,
    "CR-V": 9,
    "HR-V": 8,
    "Highlander": 8,
    "4Runner": 7,
    "Venza": 7,
    "Pilot": 6,
}
DEFAULT_MODEL_WEIGHT = 5

MILEAGE_EXCELLENT = "excellent"
MILEAGE_GOOD = "good"
MILEAGE_ACCEPTABLE = "acceptable"
MILEAGE_RATINGS = (MILEAGE_EXCELLENT, MILEAGE_GOOD, MILEAGE_ACCEPTABLE)

TIER_TOP_PICK = "top_pick"
TIER_GOOD_BUY = "good_buy"
TIER_CAUTION = "caution"
TOP_PICK_MIN_SCORE = 80
GOOD_BUY_MIN_SCORE = 65

# Composite priority score weights; they sum to 100.
SCORING_WEIGHTS: dict[str, int] = {
    "title": 15,
    "mileage": 25,
    "price": 20,
    "distance": 10,
    "model": 15,
    "condition": 15,
}

WARNING_PREFIX = "Warning: "
MEETS_ALL_CRITERIA = "Vehicle meets all filter criteria"
