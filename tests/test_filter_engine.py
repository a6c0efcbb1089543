"""Filter engine tests: end-to-end scenarios, invariants and batch statistics."""

from __future__ import annotations

import pytest

from autopicks.filtering import (
    DEFAULT_FILTER_CRITERIA,
    apply_filters,
    filter_listings,
    get_filter_stats,
)
from autopicks.filtering.engine import MILEAGE_OVER_LIMIT, RUST_BELT_EXCLUDED


def _apply(listing, today_year, criteria=DEFAULT_FILTER_CRITERIA):
    return apply_filters(listing, criteria, today_year=today_year)


# ── Scenarios ─────────────────────────────────────────────────────


class TestScenarios:
    def test_rav4_within_budget_passes(self, make_listing, today_year):
        result = _apply(make_listing(), today_year)
        assert result.passed is True
        assert result.mileage_rating == "excellent"
        assert result.model_weight == 10
        assert result.errors == ()
        assert result.reasons == ("Mileage rating: excellent", "Model priority: 10/10")

    def test_rav4_at_26500_fails_only_on_price(self, make_listing, today_year):
        result = _apply(make_listing(price=26_500), today_year)
        assert result.passed is False
        assert result.errors == ("Price $26,500 above maximum $20,000",)
        # the remaining stages still report
        assert result.mileage_rating == "excellent"
        assert result.model_weight == 10

    def test_price_above_maximum_reports_everything(self, make_listing, today_year):
        result = _apply(make_listing(price=42_500), today_year)
        assert result.passed is False
        assert "Price $42,500 above maximum $20,000" in result.reasons
        assert "Mileage rating: excellent" in result.reasons
        assert "Model priority: 10/10" in result.reasons

    def test_absolute_mileage_ceiling_fails_even_when_age_ceiling_passes(
        self, make_listing, today_year,
    ):
        # age 10 -> per-age ceiling 200k; absolute ceiling 160k
        result = _apply(make_listing(year=2016, mileage=165_000), today_year)
        assert result.passed is False
        assert result.errors == ("Mileage 165,000 exceeds absolute maximum 160,000",)
        assert result.mileage_rating == "acceptable"

    def test_148k_on_ten_year_old_car_is_within_both_ceilings(self, make_listing, today_year):
        result = _apply(make_listing(year=2016, mileage=148_000), today_year)
        assert result.passed is True
        assert result.mileage_rating == "good"

    def test_rust_belt_origin_passes_with_warning(self, make_listing, today_year):
        result = _apply(make_listing(state_of_origin="OH"), today_year)
        assert result.passed is True
        assert result.is_rust_belt_concern is True
        assert "Warning: Vehicle from rust belt state (OH)" in result.reasons
        assert "Rust belt concern: vehicle from OH" in result.reasons

    def test_rust_belt_hard_exclude(self, make_listing, today_year):
        criteria = DEFAULT_FILTER_CRITERIA.replace(exclude_rust_belt=True)
        result = _apply(make_listing(state_of_origin="OH"), today_year, criteria)
        assert result.passed is False
        assert result.errors == (RUST_BELT_EXCLUDED,)


# ── Invariants ────────────────────────────────────────────────────


_VARIANTS = [
    {},
    {"price": 42_500},
    {"price": 9_000},
    {"year": 2024},
    {"year": 2013},
    {"mileage": 165_000, "year": 2016},
    {"mileage": 130_000},
    {"accident_count": 1},
    {"owner_count": 3},
    {"is_rental": True},
    {"flood_damage": True},
    {"state_of_origin": "MI"},
    {"state_of_origin": "MI", "year": 2024},
    {"make": "Mazda", "model": "CX-5"},
    {"vin": None},
    {"title_status": None, "accident_count": None, "owner_count": None},
]


class TestInvariants:
    @pytest.mark.parametrize("overrides", _VARIANTS)
    def test_pass_iff_no_errors(self, make_listing, today_year, overrides):
        result = _apply(make_listing(**overrides), today_year)
        assert result.passed is (len(result.errors) == 0)
        assert set(result.errors) <= set(result.reasons)
        assert result.reasons, "reasons are never empty"

    @pytest.mark.parametrize("overrides", _VARIANTS)
    def test_idempotent(self, make_listing, today_year, overrides):
        listing = make_listing(**overrides)
        assert _apply(listing, today_year) == _apply(listing, today_year)

    def test_warnings_alone_never_fail(self, make_listing, today_year):
        # outside ideal age band and rust belt origin: two warnings
        result = _apply(make_listing(year=2024, state_of_origin="OH"), today_year)
        assert result.passed is True
        assert sum(r.startswith("Warning: ") for r in result.reasons) == 2

    def test_mileage_beyond_rating_bands(self, make_listing, today_year):
        # age 5: acceptable band tops out at 100k
        result = _apply(make_listing(year=2021, mileage=120_000), today_year)
        assert result.passed is False
        assert result.mileage_rating is None
        assert result.errors == (
            "Mileage 120,000 exceeds maximum 100,000 for 5-year-old vehicle",
            MILEAGE_OVER_LIMIT,
        )

    def test_missing_model_skips_weight(self, make_listing, today_year):
        result = _apply(make_listing(model=None), today_year)
        assert result.passed is True
        assert result.model_weight is None
        assert result.reasons == ("Mileage rating: excellent",)

    def test_missing_mileage_skips_rating(self, make_listing, today_year):
        result = _apply(make_listing(mileage=None), today_year)
        assert result.passed is False
        assert result.mileage_rating is None
        assert result.errors == ("Missing or invalid mileage",)

    def test_to_dict_uses_pass_key(self, make_listing, today_year):
        payload = _apply(make_listing(), today_year).to_dict()
        assert payload["pass"] is True
        assert payload["model_weight"] == 10
        assert payload["errors"] == []


# ── Batch helpers ─────────────────────────────────────────────────


class TestBatchHelpers:
    def test_filter_listings_returns_only_passing_pairs(self, make_listing, today_year):
        listings = [make_listing(), make_listing(price=42_500), make_listing(state_of_origin="OH")]
        passed = filter_listings(listings, DEFAULT_FILTER_CRITERIA, today_year=today_year)
        assert [listing for listing, _ in passed] == [listings[0], listings[2]]
        assert all(result.passed for _, result in passed)

    def test_filter_stats(self, make_listing, today_year):
        listings = [
            make_listing(),
            make_listing(model="CR-V", make="Honda", mileage=110_000, year=2018),
            make_listing(price=42_500),
            make_listing(price=42_500, accident_count=1),
            make_listing(state_of_origin="OH"),
        ]
        stats = get_filter_stats(listings, DEFAULT_FILTER_CRITERIA, today_year=today_year)
        assert stats["total"] == 5
        assert stats["passed"] == 3
        assert stats["failed"] == 2
        assert stats["pass_rate"] == 60
        assert stats["rejection_reasons"] == {
            "Price $42,500 above maximum $20,000": 2,
            "Accident count 1 exceeds maximum 0": 1,
        }
        assert list(stats["rejection_reasons"])[0] == "Price $42,500 above maximum $20,000"
        # warnings never appear in the rejection table
        assert not any("rust belt" in r.lower() for r in stats["rejection_reasons"])
        assert stats["mileage_ratings"] == {"excellent": 4, "good": 1, "acceptable": 0}
        assert stats["model_weights"] == {10: 4, 9: 1}

    def test_filter_stats_empty(self):
        stats = get_filter_stats([], DEFAULT_FILTER_CRITERIA)
        assert stats["total"] == 0
        assert stats["pass_rate"] == 0

    def test_filter_stats_is_reentrant(self, make_listing, today_year):
        listings = [make_listing(), make_listing(price=42_500)]
        first = get_filter_stats(listings, DEFAULT_FILTER_CRITERIA, today_year=today_year)
        second = get_filter_stats(listings, DEFAULT_FILTER_CRITERIA, today_year=today_year)
        assert first == second
