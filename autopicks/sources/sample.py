"""Built-in deterministic listing source.

A fixed mix of vehicles that pass and fail the default criteria, used when
no paid source is configured and by tests. Model years are stored as ages so
the pass/fail mix stays stable from one calendar year to the next.
"""

from __future__ import annotations

import logging
from typing import Any

from autopicks.filtering.criteria import current_year
from autopicks.models import RawListing

logger = logging.getLogger(__name__)

SAMPLE_SOURCE_NAME = "Sample Listings"
SAMPLE_PLATFORM = "Sample"

_SAMPLE_ROWS: tuple[dict[str, Any], ...] = (
    # ── Expected to pass ──
    {
        "vin": "2T3P1RFV8MW112233", "make": "Toyota", "model": "RAV4", "age": 5,
        "price": 16_500, "mileage": 52_000, "body_type": "SUV",
        "location": "San Francisco, CA", "distance": 12, "dealer_name": "Bayside Toyota",
        "title_status": "clean", "accident_count": 0, "owner_count": 1,
        "is_rental": False, "is_fleet": False, "has_lien": False, "flood_damage": False,
        "state_of_origin": "CA",
    },
    {
        "vin": "5J6RW2H85LL004512", "make": "Honda", "model": "CR-V", "age": 6,
        "price": 17_900, "mileage": 68_000, "body_type": "SUV",
        "location": "Phoenix, AZ", "distance": 28, "dealer_name": "Desert Honda",
        "title_status": "clean", "accident_count": 0, "owner_count": 2,
        "is_rental": False, "is_fleet": False, "has_lien": False, "flood_damage": False,
        "state_of_origin": "AZ",
    },
    {
        "vin": "JTNKHMBX3L1067890", "make": "Toyota", "model": "C-HR", "age": 4,
        "price": 15_200, "mileage": 41_000, "body_type": "SUV",
        "location": "Austin, TX", "distance": 35, "dealer_name": "Hill Country Toyota",
        "title_status": "clean", "accident_count": 0, "owner_count": 1,
        "is_rental": False, "is_fleet": False, "has_lien": False, "flood_damage": False,
        "state_of_origin": "TX",
    },
    {
        "vin": "3CZRU6H71KM715203", "make": "Honda", "model": "HR-V", "age": 7,
        "price": 13_400, "mileage": 88_000, "body_type": "SUV",
        "location": "Charlotte, NC", "distance": 45, "dealer_name": "Queen City Honda",
        "title_status": "clean", "accident_count": 0, "owner_count": 2,
        "is_rental": False, "is_fleet": False, "has_lien": False, "flood_damage": False,
        "state_of_origin": "NC",
    },
    {
        "vin": "5TDJZRFH4JS552781", "make": "Toyota", "model": "Highlander", "age": 8,
        "price": 19_500, "mileage": 112_000, "body_type": "SUV",
        "location": "Tampa, FL", "distance": 60, "dealer_name": "Gulf Coast Toyota",
        "title_status": "clean", "accident_count": 0, "owner_count": 2,
        "is_rental": False, "is_fleet": False, "has_lien": False, "flood_damage": False,
        "state_of_origin": "FL",
    },
    {
        # rust belt origin: passes with a warning under the default criteria
        "vin": "2HGFC2F59KH530418", "make": "Honda", "model": "Civic", "age": 6,
        "price": 14_800, "mileage": 70_000, "body_type": "Sedan",
        "location": "Columbus, OH", "distance": 18, "dealer_name": "Buckeye Honda",
        "title_status": "clean", "accident_count": 0, "owner_count": 1,
        "is_rental": False, "is_fleet": False, "has_lien": False, "flood_damage": False,
        "state_of_origin": "OH",
    },
    # ── Expected to fail ──
    {
        "vin": "2T3W1RFV6NC187654", "make": "Toyota", "model": "RAV4", "age": 3,
        "price": 26_500, "mileage": 28_000, "body_type": "SUV",
        "location": "San Jose, CA", "distance": 40, "dealer_name": "Capitol Toyota",
        "title_status": "clean", "accident_count": 0, "owner_count": 1,
        "is_rental": False, "is_fleet": False, "has_lien": False, "flood_damage": False,
        "state_of_origin": "CA",
    },
    {
        "vin": "4T1B11HK5KU221067", "make": "Toyota", "model": "Camry", "age": 6,
        "price": 15_900, "mileage": 64_000, "body_type": "Sedan",
        "location": "Denver, CO", "distance": 22, "dealer_name": "Front Range Toyota",
        "title_status": "clean", "accident_count": 1, "owner_count": 1,
        "is_rental": False, "is_fleet": False, "has_lien": False, "flood_damage": False,
        "state_of_origin": "CO",
    },
    {
        "vin": "5FNYF6H53MB034219", "make": "Honda", "model": "Pilot", "age": 5,
        "price": 19_900, "mileage": 61_000, "body_type": "SUV",
        "location": "Las Vegas, NV", "distance": 30, "dealer_name": "Strip Honda",
        "title_status": "clean", "accident_count": 0, "owner_count": 1,
        "is_rental": True, "is_fleet": False, "has_lien": False, "flood_damage": False,
        "state_of_origin": "NV",
    },
    {
        "vin": "5YFBURHE7KP908812", "make": "Toyota", "model": "Corolla", "age": 7,
        "price": 11_200, "mileage": 79_000, "body_type": "Sedan",
        "location": "Portland, OR", "distance": 25, "dealer_name": "Rose City Toyota",
        "title_status": "clean", "accident_count": 0, "owner_count": 3,
        "is_rental": False, "is_fleet": False, "has_lien": False, "flood_damage": False,
        "state_of_origin": "OR",
    },
    {
        "vin": "1HGCV1F34JA113579", "make": "Honda", "model": "Accord", "age": 8,
        "price": 12_500, "mileage": 165_000, "body_type": "Sedan",
        "location": "Sacramento, CA", "distance": 55, "dealer_name": "Valley Honda",
        "title_status": "clean", "accident_count": 0, "owner_count": 2,
        "is_rental": False, "is_fleet": False, "has_lien": False, "flood_damage": False,
        "state_of_origin": "CA",
    },
    {
        "vin": "5N1AT2MV1LC742096", "make": "Nissan", "model": "Rogue", "age": 6,
        "price": 14_000, "mileage": 60_000, "body_type": "SUV",
        "location": "Oakland, CA", "distance": 10, "dealer_name": "East Bay Nissan",
        "title_status": "clean", "accident_count": 0, "owner_count": 1,
        "is_rental": False, "is_fleet": False, "has_lien": False, "flood_damage": False,
        "state_of_origin": "CA",
    },
    {
        "vin": "JTEBU5JR2H5420871", "make": "Toyota", "model": "4Runner", "age": 9,
        "price": 18_700, "mileage": 120_000, "body_type": "SUV",
        "location": "Houston, TX", "distance": 80, "dealer_name": "Bayou Toyota",
        "title_status": "salvage", "accident_count": 0, "owner_count": 2,
        "is_rental": False, "is_fleet": False, "has_lien": False, "flood_damage": True,
        "state_of_origin": "TX",
    },
    {
        "vin": "JTEAAAAH3MJ012744", "make": "Toyota", "model": "Venza", "age": 4,
        "price": 19_800, "mileage": 58_000, "body_type": "SUV",
        "location": "Seattle, WA", "distance": 33, "dealer_name": "Puget Sound Toyota",
        "title_status": "clean", "accident_count": 0, "owner_count": 1,
        "is_rental": False, "is_fleet": True, "has_lien": False, "flood_damage": False,
        "state_of_origin": "WA",
    },
    # ── Re-listing of the first vehicle by another dealer (deduplicated on store) ──
    {
        "vin": "2T3P1RFV8MW112233", "make": "Toyota", "model": "RAV4", "age": 5,
        "price": 16_300, "mileage": 52_400, "body_type": "SUV",
        "location": "Daly City, CA", "distance": 9, "dealer_name": "Peninsula Auto Sales",
        "title_status": "clean", "accident_count": 0, "owner_count": 1,
        "is_rental": False, "is_fleet": False, "has_lien": False, "flood_damage": False,
        "state_of_origin": "CA",
    },
)


def sample_listings(*, today_year: int | None = None) -> list[RawListing]:
    """Materialize the sample rows for ``today_year`` (defaults to the current year)."""
    year_now = today_year if today_year is not None else current_year()
    listings: list[RawListing] = []
    for index, row in enumerate(_SAMPLE_ROWS, start=1):
        data = {k: v for k, v in row.items() if k != "age"}
        data["year"] = year_now - row["age"]
        data["source"] = SAMPLE_PLATFORM
        data["listing_id"] = f"sample-{index:03d}"
        data["url"] = f"https://listings.example.com/sample-{index:03d}"
        listings.append(RawListing.from_dict(data))
    return listings


class SampleListingSource:
    """Serves the built-in sample listings; no network, no cost."""

    name = SAMPLE_SOURCE_NAME
    cost_per_call = 0.0

    def __init__(self, *, today_year: int | None = None) -> None:
        self._today_year = today_year

    async def fetch(self) -> list[RawListing]:
        listings = sample_listings(today_year=self._today_year)
        logger.info("Sample source produced %d listings", len(listings))
        return listings
