"""Auto.dev listing source: one search per configured ZIP code."""

from __future__ import annotations

import logging
from typing import Any

from autopicks.clients.autodev import SHARED_AUTODEV_CACHE, AutoDevClient
from autopicks.clients.cache import TTLCache
from autopicks.filtering.criteria import DEFAULT_FILTER_CRITERIA, FilterCriteria
from autopicks.models import RawListing

logger = logging.getLogger(__name__)

AUTODEV_SOURCE_NAME = "Auto.dev API"
AUTODEV_PLATFORM = "Auto.dev"


def _first(*values: Any) -> Any:
    for value in values:
        if value not in (None, ""):
            return value
    return None


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def normalize_auto_dev_listing(raw: dict[str, Any]) -> RawListing | None:
    """Map an Auto.dev record (flat or nested ``vehicle``/``retailListing``) onto a listing.

    Returns ``None`` for records without a VIN; history fields the record does
    not carry stay unset.
    """
    vin = _first(raw.get("vin"), _as_dict(raw.get("vehicle")).get("vin"))
    if not vin:
        return None

    vehicle = _as_dict(raw.get("vehicle"))
    retail = _as_dict(raw.get("retailListing"))
    dealer = _as_dict(raw.get("dealer"))
    history = _as_dict(raw.get("history"))

    city = _first(retail.get("city"), dealer.get("city"), raw.get("city")) or ""
    state = _first(retail.get("state"), dealer.get("state"), raw.get("state")) or ""
    location = f"{city}, {state}" if city and state else (city or state)

    photos = _first(retail.get("photos"), raw.get("photoUrls"), raw.get("images")) or []
    if isinstance(photos, str):
        photos = [photos]
    primary_image = _first(retail.get("primaryImage"), raw.get("primaryPhotoUrl"))
    if primary_image and primary_image not in photos:
        photos = [primary_image, *photos]

    owner_count = _first(history.get("ownerCount"), raw.get("ownerCount"))
    if owner_count is None and history.get("oneOwner") is True:
        owner_count = 1

    usage = str(_first(history.get("usageType"), raw.get("usageType")) or "").lower()

    return RawListing.from_dict({
        "vin": vin,
        "make": _first(vehicle.get("make"), raw.get("make")),
        "model": _first(vehicle.get("model"), raw.get("model")),
        "year": _first(vehicle.get("year"), raw.get("year")),
        "price": _first(retail.get("price"), raw.get("priceUnformatted"), raw.get("price")),
        "mileage": _first(
            retail.get("miles"), raw.get("mileageUnformatted"), raw.get("mileage"),
        ),
        "body_type": _first(
            vehicle.get("bodyStyle"), raw.get("bodyType"), raw.get("bodyStyle"),
        ),
        "location": location,
        "distance": _first(raw.get("distanceFromOrigin"), raw.get("distance")),
        "dealer_name": _first(retail.get("dealer"), dealer.get("name"), raw.get("dealerName")),
        "url": _first(
            retail.get("vdp"), raw.get("clickoffUrl"), raw.get("vdpUrl"), raw.get("url"),
        ) or "",
        "images": [p for p in photos if isinstance(p, str)],
        "source": AUTODEV_PLATFORM,
        "listing_id": _first(raw.get("id"), raw.get("listingId")),
        "title_status": _first(history.get("titleStatus"), raw.get("titleStatus")),
        "accident_count": _first(history.get("accidentCount"), raw.get("accidentCount")),
        "owner_count": owner_count,
        "is_rental": True if usage == "rental" else _first(raw.get("isRental")),
        "is_fleet": True if usage == "fleet" else _first(raw.get("isFleet")),
        "has_lien": _first(history.get("lien"), raw.get("hasLien")),
        "flood_damage": _first(history.get("floodDamage"), raw.get("floodDamage")),
        "state_of_origin": state or None,
    })


class AutoDevListingSource:
    """Queries Auto.dev for every allowed make around each configured ZIP."""

    name = AUTODEV_SOURCE_NAME
    cost_per_call = 0.0  # free tier

    def __init__(
        self,
        api_key: str,
        *,
        zip_codes: list[str],
        radius_miles: int = 30,
        criteria: FilterCriteria = DEFAULT_FILTER_CRITERIA,
        timeout: float = 30.0,
        cache: TTLCache | None = None,
        client: AutoDevClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.zip_codes = list(zip_codes)
        self.radius_miles = radius_miles
        self.criteria = criteria
        self.calls_made = 0
        self._timeout = timeout
        self._cache = cache if cache is not None else SHARED_AUTODEV_CACHE
        self._client = client

    async def _search(self, client: AutoDevClient) -> list[RawListing]:
        listings: list[RawListing] = []
        for zip_code in self.zip_codes:
            for make in self.criteria.allowed_makes:
                logger.info("Fetching %s listings near %s", make, zip_code)
                records = await client.search_listings(
                    zip_code=zip_code,
                    distance_miles=self.radius_miles,
                    make=make,
                    year_min=self.criteria.year_min,
                    price_min=int(self.criteria.price_min),
                    price_max=int(self.criteria.price_max),
                )
                self.calls_made += 1
                for record in records:
                    listing = normalize_auto_dev_listing(record)
                    if listing is not None:
                        listings.append(listing)
        return listings

    async def fetch(self) -> list[RawListing]:
        self.calls_made = 0
        if self._client is not None:
            return await self._search(self._client)
        async with AutoDevClient(self.api_key, cache=self._cache, timeout=self._timeout) as client:
            return await self._search(client)
