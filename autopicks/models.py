"""Listing, vehicle and audit-log records shared by every pipeline stage."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any

from autopicks.normalization import (
    clean_text,
    normalize_body_type,
    normalize_make,
    normalize_state,
    normalize_vin,
    parse_bool,
    parse_int,
    parse_price,
)

# Adapter spellings accepted by ``RawListing.from_dict``.
_ALIASES: dict[str, str] = {
    "model_year": "year",
    "asking_price": "price",
    "list_price": "price",
    "miles": "mileage",
    "odometer": "mileage",
    "current_location": "location",
    "distance_miles": "distance",
    "source_url": "url",
    "vdp_url": "url",
    "source_platform": "source",
    "source_listing_id": "listing_id",
    "images_url": "images",
    "bodyType": "body_type",
    "dealerName": "dealer_name",
    "titleStatus": "title_status",
}


@dataclass(frozen=True)
class RawListing:
    """A candidate vehicle as handed over by a data-source adapter.

    Optional history fields stay ``None`` when the source does not report
    them; eligibility rules skip absent fields instead of assuming the worst.
    """

    make: str | None
    model: str | None
    year: int | None
    price: float | None
    mileage: int | None
    location: str = ""
    url: str = ""
    source: str = ""
    vin: str | None = None
    body_type: str | None = None
    dealer_name: str | None = None
    distance: float | None = None
    listing_id: str | None = None
    images: tuple[str, ...] = ()
    title_status: str | None = None
    accident_count: int | None = None
    owner_count: int | None = None
    is_rental: bool | None = None
    is_fleet: bool | None = None
    has_lien: bool | None = None
    flood_damage: bool | None = None
    state_of_origin: str | None = None
    is_rust_belt_state: bool | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RawListing:
        """Coerce a loosely-typed adapter payload into a ``RawListing``."""
        data: dict[str, Any] = {}
        for key, value in raw.items():
            data.setdefault(_ALIASES.get(key, key), value)

        images = data.get("images") or ()
        if not isinstance(images, (list, tuple)):
            images = ()

        title_status = clean_text(data.get("title_status"))
        return cls(
            make=normalize_make(data.get("make")),
            model=clean_text(data.get("model")),
            year=parse_int(data.get("year")),
            price=parse_price(data.get("price")),
            mileage=parse_int(data.get("mileage")),
            location=clean_text(data.get("location")) or "",
            url=clean_text(data.get("url")) or "",
            source=clean_text(data.get("source")) or "",
            vin=normalize_vin(data.get("vin")),
            body_type=normalize_body_type(data.get("body_type")),
            dealer_name=clean_text(data.get("dealer_name")),
            distance=parse_price(data.get("distance")),
            listing_id=clean_text(data.get("listing_id")),
            images=tuple(str(i) for i in images if i),
            title_status=title_status.lower() if title_status else None,
            accident_count=parse_int(data.get("accident_count")),
            owner_count=parse_int(data.get("owner_count")),
            is_rental=parse_bool(data.get("is_rental")),
            is_fleet=parse_bool(data.get("is_fleet")),
            has_lien=parse_bool(data.get("has_lien")),
            flood_damage=parse_bool(data.get("flood_damage")),
            state_of_origin=normalize_state(data.get("state_of_origin")),
            is_rust_belt_state=parse_bool(data.get("is_rust_belt_state")),
        )

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["images"] = list(self.images)
        return d

    def label(self) -> str:
        """Short human label used in log lines."""
        return f"{self.year} {self.make} {self.model} ({self.vin or 'no VIN'})"


@dataclass
class Vehicle:
    """A curated listing as persisted; ``vin`` is the natural key."""

    vin: str
    make: str
    model: str
    year: int
    price: float
    mileage: int
    current_location: str = ""
    source_url: str = ""
    source_platform: str = ""
    body_type: str | None = None
    dealer_name: str | None = None
    distance_miles: float | None = None
    source_listing_id: str | None = None
    images_url: list[str] = field(default_factory=list)

    title_status: str | None = None
    accident_count: int | None = None
    owner_count: int | None = None
    is_rental: bool | None = None
    is_fleet: bool | None = None
    has_lien: bool | None = None
    flood_damage: bool | None = None
    state_of_origin: str | None = None
    is_rust_belt_state: bool = False

    mileage_rating: str | None = None
    model_weight: int | None = None
    priority_score: int = 0
    quality_tier: str = ""
    ai_summary: str = ""
    score_breakdown: dict[str, dict[str, Any]] = field(default_factory=dict)
    flag_rust_concern: bool = False
    vin_decode_data: dict[str, Any] | None = None

    reviewed_by_user: bool = False
    user_rating: int | None = None
    user_notes: str | None = None

    id: str | None = None
    first_seen_at: str | None = None
    last_updated_at: str | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))


@dataclass
class SearchLog:
    """One audit row per pipeline run. Written once, never updated."""

    search_date: str
    total_listings_fetched: int = 0
    listings_after_basic_filter: int = 0
    listings_after_vin_validation: int = 0
    final_curated_count: int = 0
    api_calls_made: int = 0
    api_cost_usd: float = 0.0
    execution_time_seconds: float = 0.0
    error_count: int = 0
    error_details: dict[str, Any] | None = None
    data_source: str = ""
    id: int | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
