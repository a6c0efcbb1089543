"""Test doubles and payload builders shared across test modules."""

from __future__ import annotations

from typing import Any, Iterable

from autopicks.models import RawListing

TODAY = 2026

RAV4_VIN = "2T3P1RFV8MW112233"


def base_listing() -> RawListing:
    """A listing that passes every default rule when evaluated in ``TODAY``."""
    return RawListing(
        make="Toyota",
        model="RAV4",
        year=2021,
        price=16_500,
        mileage=28_000,
        location="San Francisco, CA",
        url="https://listings.example.com/rav4",
        source="Sample",
        vin=RAV4_VIN,
        distance=15.0,
        title_status="clean",
        accident_count=0,
        owner_count=1,
        is_rental=False,
        is_fleet=False,
        has_lien=False,
        flood_damage=False,
        state_of_origin="CA",
    )


def vpic_payload(
    make: str | None = "TOYOTA",
    model: str | None = "RAV4",
    year: int | str | None = 2021,
    *,
    error_code: str = "0",
    error_text: str = "0 - VIN decoded clean. Check Digit (9th position) is correct",
) -> dict[str, Any]:
    """Minimal DecodeVin payload in vPIC's ``{Variable, Value}`` shape."""
    return {
        "Count": 8,
        "Message": "Results returned successfully",
        "Results": [
            {"Variable": "Error Code", "Value": error_code},
            {"Variable": "Error Text", "Value": error_text},
            {"Variable": "Make", "Value": make},
            {"Variable": "Model", "Value": model},
            {"Variable": "Model Year", "Value": None if year is None else str(year)},
            {"Variable": "Body Class", "Value": "Sport Utility Vehicle (SUV)/Multi-Purpose Vehicle (MPV)"},
            {"Variable": "Trim", "Value": "XLE"},
            {"Variable": "Manufacturer Name", "Value": "TOYOTA MOTOR MANUFACTURING, KENTUCKY, INC."},
            {"Variable": "Plant Country", "Value": "UNITED STATES (USA)"},
            {"Variable": "Vehicle Type", "Value": "MULTIPURPOSE PASSENGER VEHICLE (MPV)"},
            {"Variable": "Fuel Type - Primary", "Value": "Gasoline"},
            {"Variable": "Drive Type", "Value": "AWD/All-Wheel Drive"},
        ],
    }


class FakeNHTSAClient:
    """Stands in for :class:`NHTSAClient`; serves canned payloads per VIN.

    VINs listed in ``cached`` behave like entries already in the client's
    TTL cache.
    """

    def __init__(
        self,
        payloads: dict[str, dict[str, Any]] | None = None,
        *,
        default: dict[str, Any] | None = None,
        error: Exception | None = None,
        cached: Iterable[str] = (),
    ) -> None:
        self.payloads = payloads or {}
        self.default = default
        self.error = error
        self.cached = set(cached)
        self.calls: list[str] = []

    def is_cached(self, vin: str) -> bool:
        return vin in self.cached

    async def decode_vin(self, vin: str) -> dict[str, Any]:
        self.calls.append(vin)
        if self.error is not None:
            raise self.error
        if vin in self.payloads:
            return self.payloads[vin]
        return self.default if self.default is not None else {"Results": []}


class RecordingSleep:
    """Async ``sleep`` replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
