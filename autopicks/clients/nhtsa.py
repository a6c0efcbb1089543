"""Async NHTSA vPIC client and the VIN validator built on top of it.

The vPIC API is free and requires no authentication, but it asks callers to
be gentle: :class:`VinValidator` spaces out network calls with a fixed
minimum interval.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable

import aiohttp

from autopicks.clients.cache import TTLCache
from autopicks.constants import VIN_EXCLUDED_CHARS, VIN_LENGTH
from autopicks.normalization import parse_int

logger = logging.getLogger(__name__)

_CACHE_TTL_SECONDS = 86_400  # decoded VIN data does not change
DEFAULT_VIN_TIMEOUT_SECONDS = 10.0
DEFAULT_MIN_INTERVAL_SECONDS = 0.25

SHARED_NHTSA_CACHE = TTLCache(ttl=_CACHE_TTL_SECONDS)

_DECODE_PARAMS = {"format": "json"}

# vPIC variable name -> VinDecodeResult attribute
_DECODE_FIELDS: dict[str, str] = {
    "Make": "make",
    "Model": "model",
    "Body Class": "body_class",
    "Trim": "trim",
    "Engine Model": "engine_model",
    "Fuel Type - Primary": "fuel_type",
    "Drive Type": "drive_type",
    "Manufacturer Name": "manufacturer",
    "Plant Country": "plant_country",
    "Vehicle Type": "vehicle_type",
}


def _cache_key(url: str, params: dict[str, str] | None) -> str:
    return f"{url}|{sorted((params or {}).items())}"


class NHTSAClientError(RuntimeError):
    """Raised for vPIC request failures with structured metadata."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status = status
        self.details = details or {}


class NHTSAClient:
    """Async client for the vPIC VIN decode endpoint."""

    VPIC_BASE = "https://vpic.nhtsa.dot.gov/api/vehicles"

    def __init__(
        self,
        *,
        cache: TTLCache | None = None,
        timeout: float = DEFAULT_VIN_TIMEOUT_SECONDS,
    ) -> None:
        self.session: aiohttp.ClientSession | None = None
        self._cache = cache if cache is not None else TTLCache(ttl=_CACHE_TTL_SECONDS)
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def __aenter__(self) -> NHTSAClient:
        self.session = aiohttp.ClientSession(headers={"Accept": "application/json"})
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self.session:
            await self.session.close()

    async def _request(self, url: str, params: dict[str, str] | None = None) -> Any:
        """GET with one retry on 5xx and transient network failures."""
        if not self.session:
            raise RuntimeError("Client not entered as context manager")

        cache_key = _cache_key(url, params)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        last_exc: NHTSAClientError | None = None
        for attempt in range(2):  # 1 retry
            try:
                async with self.session.get(url, params=params, timeout=self._timeout) as resp:
                    if resp.status >= 400:
                        last_exc = NHTSAClientError(
                            f"NHTSA API error: HTTP {resp.status}",
                            code="HTTP_ERROR",
                            status=resp.status,
                            details={"url": url},
                        )
                        if resp.status >= 500 and attempt == 0:
                            continue
                        raise last_exc
                    data = await resp.json()
                    self._cache.set(cache_key, data)
                    return data
            except TimeoutError as exc:
                last_exc = NHTSAClientError(
                    "NHTSA request timed out.", code="TIMEOUT", details={"url": url}
                )
                last_exc.__cause__ = exc
            except aiohttp.ClientError as exc:
                last_exc = NHTSAClientError(
                    f"NHTSA request failed: {exc}",
                    code="NETWORK_ERROR",
                    details={"url": url, "error": str(exc)},
                )
                last_exc.__cause__ = exc
            if attempt == 0:
                logger.debug("Retrying NHTSA request %s after: %s", url, last_exc)

        raise last_exc  # type: ignore[misc]

    def _decode_url(self, vin: str) -> str:
        return f"{self.VPIC_BASE}/DecodeVin/{vin}"

    def is_cached(self, vin: str) -> bool:
        """True when a DecodeVin payload for ``vin`` would be served without a request."""
        return self._cache.get(_cache_key(self._decode_url(vin), _DECODE_PARAMS)) is not None

    async def decode_vin(self, vin: str) -> dict[str, Any]:
        """Return the raw DecodeVin payload (``{"Results": [{Variable, Value}, ...]}``)."""
        data = await self._request(self._decode_url(vin), params=dict(_DECODE_PARAMS))
        return data if isinstance(data, dict) else {"Results": []}


# ── Results ─────────────────────────────────────────────────────────


@dataclass
class VinDecodeResult:
    vin: str
    valid: bool
    make: str | None = None
    model: str | None = None
    year: int | None = None
    body_class: str | None = None
    trim: str | None = None
    engine_model: str | None = None
    fuel_type: str | None = None
    drive_type: str | None = None
    manufacturer: str | None = None
    plant_country: str | None = None
    vehicle_type: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    raw_response: list[dict[str, Any]] = field(default_factory=list, repr=False)

    def to_dict(self, *, include_raw: bool = False) -> dict[str, Any]:
        data = {
            "vin": self.vin,
            "valid": self.valid,
            "make": self.make,
            "model": self.model,
            "year": self.year,
            "body_class": self.body_class,
            "trim": self.trim,
            "engine_model": self.engine_model,
            "fuel_type": self.fuel_type,
            "drive_type": self.drive_type,
            "manufacturer": self.manufacturer,
            "plant_country": self.plant_country,
            "vehicle_type": self.vehicle_type,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }
        if include_raw:
            data["raw_response"] = self.raw_response
        return data


@dataclass
class VinVerification:
    matches: bool
    issues: list[str]
    decoded: VinDecodeResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "matches": self.matches,
            "issues": list(self.issues),
            "decoded": self.decoded.to_dict(),
        }


def check_vin_syntax(vin: str | None) -> tuple[str, str | None]:
    """Clean ``vin`` and return ``(clean_vin, error_or_None)`` without any I/O."""
    if not vin or not isinstance(vin, str):
        return "", "VIN is required"
    clean = "".join(vin.split()).upper()
    if len(clean) != VIN_LENGTH:
        return clean, f"Invalid VIN length: {len(clean)} characters (expected {VIN_LENGTH})"
    if VIN_EXCLUDED_CHARS.intersection(clean):
        return clean, "VIN contains invalid characters (I, O, or Q)"
    if not clean.isalnum():
        return clean, "VIN must contain only letters and digits"
    return clean, None


def _variables(results: Iterable[Any]) -> dict[str, str]:
    values: dict[str, str] = {}
    for item in results:
        if not isinstance(item, dict):
            continue
        name = item.get("Variable")
        value = item.get("Value")
        if name and value not in (None, ""):
            values[str(name)] = str(value).strip()
    return values


def parse_decode_payload(vin: str, payload: dict[str, Any]) -> VinDecodeResult:
    """Turn a DecodeVin payload into a :class:`VinDecodeResult`."""
    results = payload.get("Results") or []
    if not results:
        return VinDecodeResult(vin=vin, valid=False, error_message="No data returned from NHTSA API")

    values = _variables(results)
    error_code = values.get("Error Code")
    # anything but a lone "0" is a rejection, including lists such as "0,8"
    if error_code and error_code.strip() != "0":
        return VinDecodeResult(
            vin=vin,
            valid=False,
            error_code=error_code,
            error_message=values.get("Error Text") or "Invalid VIN according to NHTSA",
            raw_response=list(results),
        )

    decoded = VinDecodeResult(
        vin=vin,
        valid=False,
        year=parse_int(values.get("Model Year")),
        error_code=error_code,
        raw_response=list(results),
    )
    for variable, attr in _DECODE_FIELDS.items():
        setattr(decoded, attr, values.get(variable))

    decoded.valid = bool(decoded.make and decoded.model and decoded.year)
    if not decoded.valid:
        decoded.error_message = "Incomplete vehicle data from NHTSA"
    return decoded


# ── Validator ───────────────────────────────────────────────────────


class _MinIntervalGate:
    """Enforces a minimum spacing between successive calls.

    The wait happens *before* a call, so nothing is slept after the last
    call of a batch, and concurrent callers still queue one at a time.
    """

    def __init__(
        self,
        interval: float,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.interval = max(0.0, interval)
        self._sleep = sleep
        self._clock = clock
        self._last: float | None = None
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        async with self._lock:
            if self._last is not None and self.interval > 0:
                remaining = self.interval - (self._clock() - self._last)
                if remaining > 0:
                    await self._sleep(remaining)
            self._last = self._clock()


class VinValidator:
    """Decode VINs through vPIC and cross-check them against listing claims."""

    def __init__(
        self,
        client: NHTSAClient,
        *,
        min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._gate = _MinIntervalGate(min_interval, sleep=sleep, clock=clock)
        self.calls_made = 0

    async def decode(self, vin: str | None) -> VinDecodeResult:
        """Decode ``vin``; syntax errors fail locally without a network call."""
        clean, error = check_vin_syntax(vin)
        if error:
            return VinDecodeResult(vin=clean, valid=False, error_message=error)

        if not self._client.is_cached(clean):
            await self._gate.wait()
            self.calls_made += 1
        try:
            payload = await self._client.decode_vin(clean)
        except NHTSAClientError as exc:
            logger.warning("NHTSA decode failed for %s: %s", clean, exc)
            return VinDecodeResult(vin=clean, valid=False, error_message=str(exc))
        return parse_decode_payload(clean, payload)

    @staticmethod
    def compare(
        decoded: VinDecodeResult,
        expected_make: str | None,
        expected_model: str | None,
        expected_year: int | None,
    ) -> VinVerification:
        """Collect every make/model/year mismatch between ``decoded`` and a listing."""
        issues: list[str] = []
        if not decoded.valid:
            issues.append(decoded.error_message or "Invalid VIN")
            return VinVerification(matches=False, issues=issues, decoded=decoded)

        if (decoded.make or "").lower() != (expected_make or "").lower():
            issues.append(
                f'Make mismatch: VIN shows "{decoded.make}", listing shows "{expected_make}"'
            )

        decoded_model = (decoded.model or "").lower()
        listing_model = (expected_model or "").lower()
        if not listing_model or (
            listing_model not in decoded_model and decoded_model not in listing_model
        ):
            issues.append(
                f'Model mismatch: VIN shows "{decoded.model}", listing shows "{expected_model}"'
            )

        if decoded.year != expected_year:
            issues.append(
                f"Year mismatch: VIN shows {decoded.year}, listing shows {expected_year}"
            )

        return VinVerification(matches=not issues, issues=issues, decoded=decoded)

    async def verify(
        self,
        vin: str | None,
        expected_make: str | None,
        expected_model: str | None,
        expected_year: int | None,
    ) -> VinVerification:
        decoded = await self.decode(vin)
        return self.compare(decoded, expected_make, expected_model, expected_year)

    async def decode_many(self, vins: Iterable[str]) -> list[VinDecodeResult]:
        """Decode sequentially; spacing is handled by the shared gate."""
        return [await self.decode(vin) for vin in vins]

    async def is_allowed_make(self, vin: str, allowed_makes: Iterable[str]) -> bool:
        decoded = await self.decode(vin)
        if not decoded.valid or not decoded.make:
            return False
        return decoded.make.lower() in {m.lower() for m in allowed_makes}

    async def basic_info(self, vin: str) -> dict[str, Any] | None:
        """``{"make", "model", "year"}`` for a valid VIN, else ``None``."""
        decoded = await self.decode(vin)
        if not decoded.valid:
            return None
        return {"make": decoded.make, "model": decoded.model, "year": decoded.year}
