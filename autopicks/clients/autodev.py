"""Async Auto.dev listings client used by the paid listing source."""

from __future__ import annotations

import json
import logging
from typing import Any

import aiohttp

from autopicks.clients.cache import TTLCache

logger = logging.getLogger(__name__)

_CACHE_TTL_SECONDS = 300  # 5 minutes
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0

SHARED_AUTODEV_CACHE = TTLCache(ttl=_CACHE_TTL_SECONDS)


class AutoDevClientError(RuntimeError):
    """Raised for Auto.dev request/config errors with structured metadata."""

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


class AutoDevClient:
    """Async client for the Auto.dev listings endpoint."""

    BASE_URL = "https://api.auto.dev"

    def __init__(
        self,
        api_key: str,
        *,
        cache: TTLCache | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self.api_key = api_key.strip()
        self.session: aiohttp.ClientSession | None = None
        self._cache = cache if cache is not None else TTLCache(ttl=_CACHE_TTL_SECONDS)
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def __aenter__(self) -> AutoDevClient:
        if not self.api_key:
            raise AutoDevClientError(
                "AUTO_DEV_API_KEY is not configured.",
                code="MISSING_API_KEY",
            )
        self.session = aiohttp.ClientSession(
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self.session:
            await self.session.close()

    async def _request(
        self,
        path: str,
        *,
        params: dict[str, str] | None = None,
    ) -> Any:
        if not self.session:
            raise RuntimeError("Client not entered as context manager")

        url = f"{self.BASE_URL}{path}"
        cache_key = f"{url}|{sorted((params or {}).items())}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            async with self.session.get(url, params=params, timeout=self._timeout) as resp:
                raw_text = await resp.text()
                payload: Any = {}
                if raw_text:
                    try:
                        payload = json.loads(raw_text)
                    except json.JSONDecodeError:
                        payload = {"raw": raw_text}

                if resp.status >= 400:
                    message = f"Auto.dev request failed with HTTP {resp.status}."
                    if isinstance(payload, dict):
                        message = str(
                            payload.get("error")
                            or payload.get("message")
                            or payload.get("detail")
                            or message
                        )
                    raise AutoDevClientError(
                        message,
                        code="AUTO_DEV_HTTP_ERROR",
                        status=resp.status,
                        details=payload if isinstance(payload, dict) else {"response": payload},
                    )
                self._cache.set(cache_key, payload)
                return payload
        except AutoDevClientError:
            raise
        except TimeoutError as exc:
            raise AutoDevClientError(
                "Auto.dev request timed out.",
                code="TIMEOUT",
                details={"path": path, "params": params or {}},
            ) from exc
        except aiohttp.ClientError as exc:
            logger.error("Auto.dev client error (%s): %s", path, exc)
            raise AutoDevClientError(
                "Auto.dev request failed due to a network/client error.",
                code="NETWORK_ERROR",
                details={"path": path, "params": params or {}, "error": str(exc)},
            ) from exc

    async def search_listings(
        self,
        *,
        zip_code: str = "",
        distance_miles: int = 50,
        make: str | None = None,
        year_min: int | None = None,
        price_min: int | None = None,
        price_max: int | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Search used listings and return the extracted record dicts."""
        params: dict[str, str] = {"page": str(page), "limit": str(limit)}
        if zip_code:
            params["zip"] = zip_code
            params["distance"] = str(distance_miles)
        if make:
            params["vehicle.make"] = make.strip()
        if year_min:
            params["vehicle.year"] = f"{year_min}-"
        if price_min or price_max:
            params["retailListing.price"] = f"{price_min or ''}-{price_max or ''}"

        payload = await self._request("/listings", params=params)
        if not isinstance(payload, dict):
            return []
        for key in ("records", "listings", "data", "results"):
            records = payload.get(key)
            if isinstance(records, list):
                return [r for r in records if isinstance(r, dict)]
        return []
