"""VIN decode / verification tool implementations."""

from __future__ import annotations

import json

from autopicks.clients.nhtsa import (
    SHARED_NHTSA_CACHE,
    NHTSAClient,
    VinValidator,
    check_vin_syntax,
)
from autopicks.config import PipelineConfig


async def decode_vin_impl(vin: str, *, validator: VinValidator | None = None) -> str:
    """Decode a VIN via NHTSA vPIC; syntax errors are reported without a network call."""
    clean, error = check_vin_syntax(vin)
    if error:
        return f"Error: {error}"
    if validator is not None:
        decoded = await validator.decode(clean)
    else:
        config = PipelineConfig.from_env()
        async with NHTSAClient(
            cache=SHARED_NHTSA_CACHE, timeout=config.vin_timeout_seconds,
        ) as client:
            decoded = await VinValidator(client).decode(clean)
    return json.dumps(decoded.to_dict(), indent=2)


async def verify_vin_impl(
    vin: str,
    make: str,
    model: str,
    year: int,
    *,
    validator: VinValidator | None = None,
) -> str:
    """Check a listing's make/model/year claims against the decoded VIN."""
    if validator is not None:
        verification = await validator.verify(vin, make, model, year)
    else:
        config = PipelineConfig.from_env()
        async with NHTSAClient(
            cache=SHARED_NHTSA_CACHE, timeout=config.vin_timeout_seconds,
        ) as client:
            verification = await VinValidator(client).verify(vin, make, model, year)
    return json.dumps(verification.to_dict(), indent=2)
