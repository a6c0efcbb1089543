"""Shared external API clients."""

from autopicks.clients.autodev import (
    SHARED_AUTODEV_CACHE,
    AutoDevClient,
    AutoDevClientError,
)
from autopicks.clients.cache import TTLCache
from autopicks.clients.nhtsa import (
    SHARED_NHTSA_CACHE,
    NHTSAClient,
    NHTSAClientError,
    VinDecodeResult,
    VinValidator,
    VinVerification,
    check_vin_syntax,
)

__all__ = [
    "AutoDevClient",
    "AutoDevClientError",
    "NHTSAClient",
    "NHTSAClientError",
    "SHARED_AUTODEV_CACHE",
    "SHARED_NHTSA_CACHE",
    "TTLCache",
    "VinDecodeResult",
    "VinValidator",
    "VinVerification",
    "check_vin_syntax",
]
