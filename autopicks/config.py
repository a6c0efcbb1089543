"""Runtime configuration for a curation run, resolved from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_DB_PATH = str(Path(__file__).resolve().parent / "data" / "curated.db")

SOURCE_SAMPLE = "sample"
SOURCE_AUTO_DEV = "auto_dev"

# Accepted spellings -> canonical source key.
SOURCE_ALIASES: dict[str, str] = {
    "sample": SOURCE_SAMPLE,
    "mock": SOURCE_SAMPLE,
    "auto_dev": SOURCE_AUTO_DEV,
    "auto.dev": SOURCE_AUTO_DEV,
    "autodev": SOURCE_AUTO_DEV,
}

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})


def load_dotenv(path: Path | None = None) -> None:
    """Load ``KEY=value`` lines into ``os.environ`` without overriding it."""
    env_file = path or PROJECT_ROOT / ".env"
    if not env_file.is_file():
        return
    for line in env_file.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            k, _, v = line.partition("=")
            os.environ.setdefault(k.strip(), v.strip())


def _env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_STRINGS


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r; using %s", key, raw, default)
        return default


def resolve_source_key(raw: str | None) -> str:
    """Canonical source key; unknown or unset values fall back to the sample source."""
    key = (raw or "").strip().lower()
    if not key:
        return SOURCE_SAMPLE
    resolved = SOURCE_ALIASES.get(key)
    if resolved is None:
        logger.warning("Unknown data source %r; falling back to %s", raw, SOURCE_SAMPLE)
        return SOURCE_SAMPLE
    return resolved


@dataclass
class PipelineConfig:
    """Configuration for one curation run."""
    data_source: str = SOURCE_SAMPLE
    skip_vin_validation: bool = False
    vin_delay_seconds: float = 0.25
    vin_timeout_seconds: float = 10.0
    http_timeout_seconds: float = 30.0
    db_path: str = DEFAULT_DB_PATH
    auto_dev_key: str = ""
    zip_codes: list[str] = field(default_factory=lambda: ["94103"])
    search_radius_miles: int = 30

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> PipelineConfig:
        env = os.environ if env is None else env
        zips = [z.strip() for z in env.get("AUTOPICKS_ZIP_CODES", "94103").split(",") if z.strip()]
        return cls(
            data_source=resolve_source_key(env.get("AUTOPICKS_DATA_SOURCE")),
            skip_vin_validation=_env_bool(env, "AUTOPICKS_SKIP_VIN_VALIDATION", False),
            vin_delay_seconds=max(0.0, _env_float(env, "AUTOPICKS_VIN_DELAY_SECONDS", 0.25)),
            vin_timeout_seconds=_env_float(env, "AUTOPICKS_VIN_TIMEOUT_SECONDS", 10.0),
            http_timeout_seconds=_env_float(env, "AUTOPICKS_HTTP_TIMEOUT_SECONDS", 30.0),
            db_path=env.get("AUTOPICKS_DB_PATH") or DEFAULT_DB_PATH,
            auto_dev_key=(env.get("AUTO_DEV_API_KEY") or "").strip(),
            zip_codes=zips or ["94103"],
            search_radius_miles=int(_env_float(env, "AUTOPICKS_SEARCH_RADIUS_MILES", 30)),
        )
