"""Daily curation pipeline: fetch, filter, VIN-validate, store, log.

Stages run strictly in order. Fetch, filter and store failures abort the run;
a VIN-validation failure degrades to treating every filtered listing as valid;
an audit-log failure is logged and otherwise ignored. Every run, including an
aborted one, attempts to write exactly one search-log row.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from autopicks.clients.nhtsa import SHARED_NHTSA_CACHE, NHTSAClient, VinValidator
from autopicks.config import PipelineConfig
from autopicks.data.inventory import get_store
from autopicks.data.store import ListingStore
from autopicks.filtering.criteria import DEFAULT_FILTER_CRITERIA, FilterCriteria
from autopicks.filtering.engine import FilterResult, filter_listings
from autopicks.models import RawListing, SearchLog
from autopicks.scoring import build_vehicle
from autopicks.sources import get_data_source
from autopicks.sources.base import ListingSource

logger = logging.getLogger(__name__)

STAGE_FETCH = "fetch"
STAGE_FILTER = "filter"
STAGE_VIN = "vin_validation"
STAGE_STORE = "store"
STAGE_PIPELINE = "pipeline"

LEVEL_ERROR = "error"
LEVEL_WARNING = "warning"


# ── Results ─────────────────────────────────────────────────────────


@dataclass
class StageError:
    """A failure attributed to one pipeline stage."""
    stage: str
    message: str
    level: str = LEVEL_ERROR
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PipelineStats:
    total_fetched: int = 0
    after_basic_filter: int = 0
    after_vin_validation: int = 0
    vin_rejected: int = 0
    stored: int = 0
    duplicates: int = 0
    store_errors: int = 0
    api_calls_made: int = 0
    api_cost_usd: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PipelineResult:
    success: bool
    stats: PipelineStats
    errors: list[StageError]
    execution_time_seconds: float
    data_source: str
    vin_validation_skipped: bool = False
    search_log: SearchLog | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "stats": self.stats.to_dict(),
            "errors": [e.to_dict() for e in self.errors],
            "execution_time_seconds": self.execution_time_seconds,
            "data_source": self.data_source,
            "vin_validation_skipped": self.vin_validation_skipped,
            "search_log_id": self.search_log.id if self.search_log else None,
        }


class _FatalStage(Exception):
    """Internal signal: a fatal stage failed and the run must stop."""


# ── Pipeline ────────────────────────────────────────────────────────


Candidate = tuple[RawListing, FilterResult, dict[str, Any] | None]


class CurationPipeline:
    """Runs one curation pass against a listing source and a store."""

    def __init__(
        self,
        config: PipelineConfig | None = None,
        *,
        source: ListingSource | None = None,
        store: ListingStore | None = None,
        vin_validator: VinValidator | None = None,
        criteria: FilterCriteria = DEFAULT_FILTER_CRITERIA,
        today_year: int | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.config = config or PipelineConfig()
        self.criteria = criteria
        self.source = source if source is not None else get_data_source(
            self.config, criteria=criteria,
        )
        self._store = store
        self._vin_validator = vin_validator
        self._today_year = today_year
        self._clock = clock
        self._reset()

    def _reset(self) -> None:
        self.stats = PipelineStats()
        self.errors: list[StageError] = []
        self.vin_validation_skipped = False

    @property
    def store(self) -> ListingStore:
        if self._store is None:
            self._store = get_store(self.config.db_path)
        return self._store

    def _record(
        self,
        stage: str,
        exc: BaseException | str,
        *,
        level: str = LEVEL_ERROR,
        **details: Any,
    ) -> StageError:
        if isinstance(exc, BaseException):
            details.setdefault("type", type(exc).__name__)
        error = StageError(stage=stage, message=str(exc), level=level, details=details)
        self.errors.append(error)
        return error

    # ── Stages ─────────────────────────────────────────────────────

    async def _fetch(self) -> list[RawListing]:
        try:
            listings = await self.source.fetch()
        except Exception as exc:
            logger.error("Fetch from %s failed: %s", self.source.name, exc)
            self._record(STAGE_FETCH, exc, source=self.source.name)
            raise _FatalStage from exc

        calls = getattr(self.source, "calls_made", None)
        fetch_calls = calls if isinstance(calls, int) else 1
        self.stats.total_fetched = len(listings)
        self.stats.api_calls_made += fetch_calls
        self.stats.api_cost_usd += self.source.cost_per_call * fetch_calls
        logger.info("Fetched %d listings from %s", len(listings), self.source.name)
        return listings

    def _filter(self, listings: list[RawListing]) -> list[tuple[RawListing, FilterResult]]:
        try:
            passed = filter_listings(listings, self.criteria, today_year=self._today_year)
        except Exception as exc:
            logger.exception("Filter stage failed")
            self._record(STAGE_FILTER, exc)
            raise _FatalStage from exc
        self.stats.after_basic_filter = len(passed)
        logger.info("%d of %d listings passed basic filters", len(passed), len(listings))
        return passed

    async def _check_vins(
        self,
        validator: VinValidator,
        passed: list[tuple[RawListing, FilterResult]],
    ) -> list[Candidate]:
        valid: list[Candidate] = []
        for listing, result in passed:
            if not listing.vin:
                logger.info("VIN rejected %s: Missing VIN", listing.label())
                self.stats.vin_rejected += 1
                continue
            decoded = await validator.decode(listing.vin)
            verification = validator.compare(decoded, listing.make, listing.model, listing.year)
            if not verification.matches:
                logger.info("VIN rejected %s: %s", listing.vin, ", ".join(verification.issues))
                self.stats.vin_rejected += 1
                continue
            valid.append((listing, result, decoded.to_dict()))
        return valid

    async def _validate_vins(
        self,
        passed: list[tuple[RawListing, FilterResult]],
    ) -> list[Candidate]:
        if self.config.skip_vin_validation:
            logger.info("VIN validation skipped by configuration")
            self.vin_validation_skipped = True
            self.stats.after_vin_validation = len(passed)
            return [(listing, result, None) for listing, result in passed]
        if not passed:
            return []

        validator = self._vin_validator
        calls_before = validator.calls_made if validator is not None else 0
        try:
            if validator is not None:
                valid = await self._check_vins(validator, passed)
            else:
                async with NHTSAClient(
                    cache=SHARED_NHTSA_CACHE, timeout=self.config.vin_timeout_seconds,
                ) as client:
                    validator = VinValidator(client, min_interval=self.config.vin_delay_seconds)
                    valid = await self._check_vins(validator, passed)
        except Exception as exc:
            logger.warning(
                "VIN validation failed (%s); treating all %d filtered listings as valid",
                exc, len(passed),
            )
            self._record(
                STAGE_VIN, exc, level=LEVEL_WARNING,
                fallback="treated all filtered listings as valid",
            )
            self.stats.vin_rejected = 0
            valid = [(listing, result, None) for listing, result in passed]
        finally:
            if validator is not None:
                self.stats.api_calls_made += validator.calls_made - calls_before

        self.stats.after_vin_validation = len(valid)
        return valid

    def _store_all(self, candidates: list[Candidate]) -> None:
        try:
            store = self.store
            for listing, result, decode_data in candidates:
                try:
                    if store.exists(listing.vin or ""):
                        self.stats.duplicates += 1
                        logger.info("Skipped duplicate: %s", listing.vin)
                        continue
                    vehicle = build_vehicle(
                        listing, result, self.criteria, vin_decode_data=decode_data,
                    )
                    store.insert(vehicle)
                    self.stats.stored += 1
                    logger.info("Stored %s (score %d)", listing.label(), vehicle.priority_score)
                except Exception as exc:
                    self.stats.store_errors += 1
                    logger.error("Error storing %s: %s", listing.vin, exc)
                    self._record(STAGE_STORE, exc, vin=listing.vin)
        except Exception as exc:
            logger.exception("Store stage failed")
            self._record(STAGE_STORE, exc)
            raise _FatalStage from exc

    def _write_log(self, elapsed: float) -> SearchLog | None:
        details: dict[str, Any] | None = None
        if self.errors or self.vin_validation_skipped:
            details = {
                "errors": [e.to_dict() for e in self.errors],
                "vin_validation_skipped": self.vin_validation_skipped,
                "duplicates": self.stats.duplicates,
            }
        log = SearchLog(
            search_date=datetime.now(timezone.utc).date().isoformat(),
            total_listings_fetched=self.stats.total_fetched,
            listings_after_basic_filter=self.stats.after_basic_filter,
            listings_after_vin_validation=self.stats.after_vin_validation,
            final_curated_count=self.stats.stored,
            api_calls_made=self.stats.api_calls_made,
            api_cost_usd=round(self.stats.api_cost_usd, 4),
            execution_time_seconds=round(elapsed, 3),
            error_count=len(self.errors),
            error_details=details,
            data_source=self.source.name,
        )
        try:
            return self.store.insert_audit_log(log)
        except Exception:
            logger.exception("Failed to write search log")
            return None

    # ── Orchestration ──────────────────────────────────────────────

    async def run(self) -> PipelineResult:
        """Execute every stage once and return the run outcome."""
        self._reset()
        started = self._clock()
        success = False
        logger.info("Curation run starting (source: %s)", self.source.name)
        try:
            listings = await self._fetch()
            passed = self._filter(listings)
            candidates = await self._validate_vins(passed)
            self._store_all(candidates)
            success = True
        except _FatalStage:
            pass
        except Exception as exc:
            logger.exception("Curation run aborted")
            self._record(STAGE_PIPELINE, exc)

        elapsed = self._clock() - started
        search_log = self._write_log(elapsed)
        logger.info(
            "Curation run %s in %.2fs: fetched=%d filtered=%d vin_valid=%d stored=%d duplicates=%d",
            "completed" if success else "failed",
            elapsed,
            self.stats.total_fetched,
            self.stats.after_basic_filter,
            self.stats.after_vin_validation,
            self.stats.stored,
            self.stats.duplicates,
        )
        return PipelineResult(
            success=success,
            stats=self.stats,
            errors=list(self.errors),
            execution_time_seconds=elapsed,
            data_source=self.source.name,
            vin_validation_skipped=self.vin_validation_skipped,
            search_log=search_log,
        )


async def run_daily_search(
    config: PipelineConfig | None = None,
    **kwargs: Any,
) -> PipelineResult:
    """Convenience entry point used by the CLI script and the MCP tool."""
    return await CurationPipeline(config or PipelineConfig.from_env(), **kwargs).run()
