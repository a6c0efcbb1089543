"""Curation pipeline tests: stage ordering, failure policy and the audit log."""

from __future__ import annotations

import sqlite3

import pytest
from helpers import RAV4_VIN, TODAY, FakeNHTSAClient, vpic_payload

from autopicks.clients import NHTSAClientError, VinValidator
from autopicks.config import PipelineConfig
from autopicks.data import SqliteListingStore, get_store, set_store
from autopicks.filtering import DEFAULT_FILTER_CRITERIA
from autopicks.ingestion import CurationPipeline, run_daily_search
from autopicks.sources import SampleListingSource

CIVIC_VIN = "2HGFC2F59KH530418"


class _FakeSource:
    name = "Fake Listings"

    def __init__(self, listings=None, *, error=None, calls_made=None, cost_per_call=0.0):
        self._listings = listings or []
        self._error = error
        self.cost_per_call = cost_per_call
        if calls_made is not None:
            self.calls_made = calls_made

    async def fetch(self):
        if self._error is not None:
            raise self._error
        return list(self._listings)


class _FlakyStore(SqliteListingStore):
    """Fails inserts for selected VINs and, optionally, the audit-log write."""

    def __init__(self, *, bad_vins=(), fail_log=False):
        super().__init__(":memory:")
        self.bad_vins = set(bad_vins)
        self.fail_log = fail_log

    def insert(self, vehicle):
        if vehicle.vin in self.bad_vins:
            raise sqlite3.OperationalError("disk I/O error")
        return super().insert(vehicle)

    def insert_audit_log(self, log):
        if self.fail_log:
            raise sqlite3.OperationalError("database is locked")
        return super().insert_audit_log(log)


def _skip_config(**overrides) -> PipelineConfig:
    return PipelineConfig(skip_vin_validation=True, **overrides)


def _pipeline(source, store, *, config=None, validator=None) -> CurationPipeline:
    return CurationPipeline(
        config or _skip_config(),
        source=source,
        store=store,
        vin_validator=validator,
        today_year=TODAY,
    )


def _rav4_and_civic(make_listing):
    civic = make_listing(vin=CIVIC_VIN, make="Honda", model="Civic", year=2020, mileage=60_000)
    return [make_listing(), civic]


# ── Happy path ────────────────────────────────────────────────────


class TestSampleRun:
    async def test_sample_run_with_vin_validation_skipped(self, store):
        result = await _pipeline(SampleListingSource(today_year=TODAY), store).run()

        assert result.success is True
        assert result.errors == []
        assert result.vin_validation_skipped is True
        assert result.data_source == "Sample Listings"
        assert result.stats.total_fetched == 15
        assert result.stats.after_basic_filter == 7
        assert result.stats.after_vin_validation == 7
        assert result.stats.stored == 6
        assert result.stats.duplicates == 1
        assert result.stats.api_calls_made == 1
        assert result.stats.api_cost_usd == 0.0
        assert store.count() == 6

    async def test_search_log_written(self, store):
        result = await _pipeline(SampleListingSource(today_year=TODAY), store).run()

        (log,) = store.list_search_logs()
        assert result.search_log is not None
        assert log.id == result.search_log.id
        assert log.total_listings_fetched == 15
        assert log.listings_after_basic_filter == 7
        assert log.final_curated_count == 6
        assert log.error_count == 0
        assert log.data_source == "Sample Listings"
        # a skipped VIN stage is always recorded
        assert log.error_details["vin_validation_skipped"] is True
        assert result.to_dict()["search_log_id"] == log.id

    async def test_second_run_only_finds_duplicates(self, store):
        await _pipeline(SampleListingSource(today_year=TODAY), store).run()
        second = await _pipeline(SampleListingSource(today_year=TODAY), store).run()

        assert second.success is True
        assert second.stats.stored == 0
        assert second.stats.duplicates == 7
        assert store.count() == 6
        assert len(store.list_search_logs()) == 2

    async def test_pipeline_falls_back_to_singleton_store(self, store, make_listing):
        pipeline = CurationPipeline(
            _skip_config(), source=_FakeSource([make_listing()]), today_year=TODAY,
        )
        result = await pipeline.run()
        assert result.stats.stored == 1
        assert store.exists(RAV4_VIN)

    async def test_run_daily_search_entry_point(self, store, make_listing):
        result = await run_daily_search(
            _skip_config(), source=_FakeSource([make_listing()]), store=store, today_year=TODAY,
        )
        assert result.success is True
        assert result.stats.stored == 1


# ── Fatal stages ──────────────────────────────────────────────────


class TestFatalStages:
    async def test_fetch_failure_stops_run_but_logs(self, store):
        source = _FakeSource(error=ConnectionError("listing API unreachable"))
        result = await _pipeline(source, store).run()

        assert result.success is False
        assert [(e.stage, e.level) for e in result.errors] == [("fetch", "error")]
        assert result.errors[0].message == "listing API unreachable"
        assert result.stats.total_fetched == 0
        assert store.count() == 0

        (log,) = store.list_search_logs()
        assert log.error_count == 1
        assert log.error_details["errors"][0]["stage"] == "fetch"

    async def test_filter_failure_is_fatal(self, store, make_listing, monkeypatch):
        def _explode(*args, **kwargs):
            raise ValueError("bad criteria")

        monkeypatch.setattr("autopicks.ingestion.pipeline.filter_listings", _explode)
        result = await _pipeline(_FakeSource([make_listing()]), store).run()

        assert result.success is False
        assert result.stats.total_fetched == 1
        assert result.errors[0].stage == "filter"
        assert store.count() == 0
        assert len(store.list_search_logs()) == 1

    async def test_unexpected_error_is_tagged_pipeline(self, store, make_listing, monkeypatch):
        def _explode(*args, **kwargs):
            raise KeyError("score")

        monkeypatch.setattr(CurationPipeline, "_store_all", _explode)
        result = await _pipeline(_FakeSource([make_listing()]), store).run()
        assert result.success is False
        assert result.errors[0].stage == "pipeline"


# ── VIN validation ────────────────────────────────────────────────


class TestVinStage:
    def _validator(self, client) -> VinValidator:
        return VinValidator(client, min_interval=0)

    async def test_matching_vins_are_stored_with_decode_data(self, store, make_listing):
        client = FakeNHTSAClient(
            {
                RAV4_VIN: vpic_payload(),
                CIVIC_VIN: vpic_payload("HONDA", "Civic", 2020),
            }
        )
        result = await _pipeline(
            _FakeSource(_rav4_and_civic(make_listing), calls_made=2),
            store,
            config=PipelineConfig(),
            validator=self._validator(client),
        ).run()

        assert result.success is True
        assert result.vin_validation_skipped is False
        assert result.stats.after_vin_validation == 2
        assert result.stats.vin_rejected == 0
        assert result.stats.stored == 2
        assert result.stats.api_calls_made == 4
        assert store.get_by_vin(RAV4_VIN).vin_decode_data["make"] == "TOYOTA"

    async def test_mismatch_is_rejected(self, store, make_listing):
        client = FakeNHTSAClient(
            {
                RAV4_VIN: vpic_payload(),
                CIVIC_VIN: vpic_payload("HONDA", "Accord", 2018),
            }
        )
        result = await _pipeline(
            _FakeSource(_rav4_and_civic(make_listing)),
            store,
            config=PipelineConfig(),
            validator=self._validator(client),
        ).run()

        assert result.success is True
        assert result.stats.after_basic_filter == 2
        assert result.stats.after_vin_validation == 1
        assert result.stats.vin_rejected == 1
        assert not store.exists(CIVIC_VIN)

    async def test_per_listing_client_error_rejects_that_listing(self, store, make_listing):
        client = FakeNHTSAClient(error=NHTSAClientError("NHTSA request timed out.", code="TIMEOUT"))
        result = await _pipeline(
            _FakeSource([make_listing()]),
            store,
            config=PipelineConfig(),
            validator=self._validator(client),
        ).run()

        assert result.success is True
        assert result.errors == []
        assert result.stats.vin_rejected == 1
        assert result.stats.stored == 0

    async def test_stage_failure_degrades_to_all_valid(self, store, make_listing):
        client = FakeNHTSAClient(error=RuntimeError("event loop closed"))
        result = await _pipeline(
            _FakeSource(_rav4_and_civic(make_listing)),
            store,
            config=PipelineConfig(),
            validator=self._validator(client),
        ).run()

        assert result.success is True
        assert result.stats.after_vin_validation == 2
        assert result.stats.vin_rejected == 0
        assert result.stats.stored == 2
        (error,) = result.errors
        assert error.stage == "vin_validation"
        assert error.level == "warning"
        assert "fallback" in error.details
        assert store.get_by_vin(RAV4_VIN).vin_decode_data is None

    async def test_no_vin_calls_when_nothing_passes_filters(self, store, make_listing):
        client = FakeNHTSAClient(default=vpic_payload())
        result = await _pipeline(
            _FakeSource([make_listing(price=42_500)]),
            store,
            config=PipelineConfig(),
            validator=self._validator(client),
        ).run()

        assert result.success is True
        assert client.calls == []
        assert result.stats.after_vin_validation == 0


# ── Store stage ───────────────────────────────────────────────────


class TestStoreStage:
    async def test_single_insert_failure_is_isolated(self, make_listing):
        store = _FlakyStore(bad_vins={RAV4_VIN})
        result = await _pipeline(_FakeSource(_rav4_and_civic(make_listing)), store).run()

        assert result.success is True
        assert result.stats.stored == 1
        assert result.stats.store_errors == 1
        (error,) = result.errors
        assert error.stage == "store"
        assert error.details["vin"] == RAV4_VIN
        assert store.exists(CIVIC_VIN)
        assert store.list_search_logs()[0].error_count == 1

    async def test_listing_without_vin_is_a_store_error(self, store, make_listing):
        pipeline = CurationPipeline(
            _skip_config(),
            source=_FakeSource([make_listing(vin=None)]),
            store=store,
            criteria=DEFAULT_FILTER_CRITERIA.replace(require_vin=False),
            today_year=TODAY,
        )
        result = await pipeline.run()

        assert result.success is True
        assert result.stats.after_basic_filter == 1
        assert result.stats.stored == 0
        assert result.stats.store_errors == 1

    async def test_log_write_failure_does_not_fail_run(self, make_listing):
        store = _FlakyStore(fail_log=True)
        result = await _pipeline(_FakeSource([make_listing()]), store).run()

        assert result.success is True
        assert result.search_log is None
        assert result.stats.stored == 1


class TestAccounting:
    async def test_store_opens_configured_db_path(self, tmp_path, make_listing):
        db_path = tmp_path / "curated.db"
        set_store(None)
        pipeline = CurationPipeline(
            _skip_config(db_path=str(db_path)),
            source=_FakeSource([make_listing()]),
            today_year=TODAY,
        )
        result = await pipeline.run()
        try:
            assert result.stats.stored == 1
            assert db_path.exists()
            assert pipeline.store is get_store()
            assert pipeline.store.exists(RAV4_VIN)
        finally:
            pipeline.store.close()

    async def test_cost_uses_source_call_count(self, store, make_listing):
        source = _FakeSource([make_listing()], calls_made=4, cost_per_call=0.05)
        result = await _pipeline(source, store).run()
        assert result.stats.api_calls_made == 4
        assert result.stats.api_cost_usd == pytest.approx(0.2)
        assert store.list_search_logs()[0].api_cost_usd == pytest.approx(0.2)

    async def test_vin_calls_are_counted_per_run(self, store, make_listing):
        validator = VinValidator(FakeNHTSAClient(default=vpic_payload()), min_interval=0)
        pipeline = _pipeline(
            _FakeSource([make_listing()], calls_made=1),
            store,
            config=PipelineConfig(),
            validator=validator,
        )

        first = await pipeline.run()
        second = await pipeline.run()

        assert first.stats.api_calls_made == 2
        assert second.stats.api_calls_made == 2
        assert second.stats.duplicates == 1
        assert [log.api_calls_made for log in store.list_search_logs()] == [2, 2]

    async def test_execution_time_uses_injected_clock(self, store, make_listing):
        ticks = iter([10.0, 12.5])
        pipeline = CurationPipeline(
            _skip_config(),
            source=_FakeSource([make_listing()]),
            store=store,
            today_year=TODAY,
            clock=lambda: next(ticks),
        )
        result = await pipeline.run()
        assert result.execution_time_seconds == 2.5
        assert store.list_search_logs()[0].execution_time_seconds == 2.5
