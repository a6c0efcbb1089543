"""Tests for the sample source, source selection and environment config."""

from __future__ import annotations

import logging
import os

import pytest

from autopicks.config import PipelineConfig, load_dotenv, resolve_source_key
from autopicks.filtering import DEFAULT_FILTER_CRITERIA, apply_filters
from autopicks.sources import (
    AutoDevListingSource,
    ListingSource,
    SampleListingSource,
    get_data_source,
    sample_listings,
)


class TestSampleSource:
    def test_mix_of_passing_and_failing(self, today_year):
        listings = sample_listings(today_year=today_year)
        results = [apply_filters(listing, DEFAULT_FILTER_CRITERIA, today_year=today_year) for listing in listings]
        assert len(listings) == 15
        assert sum(r.passed for r in results) == 7
        assert sum(not r.passed for r in results) == 8

    def test_years_follow_today(self):
        this_year = sample_listings(today_year=2026)
        next_year = sample_listings(today_year=2027)
        assert [listing.year + 1 for listing in this_year] == [listing.year for listing in next_year]

    def test_contains_a_relisted_vin(self, today_year):
        vins = [listing.vin for listing in sample_listings(today_year=today_year)]
        assert len(vins) - len(set(vins)) == 1

    def test_listing_metadata(self, today_year):
        first = sample_listings(today_year=today_year)[0]
        assert first.listing_id == "sample-001"
        assert first.source == "Sample"
        assert first.url.endswith("sample-001")

    async def test_fetch(self, today_year):
        source = SampleListingSource(today_year=today_year)
        assert isinstance(source, ListingSource)
        assert source.cost_per_call == 0.0
        assert len(await source.fetch()) == 15


class TestGetDataSource:
    def test_default_is_sample(self):
        assert isinstance(get_data_source(PipelineConfig()), SampleListingSource)

    def test_auto_dev_with_key(self):
        config = PipelineConfig(data_source="auto.dev", auto_dev_key="k", zip_codes=["10001"])
        source = get_data_source(config, criteria=DEFAULT_FILTER_CRITERIA)
        assert isinstance(source, AutoDevListingSource)
        assert source.zip_codes == ["10001"]
        assert source.radius_miles == 30

    def test_auto_dev_without_key_falls_back(self, caplog):
        with caplog.at_level(logging.WARNING, logger="autopicks.sources"):
            source = get_data_source(PipelineConfig(data_source="auto_dev"))
        assert isinstance(source, SampleListingSource)
        assert "AUTO_DEV_API_KEY" in caplog.text


class TestConfig:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (None, "sample"),
            ("", "sample"),
            ("mock", "sample"),
            ("AUTO.DEV", "auto_dev"),
            ("autodev", "auto_dev"),
            ("craigslist", "sample"),
        ],
    )
    def test_resolve_source_key(self, raw, expected):
        assert resolve_source_key(raw) == expected

    def test_from_env_defaults(self):
        config = PipelineConfig.from_env({})
        assert config.data_source == "sample"
        assert config.skip_vin_validation is False
        assert config.vin_delay_seconds == 0.25
        assert config.vin_timeout_seconds == 10.0
        assert config.zip_codes == ["94103"]
        assert config.auto_dev_key == ""

    def test_from_env_overrides(self):
        config = PipelineConfig.from_env(
            {
                "AUTOPICKS_DATA_SOURCE": "auto_dev",
                "AUTOPICKS_SKIP_VIN_VALIDATION": "true",
                "AUTOPICKS_VIN_DELAY_SECONDS": "0.5",
                "AUTOPICKS_DB_PATH": "/tmp/curated.db",
                "AUTOPICKS_ZIP_CODES": "94103, 10001,",
                "AUTOPICKS_SEARCH_RADIUS_MILES": "50",
                "AUTO_DEV_API_KEY": " secret ",
            }
        )
        assert config.data_source == "auto_dev"
        assert config.skip_vin_validation is True
        assert config.vin_delay_seconds == 0.5
        assert config.db_path == "/tmp/curated.db"
        assert config.zip_codes == ["94103", "10001"]
        assert config.search_radius_miles == 50
        assert config.auto_dev_key == "secret"

    def test_bad_number_falls_back_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="autopicks.config"):
            config = PipelineConfig.from_env({"AUTOPICKS_VIN_DELAY_SECONDS": "fast"})
        assert config.vin_delay_seconds == 0.25
        assert "AUTOPICKS_VIN_DELAY_SECONDS" in caplog.text

    def test_negative_delay_is_clamped(self):
        assert PipelineConfig.from_env({"AUTOPICKS_VIN_DELAY_SECONDS": "-1"}).vin_delay_seconds == 0.0

    def test_load_dotenv_does_not_override(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("# comment\nAUTOPICKS_TEST_A=from-file\nAUTOPICKS_TEST_B=from-file\n")
        monkeypatch.setenv("AUTOPICKS_TEST_A", "from-env")
        monkeypatch.delenv("AUTOPICKS_TEST_B", raising=False)
        load_dotenv(env_file)
        try:
            assert os.environ["AUTOPICKS_TEST_A"] == "from-env"
            assert os.environ["AUTOPICKS_TEST_B"] == "from-file"
        finally:
            monkeypatch.delenv("AUTOPICKS_TEST_B", raising=False)
