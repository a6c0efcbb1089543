"""Listing sources and the config-driven selector."""

from __future__ import annotations

import logging

from autopicks.config import SOURCE_AUTO_DEV, PipelineConfig, resolve_source_key
from autopicks.filtering.criteria import DEFAULT_FILTER_CRITERIA, FilterCriteria
from autopicks.sources.autodev import AutoDevListingSource, normalize_auto_dev_listing
from autopicks.sources.base import ListingSource
from autopicks.sources.sample import SampleListingSource, sample_listings

logger = logging.getLogger(__name__)


def get_data_source(
    config: PipelineConfig,
    *,
    criteria: FilterCriteria = DEFAULT_FILTER_CRITERIA,
) -> ListingSource:
    """Pick the listing source named by ``config.data_source``.

    Auto.dev without an API key falls back to the sample source.
    """
    key = resolve_source_key(config.data_source)
    if key == SOURCE_AUTO_DEV:
        if config.auto_dev_key:
            return AutoDevListingSource(
                config.auto_dev_key,
                zip_codes=config.zip_codes,
                radius_miles=config.search_radius_miles,
                criteria=criteria,
                timeout=config.http_timeout_seconds,
            )
        logger.warning("AUTO_DEV_API_KEY is not configured; using the sample source")
    return SampleListingSource()


__all__ = [
    "AutoDevListingSource",
    "ListingSource",
    "SampleListingSource",
    "get_data_source",
    "normalize_auto_dev_listing",
    "sample_listings",
]
