"""autopicks MCP server: FastMCP entry point for the curation tools."""

from __future__ import annotations

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from autopicks.config import load_dotenv
from autopicks.tools.curation import (
    check_listing_impl,
    get_filter_stats_impl,
    get_search_logs_impl,
    list_curated_vehicles_impl,
    review_vehicle_impl,
    run_daily_search_impl,
)
from autopicks.tools.vin import decode_vin_impl, verify_vin_impl

load_dotenv()

mcp = FastMCP("autopicks")
logger = logging.getLogger(__name__)


def _log_and_return_tool_error(*, tool_name: str, exc: Exception, user_message: str) -> str:
    logger.exception("Tool %s failed: %s", tool_name, exc)
    return user_message


# ── Tool registrations ──────────────────────────────────────────────


@mcp.tool()
async def run_daily_search(data_source: str = "", skip_vin_validation: bool | None = None) -> str:
    """Run the curation pipeline once: fetch, filter, VIN-check, store, log.

    data_source: 'sample' or 'auto_dev' (defaults to AUTOPICKS_DATA_SOURCE)
    """
    try:
        return await run_daily_search_impl(
            data_source=data_source,
            skip_vin_validation=skip_vin_validation,
        )
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="run_daily_search",
            exc=exc,
            user_message="The curation run failed unexpectedly. Check the server logs.",
        )


@mcp.tool()
def check_listing(listing: dict[str, Any], exclude_rust_belt: bool = False) -> str:
    """Dry-run a single listing through the eligibility filters and scorer."""
    try:
        return check_listing_impl(listing, exclude_rust_belt=exclude_rust_belt)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="check_listing",
            exc=exc,
            user_message="I could not evaluate that listing. Please check its fields.",
        )


@mcp.tool()
def get_filter_stats(listings: list[dict[str, Any]] | None = None) -> str:
    """Pass/fail counts, rejection reasons and rating histograms for a batch of listings."""
    try:
        return get_filter_stats_impl(listings)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="get_filter_stats",
            exc=exc,
            user_message="I could not compute filter statistics for that batch.",
        )


@mcp.tool()
async def decode_vin(vin: str) -> str:
    """Decode a 17-character VIN through NHTSA vPIC."""
    try:
        return await decode_vin_impl(vin)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="decode_vin",
            exc=exc,
            user_message="I am having trouble reaching NHTSA right now. Please try again.",
        )


@mcp.tool()
async def verify_vin(vin: str, make: str, model: str, year: int) -> str:
    """Verify that a VIN decodes to the claimed make, model and year."""
    try:
        return await verify_vin_impl(vin, make, model, year)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="verify_vin",
            exc=exc,
            user_message="I am having trouble reaching NHTSA right now. Please try again.",
        )


@mcp.tool()
def list_curated_vehicles(
    quality_tier: str = "",
    make: str = "",
    reviewed: bool | None = None,
    sort_by: str = "priority_score",
    limit: int = 25,
    offset: int = 0,
) -> str:
    """List curated listings, best first.

    quality_tier: 'top_pick', 'good_buy' or 'caution'
    sort_by: 'priority_score', 'price', 'mileage' or 'newest'
    """
    try:
        return list_curated_vehicles_impl(
            quality_tier=quality_tier,
            make=make,
            reviewed=reviewed,
            sort_by=sort_by,
            limit=limit,
            offset=offset,
        )
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="list_curated_vehicles",
            exc=exc,
            user_message="I am having trouble reading curated listings right now.",
        )


@mcp.tool()
def get_search_logs(limit: int = 10) -> str:
    """Most recent curation runs with their counts and stage errors."""
    try:
        return get_search_logs_impl(limit=limit)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="get_search_logs",
            exc=exc,
            user_message="I am having trouble reading the run history right now.",
        )


@mcp.tool()
def review_vehicle(vin: str, rating: int | None = None, notes: str = "") -> str:
    """Mark a curated listing as reviewed, with an optional 1-5 rating and notes."""
    try:
        return review_vehicle_impl(vin, rating=rating, notes=notes)
    except Exception as exc:
        return _log_and_return_tool_error(
            tool_name="review_vehicle",
            exc=exc,
            user_message="I could not save that review. Please try again.",
        )


if __name__ == "__main__":
    mcp.run()
