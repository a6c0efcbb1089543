#!/usr/bin/env python3
"""Performance benchmark for autopicks filtering, scoring and store hot paths."""

from __future__ import annotations

import argparse
import asyncio
import os
import tempfile
import time

from autopicks.config import PipelineConfig
from autopicks.data.store import SqliteListingStore
from autopicks.filtering import DEFAULT_FILTER_CRITERIA, apply_filters, get_filter_stats
from autopicks.filtering.criteria import current_year
from autopicks.ingestion.pipeline import CurationPipeline
from autopicks.models import RawListing
from autopicks.scoring import build_vehicle

MAKES = ["Toyota", "Honda", "Toyota", "Honda", "Nissan"]
MODELS = ["RAV4", "CR-V", "Camry", "HR-V", "Rogue"]
STATES = ["CA", "TX", "OH", "AZ", "MI"]
_VIN_CHARS = "ABCDEFGHJKLMNPRSTUVWXYZ0123456789"


def make_vin(i: int) -> str:
    chars = []
    n = i
    for _ in range(11):
        n, rem = divmod(n, len(_VIN_CHARS))
        chars.append(_VIN_CHARS[rem])
    return "BMK000" + "".join(reversed(chars))


def make_listing(i: int) -> RawListing:
    return RawListing(
        make=MAKES[i % 5],
        model=MODELS[i % 5],
        year=current_year() - 2 - (i % 9),
        price=9_000 + (i % 130) * 100,
        mileage=10_000 + (i % 150) * 1_000,
        location="Benchmark City",
        url=f"https://listings.example.com/bm-{i}",
        source="Benchmark",
        vin=make_vin(i),
        distance=float(i % 90),
        title_status="clean" if i % 11 else "salvage",
        accident_count=0 if i % 7 else 1,
        owner_count=1 + (i % 3),
        is_rental=False,
        is_fleet=False,
        has_lien=False,
        flood_damage=False,
        state_of_origin=STATES[i % 5],
    )


class _ListSource:
    name = "Benchmark"
    cost_per_call = 0.0

    def __init__(self, listings: list[RawListing]) -> None:
        self._listings = listings

    async def fetch(self) -> list[RawListing]:
        return self._listings


# ── Benchmarks ────────────────────────────────────────────────────────


def bench_apply_filters(records: int) -> tuple[float, float]:
    listings = [make_listing(i) for i in range(records)]
    start = time.perf_counter()
    for listing in listings:
        apply_filters(listing, DEFAULT_FILTER_CRITERIA)
    elapsed = time.perf_counter() - start
    return elapsed, records / max(elapsed, 1e-9)


def bench_filter_stats(records: int) -> tuple[float, int]:
    listings = [make_listing(i) for i in range(records)]
    start = time.perf_counter()
    stats = get_filter_stats(listings, DEFAULT_FILTER_CRITERIA)
    elapsed = time.perf_counter() - start
    return elapsed, stats["passed"]


def bench_disk_insert(records: int) -> tuple[float, float]:
    listings = [make_listing(i) for i in range(records)]
    vehicles = []
    for listing in listings:
        result = apply_filters(listing, DEFAULT_FILTER_CRITERIA)
        vehicles.append(build_vehicle(listing, result, DEFAULT_FILTER_CRITERIA))

    with tempfile.NamedTemporaryFile(prefix="autopicks-bench-", suffix=".db", delete=False) as tmp:
        db_path = tmp.name

    try:
        store = SqliteListingStore(db_path)
        start = time.perf_counter()
        for vehicle in vehicles:
            if not store.exists(vehicle.vin):
                store.insert(vehicle)
        elapsed = time.perf_counter() - start
        store.close()
    finally:
        for suffix in ("", "-wal", "-shm"):
            try:
                os.remove(db_path + suffix)
            except FileNotFoundError:
                pass

    return elapsed, records / max(elapsed, 1e-9)


async def bench_pipeline(records: int) -> tuple[float, int]:
    """End-to-end run with VIN validation skipped and an in-memory store."""
    listings = [make_listing(i) for i in range(records)]
    pipeline = CurationPipeline(
        PipelineConfig(skip_vin_validation=True),
        source=_ListSource(listings),
        store=SqliteListingStore(":memory:"),
    )
    start = time.perf_counter()
    result = await pipeline.run()
    elapsed = time.perf_counter() - start
    return elapsed, result.stats.stored


# ── Main ──────────────────────────────────────────────────────────────


async def main() -> None:
    parser = argparse.ArgumentParser(description="Benchmark autopicks hot paths.")
    parser.add_argument("--records", type=int, default=50_000)
    args = parser.parse_args()

    print("autopicks_hot_path_benchmark")
    print(f"records={args.records}")
    print()

    # 1. Single-listing filter decision
    filter_elapsed, filter_rps = bench_apply_filters(args.records)
    print(f"apply_filters_seconds={filter_elapsed:.6f}")
    print(f"apply_filters_listings_per_sec={filter_rps:.0f}")
    print()

    # 2. Batch statistics
    stats_elapsed, stats_passed = bench_filter_stats(args.records)
    print(f"filter_stats_seconds={stats_elapsed:.6f}")
    print(f"filter_stats_passed={stats_passed}")
    print()

    # 3. Disk insert with existence check
    disk_elapsed, disk_rps = bench_disk_insert(args.records // 4)
    print(f"disk_insert_seconds={disk_elapsed:.6f}")
    print(f"disk_insert_rows_per_sec={disk_rps:.0f}")
    print()

    # 4. Full pipeline (no network)
    pipeline_elapsed, stored = await bench_pipeline(min(args.records, 10_000))
    print(f"pipeline_seconds={pipeline_elapsed:.6f}")
    print(f"pipeline_stored={stored}")


if __name__ == "__main__":
    asyncio.run(main())
