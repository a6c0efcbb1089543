#!/usr/bin/env python3
"""Cron entry point: run one curation pass and exit non-zero on failure.

Usage::

    python scripts/run_daily_search.py --source sample --skip-vin-validation
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from autopicks.config import PipelineConfig, load_dotenv, resolve_source_key
from autopicks.ingestion.pipeline import run_daily_search


def build_config(args: argparse.Namespace) -> PipelineConfig:
    config = PipelineConfig.from_env()
    if args.source:
        config.data_source = resolve_source_key(args.source)
    if args.skip_vin_validation:
        config.skip_vin_validation = True
    if args.db_path:
        config.db_path = args.db_path
    return config


async def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run the daily used-listing curation.")
    parser.add_argument("--source", default="", help="sample | auto_dev (default: env)")
    parser.add_argument(
        "--skip-vin-validation",
        action="store_true",
        help="treat every filtered listing as VIN-valid",
    )
    parser.add_argument("--db-path", default="", help="SQLite path (default: env)")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv()
    config = build_config(args)

    result = await run_daily_search(config)
    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
