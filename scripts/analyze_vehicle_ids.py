#!/usr/bin/env python3
"""Analyze vehicle ids in the live GTFS-RT feed.

Default mode fetches the feed once and prints vehicle ids grouped by length,
plus which route ids each company segment (characters 6..10 of 16-character
ids) was seen on. Use it to find entries missing from the company segment
table.

--resolve resolves the given ids against the already extracted dataset,
without any provider call.

Usage:
    PYTHONPATH=. python scripts/analyze_vehicle_ids.py
    PYTHONPATH=. python scripts/analyze_vehicle_ids.py --resolve 9031021000557753 9031021000444499
"""

import sys
import asyncio
import logging
import argparse
from typing import List, Tuple

from dotenv import load_dotenv
load_dotenv()

from core.config import Settings
from core.containers import GTFSStaticContainer
from src.gtfs_bc.feed.domain.exceptions import DatasetIndexError
from src.gtfs_bc.realtime.domain.entities import ResolutionResult
from src.gtfs_bc.realtime.domain.exceptions import LiveFeedError
from src.gtfs_bc.realtime.infrastructure.services.gtfs_rt_fetcher import summarize_vehicle_ids

logger = logging.getLogger(__name__)


def format_summary(summary: dict) -> List[str]:
    lines = ["Vehicle ids by length:"]
    for length, info in summary["lengths"].items():
        lines.append(f"  length {length}: {info['count']} vehicles, e.g. {', '.join(info['examples'])}")

    lines.append("Company segment -> route ids:")
    if not summary["company_segments"]:
        lines.append("  (no 16-character ids)")
    for segment, info in summary["company_segments"].items():
        route_ids = ", ".join(info["route_ids"]) or "-"
        lines.append(f"  {segment}: routes {route_ids} (e.g. {', '.join(info['examples'])})")
    return lines


def resolve_offline(container: GTFSStaticContainer, vehicle_ids: List[str]) -> List[Tuple[str, ResolutionResult]]:
    """Build the lookup tables from disk and resolve each id without live trip data."""
    indexer = container.dataset_indexer()
    store = container.lookup_store()
    if indexer.files_present():
        store.publish(indexer.build_sync())
    else:
        logger.warning(f"No extracted GTFS data in {indexer.extract_dir}; using vehicle id rules only")

    resolver = container.vehicle_identity_resolver()
    return [(vehicle_id, resolver.resolve(vehicle_id)) for vehicle_id in vehicle_ids]


async def analyze_live_feed(container: GTFSStaticContainer) -> dict:
    fetcher = container.vehicle_positions_fetcher()
    vehicles = await fetcher.fetch_entities()
    return summarize_vehicle_ids(vehicles)


def main():
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    parser = argparse.ArgumentParser(
        description='Analyze vehicle ids from the live GTFS-RT feed'
    )
    parser.add_argument(
        '--resolve',
        nargs='+',
        metavar='VEHICLE_ID',
        help='Resolve these vehicle ids against the extracted dataset and exit'
    )

    args = parser.parse_args()
    container = GTFSStaticContainer(settings=Settings())

    if args.resolve:
        try:
            results = resolve_offline(container, args.resolve)
        except DatasetIndexError as e:
            logger.error(f"Could not read extracted GTFS data: {e}")
            sys.exit(1)
        for vehicle_id, result in results:
            print(f"{vehicle_id}: line {result.line_number} ({result.source.value})")
        sys.exit(0)

    try:
        summary = asyncio.run(analyze_live_feed(container))
    except LiveFeedError as e:
        logger.error(f"Could not fetch live feed: {e}")
        sys.exit(1)

    for line in format_summary(summary):
        print(line)


if __name__ == '__main__':
    main()
