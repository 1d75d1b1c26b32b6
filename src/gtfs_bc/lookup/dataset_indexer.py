"""Builds LookupSnapshot objects from the extracted routes.txt and trips.txt."""

import asyncio
import csv
import logging
import sys
import time
from pathlib import Path
from typing import Dict, Iterator, Tuple

from src.gtfs_bc.feed.domain.exceptions import DatasetIndexError
from src.gtfs_bc.lookup.gtfs_lookup_store import LookupSnapshot
from src.gtfs_bc.route.domain.entities.route import RouteRecord
from src.gtfs_bc.trip.domain.entities.trip import TripRecord

logger = logging.getLogger(__name__)

ROUTES_FILE = "routes.txt"
TRIPS_FILE = "trips.txt"

ROUTES_REQUIRED_COLUMNS = ("route_id", "route_short_name")
TRIPS_REQUIRED_COLUMNS = ("trip_id", "route_id")


class DatasetIndexer:
    """Reads the two flat tables and returns a fully built snapshot.

    Nothing is published here; the caller swaps the result into the
    GTFSLookupStore only when build() returned without raising.
    """

    def __init__(self, extract_dir: Path):
        self.extract_dir = Path(extract_dir)

    def files_present(self) -> bool:
        return (self.extract_dir / ROUTES_FILE).is_file() and (self.extract_dir / TRIPS_FILE).is_file()

    async def build(self) -> LookupSnapshot:
        """Build in a worker thread so the event loop keeps serving requests."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self.build_sync)

    def build_sync(self) -> LookupSnapshot:
        start = time.time()

        route_map: Dict[str, str] = {}
        route_info_map: Dict[str, RouteRecord] = {}
        skipped_routes = 0
        for row in self._read_rows(ROUTES_FILE, ROUTES_REQUIRED_COLUMNS):
            route = RouteRecord.from_gtfs(row)
            if route is None:
                skipped_routes += 1
                continue
            route_id = sys.intern(route.route_id)
            route_map[route_id] = route.line_number
            route_info_map[route_id] = route
        logger.info(f"{len(route_map)} routes read from {ROUTES_FILE}")

        trip_to_route_map: Dict[str, str] = {}
        block_to_route_map: Dict[str, str] = {}
        skipped_trips = 0
        for row in self._read_rows(TRIPS_FILE, TRIPS_REQUIRED_COLUMNS):
            trip = TripRecord.from_gtfs(row)
            if trip is None:
                skipped_trips += 1
                continue
            route_id = sys.intern(trip.route_id)
            trip_to_route_map[trip.trip_id] = route_id
            if trip.block_id:
                # Later rows win when a block serves several routes
                block_to_route_map[trip.block_id] = route_id
        logger.info(f"{len(trip_to_route_map)} trips read from {TRIPS_FILE}")
        logger.info(f"{len(block_to_route_map)} block ids read from {TRIPS_FILE}")

        if skipped_routes or skipped_trips:
            logger.warning(
                f"Skipped {skipped_routes} route rows and {skipped_trips} trip rows missing required keys"
            )

        snapshot = LookupSnapshot(
            route_map=route_map,
            route_info_map=route_info_map,
            trip_to_route_map=trip_to_route_map,
            block_to_route_map=block_to_route_map,
        )
        logger.info(f"GTFS lookup tables built in {time.time() - start:.2f}s")
        return snapshot

    def _read_rows(self, filename: str, required: Tuple[str, ...]) -> Iterator[dict]:
        path = self.extract_dir / filename
        try:
            with open(path, newline="", encoding="utf-8-sig") as f:
                reader = csv.DictReader(f)
                columns = [c.strip() for c in (reader.fieldnames or [])]
                missing = [c for c in required if c not in columns]
                if missing:
                    raise DatasetIndexError(f"{filename} is missing columns: {', '.join(missing)}")
                reader.fieldnames = columns
                for row in reader:
                    yield row
        except FileNotFoundError as e:
            raise DatasetIndexError(f"{filename} not found in {self.extract_dir}") from e
        except OSError as e:
            raise DatasetIndexError(f"Could not read {filename}: {e}") from e
        except (csv.Error, UnicodeDecodeError) as e:
            raise DatasetIndexError(f"Could not parse {filename}: {e}") from e
