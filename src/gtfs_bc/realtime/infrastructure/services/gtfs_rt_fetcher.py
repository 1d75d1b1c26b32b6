import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

import httpx
from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from src.gtfs_bc.realtime.domain.entities import ResolutionResult, VehiclePositionEntity
from src.gtfs_bc.realtime.domain.exceptions import LiveFeedError
from src.gtfs_bc.realtime.infrastructure.services.vehicle_identity_resolver import VehicleIdentityResolver

logger = logging.getLogger(__name__)

DEFAULT_VEHICLE_COLOR = "#1c65b0"
DEFAULT_VEHICLE_TEXT_COLOR = "#FFFFFF"
SUMMARY_EXAMPLES = 3


def build_vehicle_payload(vehicle: VehiclePositionEntity, result: ResolutionResult) -> Dict[str, Any]:
    """Outbound JSON shape for one vehicle."""
    return {
        "id": vehicle.vehicle_id,
        "busNumber": result.line_number,
        "busNumberSource": result.source.value,
        "position": vehicle.position_dict(),
        "timestamp": vehicle.timestamp,
        "routeId": vehicle.route_id,
        "trip": vehicle.trip_dict(),
        "routeColor": result.route_color or DEFAULT_VEHICLE_COLOR,
        "routeTextColor": result.route_text_color or DEFAULT_VEHICLE_TEXT_COLOR,
        "routeLongName": result.route_long_name,
    }


def summarize_vehicle_ids(vehicles: Iterable[VehiclePositionEntity]) -> Dict[str, Any]:
    """Group vehicle ids by length and map company segments to observed route ids.

    Used to find new entries for the company segment table.
    """
    by_length: Dict[int, List[str]] = defaultdict(list)
    counts: Dict[int, int] = defaultdict(int)
    segments: Dict[str, Dict[str, Any]] = {}

    for vehicle in vehicles:
        vehicle_id = vehicle.vehicle_id
        if not vehicle_id:
            continue
        counts[len(vehicle_id)] += 1
        if len(by_length[len(vehicle_id)]) < SUMMARY_EXAMPLES:
            by_length[len(vehicle_id)].append(vehicle_id)

        segment = vehicle.company_segment
        if segment is None:
            continue
        entry = segments.setdefault(segment, {"route_ids": set(), "examples": []})
        if vehicle.route_id:
            entry["route_ids"].add(vehicle.route_id)
        if len(entry["examples"]) < SUMMARY_EXAMPLES:
            entry["examples"].append(vehicle_id)

    return {
        "lengths": {
            length: {"count": counts[length], "examples": by_length[length]}
            for length in sorted(counts)
        },
        "company_segments": {
            segment: {"route_ids": sorted(entry["route_ids"]), "examples": entry["examples"]}
            for segment, entry in sorted(segments.items())
        },
    }


class VehiclePositionsFetcher:
    """Fetches the live GTFS-RT vehicle positions feed and annotates each vehicle with its line."""

    def __init__(
        self,
        resolver: VehicleIdentityResolver,
        url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.resolver = resolver
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def fetch_entities(self) -> List[VehiclePositionEntity]:
        """Fetch and decode the feed. Entities without a vehicle are dropped."""
        data = await self._fetch_raw()
        feed = gtfs_realtime_pb2.FeedMessage()
        try:
            feed.ParseFromString(data)
        except DecodeError as e:
            raise LiveFeedError(f"Could not decode GTFS-RT feed: {e}") from e

        vehicles = []
        for entity in feed.entity:
            vehicle = VehiclePositionEntity.from_protobuf(entity)
            if vehicle is not None:
                vehicles.append(vehicle)
        logger.info(f"Decoded {len(feed.entity)} GTFS-RT entities, {len(vehicles)} with vehicle data")
        return vehicles

    async def fetch_vehicles(self) -> List[Dict[str, Any]]:
        """Current vehicles with position, each resolved to a line number exactly once."""
        vehicles = await self.fetch_entities()

        payload = []
        resolved = 0
        guessed = 0
        segment_routes: Dict[str, set] = defaultdict(set)
        for vehicle in vehicles:
            if not vehicle.has_position:
                continue
            result = self.resolver.resolve(
                vehicle.vehicle_id,
                trip_id=vehicle.trip_id,
                route_id=vehicle.route_id,
                block_id=vehicle.block_id,
            )
            if result.is_resolved:
                resolved += 1
            if result.source.is_heuristic:
                guessed += 1
            logger.debug(f"Vehicle {vehicle.vehicle_id}: line {result.line_number} ({result.source.value})")
            if vehicle.company_segment and vehicle.route_id:
                segment_routes[vehicle.company_segment].add(vehicle.route_id)
            payload.append(build_vehicle_payload(vehicle, result))

        for segment, route_ids in sorted(segment_routes.items()):
            logger.debug(f"Company segment {segment} seen on routes: {', '.join(sorted(route_ids))}")

        logger.info(
            f"Fetched {len(payload)} vehicles: {resolved} with line number ({guessed} guessed), "
            f"{len(payload) - resolved} unknown"
        )
        return payload

    async def _fetch_raw(self) -> bytes:
        if not self.api_key:
            raise LiveFeedError("No API key configured for the live feed")

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.get(
                    self.url,
                    params={"key": self.api_key},
                    headers={"Accept-Encoding": "gzip, deflate"},
                )
        except httpx.HTTPError as e:
            logger.error(f"HTTP error fetching vehicle positions: {e}")
            raise LiveFeedError(f"Could not reach GTFS-RT feed: {e}") from e

        if not response.is_success:
            logger.error(f"GTFS-RT feed responded with status {response.status_code}")
            raise LiveFeedError(
                f"GTFS-RT feed responded with status {response.status_code}",
                status_code=response.status_code,
            )
        if not response.content:
            raise LiveFeedError("GTFS-RT feed returned an empty body", status_code=response.status_code)
        return response.content
