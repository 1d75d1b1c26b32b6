import logging
import re
from typing import Optional

from src.gtfs_bc.lookup.gtfs_lookup_store import GTFSLookupStore, LookupSnapshot
from src.gtfs_bc.realtime.domain.entities import ResolutionResult, ResolutionSource
from src.gtfs_bc.realtime.infrastructure.services.vehicle_identity_tables import VehicleIdentityTables

logger = logging.getLogger(__name__)

ROUTE_ID_LITERAL = re.compile(r"[0-9]{1,3}")
DIGIT_GROUP = re.compile(r"[0-9]{1,2}")
TWO_DIGITS = re.compile(r"[0-9]{2}")

COMPANY_SEGMENT_ID_LENGTH = 16
COMPANY_SEGMENT_SLICE = slice(6, 10)


class VehicleIdentityResolver:
    """Maps a live vehicle to a line number.

    Tiers, first match wins:
    1. direct override table
    2. route_id in the dataset
    3. trip_id -> route_id in the dataset
    4. block_id -> route_id in the dataset
    5. route_id that is a bare 1-3 digit number
    6. company segment of a 16-character vehicle id
    7. first 1-2 digit group in the vehicle id with a value in 1..99
    8. unresolved

    Tiers 5-7 are guesses; the result's source says which tier answered.
    """

    def __init__(self, store: GTFSLookupStore, tables: Optional[VehicleIdentityTables] = None):
        self.store = store
        self.tables = tables or VehicleIdentityTables()

    def resolve(
        self,
        vehicle_id: Optional[str],
        trip_id: Optional[str] = None,
        route_id: Optional[str] = None,
        block_id: Optional[str] = None,
    ) -> ResolutionResult:
        if not vehicle_id:
            return ResolutionResult.unresolved()

        snapshot = self.store.snapshot

        line_number = self.tables.direct_overrides.get(vehicle_id)
        if line_number:
            logger.debug(f"Direct override for vehicle {vehicle_id} -> {line_number}")
            return ResolutionResult(line_number=line_number, source=ResolutionSource.DIRECT_OVERRIDE)

        result = self._from_dataset(snapshot, route_id, ResolutionSource.DATASET_ROUTE)
        if result is None:
            result = self._from_dataset(snapshot, snapshot.route_for_trip(trip_id), ResolutionSource.DATASET_TRIP)
        if result is None:
            result = self._from_dataset(snapshot, snapshot.route_for_block(block_id), ResolutionSource.DATASET_BLOCK)
        if result is not None:
            return result

        if route_id and ROUTE_ID_LITERAL.fullmatch(route_id):
            return ResolutionResult(line_number=route_id, source=ResolutionSource.ROUTE_ID_LITERAL)

        line_number = self._from_company_segment(vehicle_id)
        if line_number:
            return ResolutionResult(line_number=line_number, source=ResolutionSource.HEURISTIC_COMPANY_SEGMENT)

        line_number = self._from_digit_groups(vehicle_id)
        if line_number:
            return ResolutionResult(line_number=line_number, source=ResolutionSource.HEURISTIC_DIGITS)

        logger.debug(f"Could not identify line number for vehicle {vehicle_id}")
        return ResolutionResult.unresolved()

    @staticmethod
    def _from_dataset(
        snapshot: LookupSnapshot,
        route_id: Optional[str],
        source: ResolutionSource,
    ) -> Optional[ResolutionResult]:
        line_number = snapshot.line_number_for_route(route_id)
        if not line_number:
            return None

        route = snapshot.route_info_map.get(route_id)
        return ResolutionResult(
            line_number=line_number,
            source=source,
            route_id=route_id,
            route_color=route.css_color if route else None,
            route_text_color=route.css_text_color if route else None,
            route_long_name=route.long_name if route else None,
        )

    def _from_company_segment(self, vehicle_id: str) -> Optional[str]:
        if len(vehicle_id) != COMPANY_SEGMENT_ID_LENGTH:
            return None

        segment = vehicle_id[COMPANY_SEGMENT_SLICE]
        line_number = self.tables.company_segments.get(segment)
        if line_number:
            return line_number

        # "00NN" segments carry the line number in their last two digits
        if segment.startswith("00"):
            tail = segment[2:]
            if TWO_DIGITS.fullmatch(tail) and int(tail) > 0:
                return tail.lstrip("0")
        return None

    @staticmethod
    def _from_digit_groups(vehicle_id: str) -> Optional[str]:
        for group in DIGIT_GROUP.findall(vehicle_id):
            number = int(group)
            if 0 < number < 100:
                return str(number)
        return None
