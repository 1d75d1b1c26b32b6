"""In-memory lookup tables built from the static GTFS dataset.

The four tables live together in one immutable LookupSnapshot. A rebuild
produces a new snapshot and publishes it with a single reference swap, so
a reader holding a snapshot never sees tables from two different archives.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from src.gtfs_bc.route.domain.entities.route import (
    RouteRecord,
    DEFAULT_ROUTE_COLOR,
    DEFAULT_ROUTE_TEXT_COLOR,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LookupSnapshot:
    # {route_id: line_number}
    route_map: Dict[str, str] = field(default_factory=dict)
    # {route_id: RouteRecord}
    route_info_map: Dict[str, RouteRecord] = field(default_factory=dict)
    # {trip_id: route_id}
    trip_to_route_map: Dict[str, str] = field(default_factory=dict)
    # {block_id: route_id}
    block_to_route_map: Dict[str, str] = field(default_factory=dict)
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def stats(self) -> Dict[str, int]:
        return {
            "routes": len(self.route_map),
            "trips": len(self.trip_to_route_map),
            "blocks": len(self.block_to_route_map),
        }

    def line_number_for_route(self, route_id: Optional[str]) -> Optional[str]:
        if not route_id:
            return None
        return self.route_map.get(route_id)

    def route_for_trip(self, trip_id: Optional[str]) -> Optional[str]:
        if not trip_id:
            return None
        return self.trip_to_route_map.get(trip_id)

    def route_for_block(self, block_id: Optional[str]) -> Optional[str]:
        if not block_id:
            return None
        return self.block_to_route_map.get(block_id)


EMPTY_SNAPSHOT = LookupSnapshot(built_at=datetime.min.replace(tzinfo=timezone.utc))


class GTFSLookupStore:
    """Holder of the current LookupSnapshot.

    Readers call `snapshot` once and work against that reference for the
    rest of their operation.
    """

    def __init__(self):
        self._snapshot: LookupSnapshot = EMPTY_SNAPSHOT
        self._loaded = False

    @property
    def snapshot(self) -> LookupSnapshot:
        return self._snapshot

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def stats(self) -> Dict[str, int]:
        return self._snapshot.stats

    def publish(self, snapshot: LookupSnapshot) -> None:
        """Replace all tables at once."""
        self._snapshot = snapshot
        self._loaded = True
        logger.info(
            f"Published GTFS lookup tables: {snapshot.stats['routes']} routes, "
            f"{snapshot.stats['trips']} trips, {snapshot.stats['blocks']} blocks"
        )

    def get_line_number_from_route_id(self, route_id: Optional[str]) -> Optional[str]:
        return self._snapshot.line_number_for_route(route_id)

    def get_line_number_from_trip_id(self, trip_id: Optional[str]) -> Optional[str]:
        snapshot = self._snapshot
        return snapshot.line_number_for_route(snapshot.route_for_trip(trip_id))

    def get_line_number_from_block_id(self, block_id: Optional[str]) -> Optional[str]:
        snapshot = self._snapshot
        return snapshot.line_number_for_route(snapshot.route_for_block(block_id))

    def get_route_info(self, route_id: Optional[str]) -> Optional[RouteRecord]:
        if not route_id:
            return None
        return self._snapshot.route_info_map.get(route_id)

    def get_route_color(self, route_id: Optional[str]) -> str:
        route = self.get_route_info(route_id)
        return route.css_color if route else f"#{DEFAULT_ROUTE_COLOR}"

    def get_route_text_color(self, route_id: Optional[str]) -> str:
        route = self.get_route_info(route_id)
        return route.css_text_color if route else f"#{DEFAULT_ROUTE_TEXT_COLOR}"

    def get_route_long_name(self, route_id: Optional[str]) -> str:
        route = self.get_route_info(route_id)
        return route.long_name if route else ""

    def route_examples(self, limit: int = 5) -> List[dict]:
        """First `limit` routes in file order, for the status endpoint."""
        examples = []
        for route_id, route in self._snapshot.route_info_map.items():
            if len(examples) >= limit:
                break
            examples.append({
                "id": route_id,
                "busNumber": route.line_number,
                "color": route.css_color,
                "textColor": route.css_text_color,
                "longName": route.long_name,
            })
        return examples
