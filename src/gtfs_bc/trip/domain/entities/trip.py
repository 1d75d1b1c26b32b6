from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TripRecord:
    """GTFS trip projection: the trip and block a route is served by."""

    trip_id: str
    route_id: str
    block_id: Optional[str] = None

    @classmethod
    def from_gtfs(cls, row: dict) -> Optional["TripRecord"]:
        """Create TripRecord from GTFS CSV row.

        Returns None when trip_id or route_id is missing. Extra columns are ignored.
        """
        trip_id = (row.get("trip_id") or "").strip()
        route_id = (row.get("route_id") or "").strip()
        if not trip_id or not route_id:
            return None

        block_id = (row.get("block_id") or "").strip()
        return cls(trip_id=trip_id, route_id=route_id, block_id=block_id or None)
