from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class VehiclePositionEntity:
    """GTFS-RT Vehicle Position entity.

    Only the fields line resolution and the map client consume.
    """
    vehicle_id: str
    trip_id: Optional[str] = None
    route_id: Optional[str] = None
    block_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    bearing: Optional[float] = None
    speed: Optional[float] = None
    timestamp: Optional[int] = None

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def company_segment(self) -> Optional[str]:
        """Characters 6..10 of a 16-character vehicle id."""
        if len(self.vehicle_id) != 16:
            return None
        return self.vehicle_id[6:10]

    def position_dict(self) -> Optional[dict]:
        if not self.has_position:
            return None
        position = {"latitude": self.latitude, "longitude": self.longitude}
        if self.bearing is not None:
            position["bearing"] = self.bearing
        if self.speed is not None:
            position["speed"] = self.speed
        return position

    def trip_dict(self) -> Optional[dict]:
        if not (self.trip_id or self.route_id or self.block_id):
            return None
        return {
            "tripId": self.trip_id,
            "routeId": self.route_id,
            "blockId": self.block_id,
        }

    @classmethod
    def from_protobuf(cls, entity) -> Optional["VehiclePositionEntity"]:
        """Create from a gtfs_realtime_pb2.FeedEntity.

        Returns None when the entity carries no vehicle position.
        """
        if not entity.HasField('vehicle'):
            return None

        vp = entity.vehicle
        trip = vp.trip if vp.HasField('trip') else None
        descriptor = vp.vehicle if vp.HasField('vehicle') else None
        position = vp.position if vp.HasField('position') else None

        def _optional(message, field: str):
            if message is None or not message.HasField(field):
                return None
            return getattr(message, field) or None

        return cls(
            vehicle_id=descriptor.id if descriptor is not None else "",
            trip_id=_optional(trip, 'trip_id'),
            route_id=_optional(trip, 'route_id'),
            block_id=_block_id(trip),
            latitude=position.latitude if position is not None else None,
            longitude=position.longitude if position is not None else None,
            bearing=position.bearing if position is not None and position.HasField('bearing') else None,
            speed=position.speed if position is not None and position.HasField('speed') else None,
            timestamp=vp.timestamp if vp.HasField('timestamp') else None,
        )


def _block_id(trip) -> Optional[str]:
    # block_id is not part of the core TripDescriptor; some feeds carry it
    # as an extension field, so read it only when the message declares it.
    if trip is None or 'block_id' not in trip.DESCRIPTOR.fields_by_name:
        return None
    return getattr(trip, 'block_id') or None
