"""Realtime-related response schemas."""

from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serialized with camelCase keys, the shape the map client reads."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PositionSchema(CamelModel):
    latitude: float
    longitude: float
    bearing: Optional[float] = None
    speed: Optional[float] = None


class TripSchema(CamelModel):
    trip_id: Optional[str] = None
    route_id: Optional[str] = None
    block_id: Optional[str] = None


class VehicleResponse(CamelModel):
    id: str
    bus_number: str  # "unknown" when no tier matched
    bus_number_source: str  # direct-override, dataset-route, ..., unresolved
    position: Optional[PositionSchema] = None
    timestamp: Optional[int] = None
    route_id: Optional[str] = None
    trip: Optional[TripSchema] = None
    route_color: str
    route_text_color: str
    route_long_name: Optional[str] = None
