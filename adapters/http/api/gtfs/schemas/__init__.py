"""Centralized API schemas for GTFS endpoints."""

from .realtime_schemas import (
    CamelModel,
    PositionSchema,
    TripSchema,
    VehicleResponse,
)

from .status_schemas import (
    LookupStatsSchema,
    RouteExampleSchema,
    ExamplesSchema,
    DownloadMetadataSchema,
    SchedulerStatusSchema,
    GTFSStatusResponse,
    RefreshResponse,
)

__all__ = [
    "CamelModel",
    "PositionSchema",
    "TripSchema",
    "VehicleResponse",
    "LookupStatsSchema",
    "RouteExampleSchema",
    "ExamplesSchema",
    "DownloadMetadataSchema",
    "SchedulerStatusSchema",
    "GTFSStatusResponse",
    "RefreshResponse",
]
