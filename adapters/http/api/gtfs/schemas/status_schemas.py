"""Static dataset status and admin schemas."""

from typing import List, Optional

from adapters.http.api.gtfs.schemas.realtime_schemas import CamelModel


class LookupStatsSchema(CamelModel):
    routes: int
    trips: int
    blocks: int


class RouteExampleSchema(CamelModel):
    id: str
    bus_number: str
    color: str
    text_color: str
    long_name: str


class ExamplesSchema(CamelModel):
    routes: List[RouteExampleSchema]


class DownloadMetadataSchema(CamelModel):
    last_update_time: Optional[str] = None
    download_count: int
    last_download: Optional[str] = None
    monthly_limit: int
    next_scheduled_update: Optional[str] = None
    is_synthetic: bool


class SchedulerStatusSchema(CamelModel):
    running: bool
    next_refresh_at: Optional[str] = None
    last_run_at: Optional[str] = None
    run_count: int
    error_count: int


class GTFSStatusResponse(CamelModel):
    loaded: bool
    stats: LookupStatsSchema
    examples: ExamplesSchema
    download_metadata: Optional[DownloadMetadataSchema] = None
    using_synthetic_data: bool
    scheduler: SchedulerStatusSchema


class RefreshResponse(CamelModel):
    status: str  # success, error
    message: str
