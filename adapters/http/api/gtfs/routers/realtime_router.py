import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from core.containers import GTFSStaticContainer
from core.rate_limiter import limiter, RateLimits
from src.gtfs_bc.realtime.domain.exceptions import LiveFeedError
from adapters.http.api.gtfs.dependencies import get_container
from adapters.http.api.gtfs.schemas import VehicleResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["GTFS Realtime"])


@router.get("/vehicles", response_model=List[VehicleResponse])
@limiter.limit(RateLimits.VEHICLES)
async def get_vehicles(request: Request, container: GTFSStaticContainer = Depends(get_container)):
    """Current vehicle positions, each annotated with its line number.

    `busNumberSource` tells which resolution tier produced `busNumber`;
    route-id-literal and heuristic-* values are guesses.
    """
    fetcher = container.vehicle_positions_fetcher()
    try:
        vehicles = await fetcher.fetch_vehicles()
    except LiveFeedError as e:
        logger.error(f"Error fetching vehicle positions: {e}")
        raise HTTPException(status_code=500, detail=f"Could not fetch vehicle data: {e}")

    return [VehicleResponse.model_validate(v) for v in vehicles]
