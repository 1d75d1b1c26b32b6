import hmac
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from core.containers import GTFSStaticContainer
from core.rate_limiter import limiter, RateLimits
from adapters.http.api.gtfs.dependencies import get_container
from adapters.http.api.gtfs.schemas import GTFSStatusResponse, RefreshResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["GTFS Static"])


@router.get("/api/gtfs-status", response_model=GTFSStatusResponse)
@limiter.limit(RateLimits.STATUS)
async def get_gtfs_status(request: Request, container: GTFSStaticContainer = Depends(get_container)):
    """Lookup table sizes, a few example routes and the download bookkeeping."""
    store = container.lookup_store()
    loader = container.static_dataset_loader()
    scheduler = container.refresh_scheduler()

    metadata = loader.metadata
    scheduler_status = scheduler.status

    return {
        "loaded": store.is_loaded,
        "stats": store.stats,
        "examples": {"routes": store.route_examples(limit=5)},
        "download_metadata": metadata.to_dict(scheduler.refresh_interval) if metadata else None,
        "using_synthetic_data": loader.is_synthetic,
        "scheduler": {
            "running": scheduler_status["running"],
            "next_refresh_at": scheduler_status["next_refresh_at"],
            "last_run_at": scheduler_status["last_run_at"],
            "run_count": scheduler_status["run_count"],
            "error_count": scheduler_status["error_count"],
        },
    }


@router.post("/admin/refresh-gtfs", response_model=RefreshResponse)
@limiter.limit(RateLimits.ADMIN_REFRESH)
async def refresh_gtfs(
    request: Request,
    x_admin_token: str = Header(None, alias="X-Admin-Token"),
    container: GTFSStaticContainer = Depends(get_container),
):
    """Force a re-download of the static dataset.

    Uses one call of the provider's monthly quota. The old tables keep
    serving requests until the new ones are published.

    Requires X-Admin-Token header for authentication.
    """
    admin_token = container.settings().ADMIN_TOKEN
    # Constant-time comparison to prevent timing attacks
    if not x_admin_token or not admin_token:
        raise HTTPException(status_code=401, detail="Unauthorized: Missing admin token")
    if not hmac.compare_digest(admin_token, x_admin_token):
        raise HTTPException(status_code=401, detail="Unauthorized: Invalid admin token")

    scheduler = container.refresh_scheduler()
    success = await scheduler.trigger_refresh()

    if not success:
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": "GTFS data refresh failed"},
        )
    return RefreshResponse(status="success", message="GTFS data refreshed")
