from pathlib import Path
import logging
from typing import Optional

from dotenv import load_dotenv
load_dotenv()  # Load .env file before importing settings

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded

from core.config import settings
from core.containers import GTFSStaticContainer
from core.rate_limiter import limiter, rate_limit_exceeded_handler, RateLimits
from src.gtfs_bc.feed.infrastructure.services.refresh_scheduler import lifespan_with_scheduler

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
# httpx logs request URLs at INFO, and provider URLs carry the API key as a query parameter
logging.getLogger("httpx").setLevel(logging.WARNING)


def create_app(container: Optional[GTFSStaticContainer] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Nothing is loaded here; the lifespan loads the static dataset and
    starts the refresh scheduler.
    """
    # Settings validation is done automatically in core/config.py on import
    if container is None:
        container = GTFSStaticContainer(settings=settings)

    app = FastAPI(
        title="Bus Tracker API",
        description="Live vehicle positions with line numbers resolved from the static GTFS dataset",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan_with_scheduler,
    )
    app.state.container = container

    # CORS middleware - Public API, no credentials needed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Register routers
    from adapters.http.api.gtfs.routers import realtime_router, status_router
    app.include_router(realtime_router, prefix="/api")
    app.include_router(status_router)

    @app.get("/health")
    @limiter.limit(RateLimits.HEALTH)
    async def health_check(request: Request):
        """Health check endpoint.

        Returns 503 until the lookup tables are loaded into memory.
        """
        store = request.app.state.container.lookup_store()

        if not store.is_loaded:
            return JSONResponse(
                status_code=503,
                content={
                    "status": "loading",
                    "message": "GTFS data is being loaded into memory"
                }
            )

        return {
            "status": "healthy",
            "gtfs_store": {
                "loaded": True,
                "stats": store.stats
            }
        }

    # Frontend (mounted last so API routes take precedence)
    frontend_dir = Path(container.settings().FRONTEND_DIR)
    if not frontend_dir.is_absolute():
        frontend_dir = Path(__file__).parent / frontend_dir
    if frontend_dir.exists():
        app.mount("/", StaticFiles(directory=str(frontend_dir), html=True), name="frontend")

    return app


app = create_app()
