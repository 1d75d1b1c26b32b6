from .realtime_router import router as realtime_router
from .status_router import router as status_router

__all__ = ["realtime_router", "status_router"]
