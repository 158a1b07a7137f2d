"""Central API router composition.

Mounts the edge-function style routes under `/functions/v1` and the
watch-session routes at the root.
"""

from fastapi import APIRouter

from .viewer_tracking import router as viewer_tracking_router
from .streams import router as streams_router
from .watch_sessions import router as watch_sessions_router

functions_router = APIRouter(prefix="/functions/v1", tags=["functions"])
functions_router.include_router(viewer_tracking_router)
functions_router.include_router(streams_router)

router = APIRouter()
router.include_router(functions_router)
router.include_router(watch_sessions_router)
