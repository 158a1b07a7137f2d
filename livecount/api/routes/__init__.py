"""API router package.

Route modules for the livecount HTTP service. Import the composed router via:

    from livecount.api.routes import router

The composition lives in `livecount/api/routes/api_router.py`.
"""

from .api_router import router
