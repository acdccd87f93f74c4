"""API route modules for the GlowCheck analysis API."""

from glowcheck.routes.health import router as health_router
from glowcheck.routes.analysis import router as analysis_router


def register_routes(app) -> None:
    """Register all route modules with the FastAPI app."""
    app.include_router(health_router)
    app.include_router(analysis_router, prefix="/analysis", tags=["analysis"])
