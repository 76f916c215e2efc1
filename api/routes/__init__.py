"""API route modules."""

from api.routes.health import router as health_router
from api.routes.scoring import router as scoring_router
from api.routes.tools import router as tools_router

__all__ = ["health_router", "scoring_router", "tools_router"]
