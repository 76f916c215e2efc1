"""Health check endpoints.

Public endpoints for service health monitoring.
"""

from datetime import datetime

from fastapi import APIRouter, Depends

from api.dependencies import get_config, get_store
from api.models import HealthResponse
from scoreme import ScoreConfig
from scoreme.storage import IndexStore, StoreUnavailable


router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
def health_check(config: ScoreConfig = Depends(get_config), store: IndexStore = Depends(get_store)):
    """Detailed health check."""
    try:
        index_exists = store.exists()
    except StoreUnavailable:
        index_exists = False

    return HealthResponse(
        status="healthy" if index_exists else "degraded",
        timestamp=datetime.now().isoformat(),
        backend=config.backend,
        index_exists=index_exists,
    )
