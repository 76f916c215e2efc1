"""FastAPI dependencies.

Provides the shared index store, lookup engine and scorer to the routes,
plus client IP extraction with trusted proxy validation for audit events
and rate limiting.
"""

from threading import Lock
from typing import Optional

from fastapi import Request
from slowapi import Limiter

from scoreme import ScoreConfig, open_store
from scoreme.config import TRUSTED_PROXIES
from scoreme.lookup import LookupEngine
from scoreme.scorer import Scorer
from scoreme.storage import IndexStore


_config: Optional[ScoreConfig] = None
_store: Optional[IndexStore] = None
_store_lock = Lock()


def _get_client_ip(request: Request) -> str:
    """Extract client IP from request with trusted proxy validation.

    SECURITY: Only trusts X-Forwarded-For header if the direct connection
    comes from a configured trusted proxy. This prevents clients from
    dodging the rate limit by setting the X-Forwarded-For header.

    Args:
        request: FastAPI request object

    Returns:
        Client IP address (from X-Forwarded-For if trusted proxy, else direct)
    """
    direct_ip = request.client.host if request.client else "unknown"

    if TRUSTED_PROXIES and direct_ip in TRUSTED_PROXIES:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            # Take the first IP in the chain (original client)
            client_ip = forwarded.split(",")[0].strip()
            if client_ip and ("." in client_ip or ":" in client_ip):
                return client_ip

    return direct_ip


# Rate limiter keyed on the validated client IP
limiter = Limiter(key_func=_get_client_ip, default_limits=["100/minute"])


def configure(config: ScoreConfig) -> None:
    """Select the configuration used by the app (called by the serve command)."""
    global _config
    close_store()
    _config = config


def get_config() -> ScoreConfig:
    global _config
    if _config is None:
        _config = ScoreConfig.from_env()
    return _config


def get_store() -> IndexStore:
    """Open the configured index store once and share it between requests."""
    global _store
    with _store_lock:
        if _store is None:
            _store = open_store(get_config())
        return _store


def close_store() -> None:
    global _store
    with _store_lock:
        if _store is not None:
            _store.close()
            _store = None


def get_engine() -> LookupEngine:
    return LookupEngine(get_store(), get_config())


def get_scorer() -> Scorer:
    return Scorer(get_engine(), get_config())
