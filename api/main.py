"""FastAPI application configuration.

Main entry point for the optional scoring web front-end ("easy mode").
Implements rate limiting and security headers.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from api.dependencies import close_store, limiter
from api.routes import health_router, scoring_router, tools_router
from scoreme import __version__


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    yield
    close_store()


app = FastAPI(
    title="Score Me",
    description="""
    Breach-corpus password scoring:
    - Paste-a-batch HTML form and JSON scoring API
    - Prefix-sharded local breach index (no network lookups)
    - Rarity bonus for passwords that are rare in the corpus
    - SIEM-compatible audit events
    - Rate limiting
    """,
    version=__version__,
    lifespan=lifespan
)

# Attach rate limiter to app
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# Security headers middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next) -> Response:
    """Add security headers to all responses.

    Headers follow OWASP security recommendations:
    - X-Content-Type-Options: Prevents MIME-type sniffing
    - X-Frame-Options: Prevents clickjacking attacks
    - Content-Security-Policy: Restricts resource loading and form targets
    - Referrer-Policy: Controls referrer information leakage
    - Cache-Control: Submitted passwords and scores must not be cached
    """
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Content-Security-Policy"] = (
        "default-src 'self'; form-action 'self'; frame-ancestors 'none'"
    )
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, private"
    response.headers["Pragma"] = "no-cache"

    return response


# Register routers
app.include_router(health_router)
app.include_router(scoring_router)
app.include_router(tools_router)


if __name__ == "__main__":
    import uvicorn
    from scoreme.config import API_HOST, API_PORT
    uvicorn.run(app, host=API_HOST, port=API_PORT)
