"""Main FastAPI application for Kouban."""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Load environment variables using centralized loader
from kouban.core.env_loader import ensure_env_loaded
ensure_env_loaded()

from kouban import __version__
from kouban.api.routers import breakdown
from kouban.api.settings import get_settings
from kouban.core.config import load_config, set_config
from kouban.core.exceptions import KoubanError
from kouban.core.logging_config import get_logger

logger = get_logger("api.main")

settings = get_settings()

if settings.config_path:
    set_config(load_config(settings.config_path))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler; closes the shared oracle on shutdown."""
    logger.info("Starting Kouban API...")
    yield
    oracle = getattr(app.state, "oracle", None)
    if oracle is not None:
        await oracle.aclose()
        app.state.oracle = None
    logger.info("Shutting down Kouban API...")


app = FastAPI(
    title="Kouban API",
    description="Scene breakdown tables from screenplay text",
    version=__version__,
    lifespan=lifespan,
)

# Rate limiter shared with the breakdown router
app.state.limiter = breakdown.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(KoubanError)
async def kouban_error_handler(request: Request, exc: KoubanError):
    status_code = breakdown.status_code_for(exc)
    logger.warning(f"{request.url.path} failed ({status_code}): {exc}")
    return JSONResponse(status_code=status_code, content=breakdown.error_body(exc))


# CORS middleware for web UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(breakdown.router, prefix="/api/breakdown", tags=["breakdown"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Kouban API", "version": __version__}


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


def start_server(host: str = None, port: int = None, reload: bool = False):
    """Start the FastAPI server."""
    uvicorn.run(
        "kouban.api.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # Suppress INFO logs for each request
    )


if __name__ == "__main__":
    start_server()
