"""
Channel Service — FastAPI application entry point.

Configures the app, middleware, and registers the matching and
attribution routers.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from channel_service.api import attribution, matching
from channel_service.config import settings
from channel_service.core.logging_config import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    configure_logging(settings.LOG_LEVEL)
    from channel_service.database import engine
    from channel_service.redis_client import redis

    yield

    # Shutdown: close connections
    await engine.dispose()
    await redis.aclose()


app = FastAPI(
    title=settings.APP_NAME,
    description="Matches users to trading channels and attributes the resulting conversions.",
    version="0.1.0",
    lifespan=lifespan,
)

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Routers ---
app.include_router(matching.router, prefix="/api/v1/matching", tags=["Matching"])
app.include_router(attribution.router, prefix="/api/v1/attribution", tags=["Attribution"])


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers and monitoring."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": "0.1.0",
    }
