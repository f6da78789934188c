"""
FastAPI application entry point.

Run with:
    uvicorn quakerisk.main:app --reload --port 8000
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# ── Core infrastructure ──
from quakerisk.core.config import settings
from quakerisk.core.logging_config import setup_logging, get_logger
from quakerisk.core.errors import register_error_handlers
from quakerisk.core.middleware import RequestLoggingMiddleware

# ── API routers ──
from quakerisk.api.v1.earthquakes import router as earthquake_router
from quakerisk.api.v1.geocode import router as geocode_router

# ── Initialise logging ──
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown events."""
    logger.info(
        "Starting %s v%s [%s]",
        settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT,
    )
    yield
    logger.info("Shutting down %s", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Historical earthquake search and descriptive risk analysis. "
        "Geocodes a location, fetches nearby events from the USGS catalog, "
        "and summarises magnitude, timing, distance and depth into a "
        "heuristic risk score with preparedness recommendations."
    ),
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── Middleware stack (outermost first) ──

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS if not settings.CORS_ALLOW_ALL else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# ── Error handlers ──
register_error_handlers(app)

# ── Register routers ──
app.include_router(earthquake_router)
app.include_router(geocode_router)


@app.get("/", tags=["root"])
async def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "modules": [
            "geocoding",
            "earthquake-search",
            "risk-analysis",
        ],
        "docs": "/docs",
    }


@app.get("/health/live", tags=["health"])
async def liveness():
    """Liveness probe."""
    return {"status": "alive"}
