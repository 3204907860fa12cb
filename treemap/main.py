"""
FastAPI application entry point for the tree map view service.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from treemap.config import settings
from treemap.middleware.error_handler import ErrorHandlerMiddleware
from treemap.api import dependencies
from treemap.api.v1.routers import map_view, trees
from treemap.infrastructure.external_api_client import ExternalAPIError, get_api_client

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Start the map view eagerly and tear it down on shutdown.

    An unreachable tree inventory API does not stop the service from
    starting; the map view is started again on the first request.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version} (log level {settings.log_level})")
    logger.info(
        f"Map view: center=({settings.map_center_longitude}, {settings.map_center_latitude}) "
        f"zoom={settings.map_zoom}, cluster_radius={settings.cluster_radius}px, "
        f"cluster_max_zoom={settings.cluster_max_zoom}"
    )
    logger.info(
        f"Interaction: long_press={settings.long_press_dwell_ms}ms, "
        f"viewport_debounce={settings.viewport_debounce_ms}ms"
    )

    try:
        await dependencies.get_map_session()
    except ExternalAPIError as e:
        logger.warning(f"Map view not started, tree inventory API unavailable: {e.message}")

    yield

    logger.info("Shutting down map view...")
    await dependencies.close_map_session()
    await get_api_client().close()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Clustered map of planted trees.

    Keeps the map, the "visible trees" sidebar and the category highlight in
    step as the viewport moves, and turns mouse and touch input into tree
    popups (tap) or the new tree form (one second long press on empty map).
    Adds and removes go through the tree inventory API and only reach the
    map once confirmed.
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ErrorHandlerMiddleware)

app.include_router(trees.router, prefix="/api/v1")
app.include_router(map_view.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Service status and whether the map view has finished loading
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "map_ready": dependencies.map_session_ready(),
    }
