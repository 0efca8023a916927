"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ticketing.api.errors import register_exception_handlers
from ticketing.api.v1.router import router as v1_router
from ticketing.config import Settings, get_settings
from ticketing.database import create_engine, create_session_factory, create_tables
from ticketing.event_lock import build_event_locks
from ticketing.redis_client import close_redis, create_redis

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure process-wide logging."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # basicConfig is a no-op once the server has configured the root logger
    logging.getLogger("ticketing").setLevel(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the per-process resources and tear them down on shutdown."""
    settings: Settings = app.state.settings

    # Startup
    logger.info(f"Starting {settings.APP_NAME}...")

    engine = create_engine(settings)
    if settings.DB_CREATE_TABLES:
        await create_tables(engine)

    redis_client = None
    if settings.LOCK_BACKEND == "redis":
        redis_client = create_redis(settings)
        await redis_client.ping()
        logger.info("Redis connection established")

    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.redis = redis_client
    app.state.event_locks = build_event_locks(settings, redis_client)
    logger.info(f"Using {settings.LOCK_BACKEND} event locks")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}...")

    await app.state.event_locks.close()
    await close_redis(redis_client)
    await engine.dispose()
    logger.info("Database and Redis connections closed")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="""
## Event Ticketing API

Create, list, update and delete events and their bookings.

### Availability
- **Availability**: capacity minus the tickets of all current bookings,
  always recomputed from the bookings themselves
- **No overbooking**: the availability check and the booking write run as one
  unit per event, so concurrent requests never exceed an event's capacity
- **Ticket changes**: raising a booking's ticket count only needs the increase
  to be available; lowering it always succeeds
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routers
    app.include_router(v1_router, prefix="/api")

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "lock_backend": settings.LOCK_BACKEND,
        }

    register_exception_handlers(app)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "detail": str(exc) if settings.DEBUG else None,
            },
        )

    return app


def run():
    """Run the application with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "ticketing.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    run()
