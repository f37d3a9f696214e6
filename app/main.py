"""
FastAPI Application Entry Point

Restaurant Platform Backend
One REST + WebSocket service shared by the admin dashboard, the POS app,
the kitchen display and the customer ordering app.

Endpoints:
    - /api/auth, /api/menu, /api/orders, /api/payments, /api/webhooks
    - /api/settings, /api/day-session, /api/kitchen, /api/staff
    - /api/admin, /api/chat, /api/upload
    - /ws: realtime events
    - /uploads: uploaded images
    - GET /health: System health check
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

import redis
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from app import realtime
from app.api.middleware import (
    RequestLoggingMiddleware,
    app_error_handler,
    general_exception_handler,
    http_exception_handler,
    integrity_error_handler,
    validation_exception_handler,
)
from app.api.routes import ALL_ROUTERS
from app.core.config import get_settings, setup_logging
from app.core.exceptions import AppError
from app.database import check_connection, connect_db, engine, init_db
from app.schemas import HealthResponse

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await connect_db()
    if settings.is_development:
        await init_db()
    else:
        logger.info("Schema managed by Alembic (scripts/migrate_runtime.py)")

    missing = settings.validate_production_config()
    if missing:
        logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Backend for the restaurant admin dashboard, point of sale, "
        "kitchen display and customer ordering apps."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(IntegrityError, integrity_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

for router in ALL_ROUTERS:
    app.include_router(router)
app.include_router(realtime.router)

app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍽️ Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


def _redis_status() -> str:
    try:
        client = redis.Redis.from_url(
            settings.redis_url, socket_timeout=2, socket_connect_timeout=2
        )
        client.ping()
        client.close()
        return "healthy"
    except (redis.exceptions.RedisError, OSError) as e:
        logger.error(f"Redis health check failed: {e}")
        return f"unhealthy: {e}"


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check() -> HealthResponse:
    """Verify the database and the Celery broker are reachable."""
    db_status = "healthy" if await check_connection() else "unhealthy"
    redis_status = await asyncio.to_thread(_redis_status)

    overall = "operational" if db_status == redis_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        version=settings.app_version,
        environment=settings.env_mode.value,
        timestamp=datetime.now(timezone.utc),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
