"""
FastAPI Application Entry Point

Restaurant Ordering Platform
Mock text generator in development, Gemini in staging/production.

Endpoints:
    - /api/restaurant/*: Restaurant directory
    - /api/menu/*: Menu catalog
    - /api/order/*: Order placement and status workflow
    - /api/ai/*: Advisory assistant
    - GET /health: System health check
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import redis
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from app.core.config import get_settings, setup_logging
from app.core.errors import ErrorCode, ProcedureError
from app.database import engine, get_db, init_db
from app.routers import ai, menu, order, restaurant
from app.schemas import ErrorResponse, HealthResponse
from app.services.assistant import get_text_generator
from app.services.assistant.base import BaseTextGenerator

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()

    generator = get_text_generator()
    logger.info(f"Text Generation: {generator.provider_name}")
    logger.info(f"Ledger export: {'enabled' if settings.ledger_export_enabled else 'disabled'}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"Missing production config: {missing}")

    logger.info("Application ready")

    yield

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Multi-tenant restaurant ordering backend: restaurants, menus, "
        "orders with a status workflow, and an AI menu assistant."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(restaurant.router)
app.include_router(menu.router)
app.include_router(order.router)
app.include_router(ai.router)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def _error_response(code: ErrorCode, detail: str) -> JSONResponse:
    body = ErrorResponse(error=code.value, detail=detail)
    return JSONResponse(status_code=code.http_status, content=body.model_dump())


@app.exception_handler(ProcedureError)
async def procedure_error_handler(request: Request, exc: ProcedureError) -> JSONResponse:
    """Tagged business errors are returned verbatim."""
    if exc.code == ErrorCode.INTERNAL:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path}: {exc.code.value} {exc.message}")
    return _error_response(exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Structural validation failures map to BAD_REQUEST."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
        for error in exc.errors()
    )
    return _error_response(ErrorCode.BAD_REQUEST, problems or "Invalid request")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")
    detail = str(exc) if settings.debug else "An unexpected error occurred"
    return _error_response(ErrorCode.INTERNAL, detail)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


def _ping_redis() -> None:
    client = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
    try:
        client.ping()
    finally:
        client.close()


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    generator: BaseTextGenerator = Depends(get_text_generator),
) -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {e}"
        logger.error(f"Database health check failed: {e}")

    redis_status = "healthy"
    try:
        await run_in_threadpool(_ping_redis)
    except redis.RedisError as e:
        redis_status = f"unhealthy: {e}"
        logger.error(f"Redis health check failed: {e}")

    generator_status = "healthy" if await generator.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, redis_status, generator_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        text_generation=f"{generator.provider_name}: {generator_status}",
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
