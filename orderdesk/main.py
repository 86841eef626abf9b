"""
OrderDesk - Main API Entry Point
"""
from datetime import datetime, timezone
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from contextlib import asynccontextmanager
import uvicorn

from .config.settings import get_settings
from .config.logging import setup_logging, get_logger
from .config.database import init_database, cleanup_database, check_database_health
from .core.middleware import LoggingMiddleware, RequestIDMiddleware
from .core.exceptions import custom_exception_handler, validation_exception_handler
from .api.v1.endpoints import orders

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME}...")
    init_database()

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    cleanup_database()


def create_app() -> FastAPI:
    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description="Order management: listing, editing, balances and delivery finalization",
        version=settings.VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # Middleware is applied in reverse order of registration
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

    app.add_exception_handler(HTTPException, custom_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(
        orders.router,
        prefix=f"{settings.API_PREFIX}/orders",
        tags=["Orders"]
    )

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": f"{settings.APP_NAME} API",
            "version": settings.VERSION,
            "status": "operational"
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        healthy = check_database_health()
        return {
            "status": "healthy" if healthy else "degraded",
            "database": "ok" if healthy else "unavailable",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": settings.VERSION
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "orderdesk.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG
    )
