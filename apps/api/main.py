"""FastAPI application for the seating service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import Settings, settings
from core.errors import ReservationSystemError
from core.logging import setup_logging
from db.session import close_db, init_db
from apps.api.routers import availability, reservations, restaurants, waitlist


logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and the schema on startup, release the engine on shutdown."""
    config: Settings = app.state.settings
    setup_logging(config)
    logger.info(f"Starting {config.app_name} ({config.app_env})")

    try:
        init_db()
    except Exception:
        logger.exception("Database initialisation failed")
        raise

    yield

    logger.info(f"Stopping {config.app_name}")
    close_db()


async def business_error_handler(request: Request, exc: ReservationSystemError) -> JSONResponse:
    """NotFound, BadRequest and Conflict errors keep their message and status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()},
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": {"message": "Internal server error"}},
    )


def create_app(config: Settings = settings) -> FastAPI:
    """
    Build the API application.

    Args:
        config: Settings used for CORS, route prefix and startup

    Returns:
        FastAPI: application with every router mounted under the API prefix
    """
    application = FastAPI(
        title=config.app_name,
        description="Restaurant seating, availability and waitlist service",
        version=API_VERSION,
        lifespan=lifespan,
    )
    application.state.settings = config

    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(ReservationSystemError, business_error_handler)
    application.add_exception_handler(Exception, unexpected_error_handler)

    for module in (restaurants, availability, reservations, waitlist):
        application.include_router(module.router, prefix=config.api_v1_prefix)

    @application.get("/")
    async def root():
        return {"app": config.app_name, "version": API_VERSION}

    @application.get("/health")
    async def health_check():
        """Liveness probe."""
        return {"status": "healthy", "environment": config.app_env}

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "apps.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
