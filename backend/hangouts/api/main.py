"""
Hangout Scheduler - FastAPI Application Setup

Main FastAPI application that provides:
- Calendar item management and recurring stamp expansion
- Stateless availability projection and common slot search
- Hangout request lifecycle endpoints
- Health monitoring
"""

import asyncio
import logging
from contextlib import asynccontextmanager
import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..utils.config import config
from ..utils.helpers import create_error_response
from ..services.hangout_store import InMemoryHangoutStore
from ..scheduling.hangout_coordinator import (
    HangoutCoordinator, HangoutNotFoundError, HangoutPermissionError, HangoutStateError
)
from ..scheduling.models import SchedulingConfigurationError
from .availability_routes import availability_router
from .calendar_routes import calendar_router
from .hangout_routes import hangout_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.api.log_level),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "Hangout Scheduler"
SERVICE_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info(f"Starting {SERVICE_NAME}...")

    store = InMemoryHangoutStore()
    if not await store.initialize():
        logger.error("Failed to initialize hangout store")
        raise RuntimeError("Hangout store initialization failed")

    app.state.store = store
    app.state.coordinator = HangoutCoordinator(store, config.scheduling.step_minutes)
    logger.info(f"{SERVICE_NAME} started successfully")

    try:
        yield
    finally:
        logger.info(f"Shutting down {SERVICE_NAME}...")
        await app.state.store.cleanup()
        logger.info("Shutdown complete")


def _error(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=create_error_response(message, code))


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain failures to HTTP responses with the standard error envelope"""

    @app.exception_handler(SchedulingConfigurationError)
    async def configuration_error_handler(request: Request, exc: SchedulingConfigurationError):
        logger.warning(f"Invalid scheduling configuration on {request.url.path}: {exc}")
        return _error(422, str(exc), "INVALID_CONFIGURATION")

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=create_error_response(
                "Request validation failed", "VALIDATION_ERROR", {"errors": jsonable_encoder(exc.errors())}
            )
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions with consistent format"""
        return _error(exc.status_code, str(exc.detail), "HTTP_ERROR")

    @app.exception_handler(HangoutNotFoundError)
    async def not_found_handler(request: Request, exc: HangoutNotFoundError):
        return _error(404, str(exc), "HANGOUT_NOT_FOUND")

    @app.exception_handler(HangoutPermissionError)
    async def permission_handler(request: Request, exc: HangoutPermissionError):
        return _error(403, str(exc), "PERMISSION_DENIED")

    @app.exception_handler(HangoutStateError)
    async def state_handler(request: Request, exc: HangoutStateError):
        return _error(409, str(exc), "INVALID_STATE")

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}: {str(exc)}")
        detail = str(exc) if config.api.debug else "An unexpected error occurred"
        return _error(500, detail, "INTERNAL_ERROR")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application

    Returns:
        FastAPI: Configured application instance
    """
    app = FastAPI(
        title=SERVICE_NAME,
        description="Find meeting times that fit every participant's calendar",
        version=SERVICE_VERSION,
        docs_url="/docs" if config.api.debug else None,
        redoc_url="/redoc" if config.api.debug else None,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request, call_next):
        start_time = asyncio.get_running_loop().time()
        response = await call_next(request)
        process_time = asyncio.get_running_loop().time() - start_time

        logger.info(
            f"{request.method} {request.url.path} "
            f"completed in {process_time:.3f}s with status {response.status_code}"
        )
        return response

    @app.get("/")
    async def root():
        """Root endpoint with basic service information"""
        return {
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "status": "operational",
            "endpoints": {
                "calendar": "/api/calendar",
                "availability": "/api/availability",
                "hangouts": "/api/hangouts",
                "health": "/health"
            }
        }

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint for monitoring and load balancing"""
        store_ready = getattr(request.app.state, "store", None) is not None
        coordinator_ready = getattr(request.app.state, "coordinator", None) is not None
        healthy = store_ready and coordinator_ready
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "status": "healthy" if healthy else "unavailable",
                "services": {
                    "store": store_ready,
                    "coordinator": coordinator_ready
                }
            }
        )

    register_exception_handlers(app)

    app.include_router(calendar_router)
    app.include_router(availability_router)
    app.include_router(hangout_router)

    return app


# Create the app instance
app = create_app()


def start_server():
    """Start the FastAPI server with uvicorn"""
    uvicorn.run(
        "hangouts.api.main:app",
        host=config.api.host,
        port=config.api.port,
        reload=config.api.debug,
        log_level=config.api.log_level.lower(),
        log_config=config.get_log_config(),
        access_log=True
    )


if __name__ == "__main__":
    start_server()
