"""Main FastAPI application"""
import logging
import logging.config
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from starlette.middleware.base import BaseHTTPMiddleware

# --- slowapi imports ---
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from config import Settings, load_settings
from errors import register_exception_handlers
from routes import router as api_router

# Get application logger instance (configured by configure_logging)
logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Unified logging configuration with Rich for uvicorn and application loggers."""
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(name)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "default": {
                "class": "rich.logging.RichHandler",
                "formatter": "default",
                "level": "DEBUG",
                "rich_tracebacks": True,
                "show_time": True,
                "show_path": False,
                "log_time_format": "%Y-%m-%d %H:%M:%S",
                "markup": False,
            },
        },
        "loggers": {
            "uvicorn": {"handlers": ["default"], "level": "INFO", "propagate": False},
            "uvicorn.error": {"handlers": ["default"], "level": "INFO", "propagate": False},
            "uvicorn.access": {"handlers": ["default"], "level": "INFO", "propagate": False},
            "": { # Root logger for our application
                "handlers": ["default"],
                "level": level,
                "propagate": False,
            },
        },
    })


# --- Middleware for Request Body Size Limit ---
class LimitBodySizeMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, max_body_size: int):
        super().__init__(app)
        self.max_body_size = max_body_size

    async def dispatch(self, request: Request, call_next):
        content_length_header = request.headers.get("content-length")
        if content_length_header:
            try:
                content_length = int(content_length_header)
            except ValueError:
                logger.warning("Request rejected: Invalid Content-Length header.")
                return JSONResponse({"error": "Invalid Content-Length header."}, status_code=400)
            if content_length > self.max_body_size:
                logger.warning(f"Request rejected: body size {content_length} exceeds limit {self.max_body_size}.")
                return JSONResponse(
                    {"error": f"Maximum request body size ({self.max_body_size} bytes) exceeded."},
                    status_code=413,
                )
        # Chunked bodies without Content-Length are not checked here
        return await call_next(request)


async def enforce_rate_limit(request: Request):
    """Router dependency; the limit check itself is done by the limiter.limit wrapper."""


def build_lifespan(settings: Settings, collection: Optional[AsyncIOMotorCollection]):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = None
        # An injected collection (tests, embedding) has no connection to manage
        if collection is None:
            # Startup: Connect to MongoDB
            logger.info(f"Connecting to MongoDB database '{settings.db_name}'...")
            try:
                client = AsyncIOMotorClient(settings.mongodb_uri, tz_aware=True)
                await client.admin.command('ping')
                app.state.expenses_collection = client[settings.db_name].get_collection(settings.collection_name)
                logger.info(f"Successfully connected to MongoDB database: {settings.db_name}")
            except Exception as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                app.state.expenses_collection = None

        yield # Application runs here

        # Shutdown: Close MongoDB connection
        if client is not None:
            logger.info("Closing MongoDB connection...")
            client.close()
            logger.info("MongoDB connection closed.")

    return lifespan


def create_app(settings: Optional[Settings] = None, collection: Optional[AsyncIOMotorCollection] = None) -> FastAPI:
    """
    Application factory.

    `collection` injects an already constructed expenses collection (or a test
    double); when omitted the lifespan connects using `settings`.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Expense Records API",
        description="API for creating, listing, updating and deleting expenses.",
        version="0.1.0",
        lifespan=build_lifespan(settings, collection),
    )
    app.state.expenses_collection = collection

    register_exception_handlers(app)

    # --- Rate Limiter State and Handler ---
    limiter = Limiter(key_func=get_remote_address, enabled=bool(settings.rate_limit))
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # --- Middleware (last added runs first) ---
    app.add_middleware(LimitBodySizeMiddleware, max_body_size=settings.max_body_size)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Make the collection accessible via request state
    @app.middleware("http")
    async def add_app_config_to_request(request: Request, call_next):
        """Adds the expenses collection to the request state."""
        request.state.expenses_collection = request.app.state.expenses_collection
        return await call_next(request)

    # Rate limit applied as a router dependency so it does not depend on route lookup
    dependencies = []
    if settings.rate_limit:
        dependencies.append(Depends(limiter.limit(settings.rate_limit)(enforce_rate_limit)))
    app.include_router(api_router, tags=["expenses"], dependencies=dependencies)
    return app


if __name__ == "__main__":
    import uvicorn
    settings = load_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
