"""
FastAPI application entry point.
Application factory, lifespan and global exception handlers.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
from pydantic import ValidationError as PydanticValidationError
from typing import Optional
import logging

from realestate.config import Settings, get_settings
from realestate.routers import session_router, properties_router, favorites_router, geolocation_router
from realestate.services.container import ServiceContainer, build_container
from realestate.services.error_handler import ErrorHandlerService
from realestate.utils.exceptions import APIException

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to use, defaults to the environment settings
        container: Pre-built service container; when omitted one is built on startup

    Returns:
        Configured FastAPI application
    """
    settings = settings or (container.settings if container else get_settings())

    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.
        Builds the service container on startup and closes it on shutdown.
        """
        logger.info(f"Starting {settings.app_name} v{settings.app_version}")
        logger.info(f"Environment: {settings.environment}")

        owned = getattr(app.state, "container", None) is None
        if owned:
            app.state.container = await build_container(settings)

        try:
            await app.state.container.properties.fetch_all()
        except APIException as e:
            # The catalog is fetched again on the first listing request
            logger.error(f"Initial catalog fetch failed: {e.detail}")

        yield

        logger.info("Shutting down application")
        if owned:
            await app.state.container.aclose()
            app.state.container = None

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
    Real-estate listing catalog with a favorites overlay and address geocoding.

    ## Features

    * **Catalog**: Cached property listings synchronized with the document store
    * **Favorites**: Per-user favorites applied to every cached listing
    * **Geolocation**: Best-effort geocoding on save and bulk repair of missing coordinates

    ## Session

    Sign in with `POST /api/v1/session` and a session token issued by the authentication provider.
    """,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "Session", "description": "Client session sign-in and sign-out"},
            {"name": "Properties", "description": "Property catalog operations"},
            {"name": "Favorites", "description": "Favorites of the signed-in user"},
            {"name": "Geolocation", "description": "Coordinate maintenance"},
            {"name": "Health", "description": "System health endpoints"},
        ],
        lifespan=lifespan,
    )

    if container is not None:
        app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(session_router, prefix=settings.api_v1_prefix)
    app.include_router(properties_router, prefix=settings.api_v1_prefix)
    app.include_router(favorites_router, prefix=settings.api_v1_prefix)
    app.include_router(geolocation_router, prefix=settings.api_v1_prefix)

    @app.exception_handler(APIException)
    async def api_exception_handler(request: Request, exc: APIException):
        """Handle custom API exceptions with structured error responses."""
        return ErrorHandlerService.handle_api_exception(exc, request)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle FastAPI request validation errors with detailed field information."""
        return ErrorHandlerService.handle_validation_error(exc, request)

    @app.exception_handler(PydanticValidationError)
    async def pydantic_validation_exception_handler(request: Request, exc: PydanticValidationError):
        """Handle Pydantic validation errors with detailed field information."""
        return ErrorHandlerService.handle_validation_error(exc, request)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle FastAPI HTTP exceptions with structured error responses."""
        return ErrorHandlerService.handle_http_exception(exc, request)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions with secure error responses."""
        return ErrorHandlerService.handle_unexpected_error(exc, request)

    @app.get("/", tags=["Health"])
    async def root():
        """Basic service information."""
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "environment": settings.environment,
            "documentation": {
                "swagger_ui": "/docs",
                "redoc": "/redoc",
                "openapi_json": "/openapi.json"
            },
            "api_prefix": settings.api_v1_prefix
        }

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """
        Health check endpoint with store connectivity test.
        Used by Docker health checks and load balancers.
        """
        current = getattr(request.app.state, "container", None)
        if current is None:
            raise HTTPException(status_code=503, detail="Service is starting")

        store_healthy = True
        if current.health_check is not None:
            store_healthy = await current.health_check()

        if not store_healthy:
            raise HTTPException(status_code=503, detail="Document store connection failed")

        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "store": "connected",
            "cached_properties": len(current.cache),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "realestate.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
