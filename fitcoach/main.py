"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order
- Can create multiple app instances if needed (e.g., for testing)

For local development:
    uvicorn fitcoach.main:app --reload

For production:
    gunicorn fitcoach.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import auth, client, coach, health, navigation
from .config.settings import get_settings

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Runs on startup and shutdown. Startup logs the mode we run in and
    warns about missing configuration.
    """
    settings = get_settings()

    logger.info(
        "FitCoach API starting",
        extra={
            "version": settings.api_version,
            "mock_mode": {"snowflake": settings.snowflake_mock_mode},
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        # Readiness reports this too; the process keeps running
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    logger.info("FitCoach API shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Backend for a fitness-coaching app with two roles.

        ## Roles

        - **Coaches** follow their clients: dashboard, client management,
          client profiles and a weekly schedule.
        - **Clients** follow their programme: next session, session details,
          feedback, wellness check-ins, history, statistics and goals.

        An identity's role comes from its role claim when it has one, and
        otherwise from its email address.

        ## Authentication

        `POST /api/v1/auth/sign-in` returns a bearer token. Send it as
        `Authorization: Bearer <token>` on every other request.

        ## Navigation

        `GET /api/v1/navigation?path=...` says what to render for a path:
        the loading indicator, the sign-in form, a page of the caller's
        route tree, or not-found.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    # Configure allowed origins via CORS_ORIGINS environment variable
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        auth.router,
        prefix="/api/v1/auth",
        tags=["Auth"],
    )

    app.include_router(
        navigation.router,
        prefix="/api/v1/navigation",
        tags=["Navigation"],
    )

    app.include_router(
        client.router,
        prefix="/api/v1/client",
        tags=["Client"],
    )

    app.include_router(
        coach.router,
        prefix="/api/v1/coach",
        tags=["Coach"],
    )

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "FitCoach API",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        We log the full error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error. Please contact support if this persists."
            }
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "fitcoach.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
