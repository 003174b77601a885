"""Main FastAPI application entry point."""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from access_control.config import settings
from access_control.database import engine, Base
from access_control.logging import setup_logging, RequestIdMiddleware
from access_control.rate_limit import limiter
from access_control.api.routes import router
# Import models to register them with SQLAlchemy Base
from access_control.models import audit, domain  # noqa: F401


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = structlog.get_logger(__name__)
    if settings.auto_create_db:
        # Create database tables
        Base.metadata.create_all(bind=engine)
    logger.info("startup", app=settings.app_name, environment=settings.environment)
    yield
    logger.info("shutdown")


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title=settings.app_name,
        description="Decides whether an access card may open a door, and keeps the audit trail.",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(RequestIdMiddleware)

    # Wildcard origins are incompatible with credentials
    origins = settings.cors_origin_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Include API routes
    app.include_router(router, prefix="/api/v1", tags=["access-control"])

    @app.get("/")
    def root():
        return {
            "name": settings.app_name,
            "version": "1.0.0",
            "status": "running",
            "docs": "/docs",
        }

    # Health check
    @app.get("/health")
    def health_check():
        return {"status": "healthy", "service": "access-control-api"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
