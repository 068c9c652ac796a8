from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__ as version, APP_TITLE
from .database.database import engine
from .database.entities import Base
from .dependencies import get_settings
from .logging_utils import get_logger
from .routes import (
    attendees,
    auth,
    coupons,
    luma,
    register,
    settings,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Creates missing tables only; migrations live in alembic/versions
    Base.metadata.create_all(bind=engine)
    logger.info("Application startup complete")
    yield
    logger.info("Shutting down...")
    engine.dispose()


def _create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app_settings = get_settings()

    app = FastAPI(
        title=APP_TITLE,
        description="Event registration and single-use coupon distribution",
        version=version,
        lifespan=lifespan,
        docs_url=None if app_settings.env == "production" else "/docs",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


def _register_routers(app: FastAPI):
    """Register all application routers."""
    # Public
    app.include_router(register.router, tags=["register"])
    app.include_router(settings.public_router, tags=["settings"])
    app.include_router(auth.router, prefix="/auth", tags=["auth"])

    # Admin
    app.include_router(settings.router, prefix="/admin/settings", tags=["admin"])
    app.include_router(attendees.router, prefix="/admin/attendees", tags=["admin"])
    app.include_router(coupons.router, prefix="/admin/coupons", tags=["admin"])
    app.include_router(luma.router, prefix="/admin/luma", tags=["admin"])


# Create the application
app = _create_app()
_register_routers(app)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "coupon_desk.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().env == "dev",
    )
