"""FastAPI application entrypoint for the fuel quota service."""

from fastapi import FastAPI

from . import __version__
from .api.deps import close_collaborators
from .api.v1.router import api_router
from .core.config import get_settings
from .core.database import create_tables
from .core.logging_config import configure_logging
from .jobs import register_scheduler


def create_app() -> FastAPI:
    """Instantiate and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)
    app = FastAPI(title="Fuel Quota API", version=__version__)
    app.include_router(api_router, prefix="/api/v1")

    if settings.create_tables_on_startup:

        @app.on_event("startup")
        def prepare_database() -> None:
            create_tables()

    @app.on_event("shutdown")
    def release_collaborators() -> None:
        close_collaborators()

    register_scheduler(app)
    return app


app = create_app()
