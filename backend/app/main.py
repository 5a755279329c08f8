"""FastAPI entrypoint for the Logbook backend."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routers import health, logbook
from .config import load_settings
from .infra.logging import configure_logging, get_logger

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Instantiate the FastAPI app and register routers."""

    settings = load_settings()
    configure_logging(settings.log_level)
    application = FastAPI(title="Logbook API", version="0.1.0")
    allowed_origins = {
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:4173",
        "http://127.0.0.1:4173",
    }
    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(allowed_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    for router in (health.router, logbook.router):
        application.include_router(router)
    logger.info(
        "app_created",
        extra={"environment": settings.environment, "log_level": settings.log_level},
    )
    return application


app = create_app()
