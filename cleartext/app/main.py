import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from .api.routers import health, moderation
from .config import Settings, get_settings
from .core.cors import AllowListCORSMiddleware
from .core.errors import register_exception_handlers
from .core.middleware import BodySizeLimitMiddleware, log_requests
from .services.moderation import ModerationService

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )
    # basicConfig is a no-op once the root logger has handlers
    logging.getLogger().setLevel(log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info("%s running on port %s", settings.SERVICE_NAME, settings.PORT)
    logger.info("Allowed origins: %s", ", ".join(settings.allowed_origins))
    logger.info("Health check: GET /health")
    yield
    client = getattr(app.state.moderation_service, "client", None)
    if hasattr(client, "close"):
        await client.close()


def create_app(
    settings: Optional[Settings] = None,
    moderation_service: Optional[ModerationService] = None,
) -> FastAPI:
    """Build the proxy app.

    Settings are resolved once here and stay fixed for the life of the app;
    get_settings() raises if OPENAI_API_KEY is missing.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.SERVICE_NAME,
        description="Proxy relaying text to the OpenAI Moderation API",
        version=settings.VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.moderation_service = moderation_service or ModerationService(settings)

    # Last added runs first: request log -> CORS allow-list -> body size
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.MAX_BODY_BYTES)
    app.add_middleware(AllowListCORSMiddleware, allow_origins=settings.allowed_origins)
    app.middleware("http")(log_requests)

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(moderation.router)

    return app


def run() -> None:
    configure_logging()
    try:
        settings = get_settings()
    except ValueError as e:
        logger.critical("Configuration error, refusing to start: %s", e)
        sys.exit(1)

    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
