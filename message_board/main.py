"""ASGI application for the message board."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from message_board import __version__
from message_board.api.middleware.error_handler import error_handler_middleware
from message_board.api.middleware.latency_logging import latency_logging_middleware
from message_board.api.routes import health, messages
from message_board.core.config import Settings, get_settings
from message_board.core.message_events import init_message_broker, shutdown_message_broker

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logging.basicConfig(level=get_settings().log_level.upper(), format=LOG_FORMAT)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the message broker for the lifetime of the app.

    Closing it on the way out ends every open message stream, so the
    server does not wait on idle subscribers during shutdown.
    """
    settings = get_settings()
    logger.info(
        "Starting %s (%s), list policy %s",
        settings.app_name,
        settings.app_env,
        settings.messages_list_policy.value,
    )
    broker = await init_message_broker()
    logger.info("Message broker ready (queue size %d)", broker.config.queue_size)

    yield

    await shutdown_message_broker()
    logger.info("Stopped %s", settings.app_name)


def _install_middleware(app: FastAPI, settings: Settings) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Last added runs first: latency logging wraps the error renderer, so
    # rendered 4xx/5xx responses are timed and logged too.
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)
    app.add_middleware(BaseHTTPMiddleware, dispatch=latency_logging_middleware)


def create_app() -> FastAPI:
    """Build the message board application.

    Health probes are mounted at the root; message routes under /api/v1.
    API docs are only served when DEBUG is on.
    """
    settings = get_settings()
    docs_enabled = settings.debug

    app = FastAPI(
        title="Message Board API",
        description="Submit messages and read back your own history",
        version=__version__,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    _install_middleware(app, settings)

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(messages.router)

    app.include_router(health.router)
    app.include_router(api_v1)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("message_board.main:app", host=settings.host, port=settings.port, reload=settings.debug)
