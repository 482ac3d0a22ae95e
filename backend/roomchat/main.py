"""Room Chat Relay Application.

This is the main entry point for the room chat relay service. Clients join
named rooms over a WebSocket, exchange text messages and location shares, and
see a live roster of who is in the room.

Modules:
    - chat.registry: in-memory room membership
    - chat.events: routing of inbound events to outbound frames
    - chat.connections: WebSocket delivery
    - chat.router: WebSocket endpoint
    - chat.rooms_router: roster REST endpoints
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from roomchat.chat.connections import ConnectionManager
from roomchat.chat.filters import ProfanityCheck, ProfanityFilter
from roomchat.chat.messages import Clock, now_ms
from roomchat.chat.registry import ChatRegistry
from roomchat.chat.rooms_router import router as rooms_router
from roomchat.chat.router import router as chat_router
from roomchat.config import AppConfig, get_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# uvicorn's access log repeats every WebSocket upgrade; not useful here.
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config: AppConfig = app.state.config

    # Apply configured log level to root logger so that
    # `logging.level: "debug"` in roomchat.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    logger.info(
        f"Chat relay listening on http://{config.server.host}:{config.server.port}"
    )

    yield  # Application runs here

    # Shutdown
    app.state.registry.clear()
    logger.info("Application shutdown complete")


def create_app(
    config: Optional[AppConfig] = None,
    *,
    clock: Optional[Clock] = None,
    profanity_filter: Optional[ProfanityCheck] = None,
) -> FastAPI:
    """Build the FastAPI application with its own registry.

    Args:
        config: Settings to use; defaults to the loaded roomchat.settings.yaml.
        clock: Timestamp source for outbound messages (milliseconds).
        profanity_filter: Content filter; defaults to the configured
            ProfanityFilter.

    Returns:
        Configured FastAPI application.
    """
    config = config or get_config()

    app = FastAPI(
        title="Room Chat Relay",
        description="Real-time room-scoped chat relay",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.registry = ChatRegistry()
    app.state.connections = ConnectionManager()
    app.state.clock = clock or now_ms
    app.state.profanity_filter = profanity_filter or ProfanityFilter(
        extra_words=config.chat.extra_profane_words,
        enabled=config.chat.profanity_filter,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register all routers
    app.include_router(chat_router)
    app.include_router(rooms_router)

    @app.get("/health")
    async def health() -> dict:
        """Health check endpoint.

        Returns:
            dict: Status object indicating the server is running.
        """
        return {"status": "ok"}

    # Mounted last so API routes take precedence over static files.
    static_dir = Path(config.static.directory)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
        logger.info(f"Serving static files from {static_dir}")

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    config = get_config()
    uvicorn.run(app, host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    run()
