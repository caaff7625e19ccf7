from __future__ import annotations

import contextlib
import random
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from chroma.logic.catalog import load_catalog
from chroma.messaging.router import MessageRouter
from chroma.server.settings import ChromaServerSettings
from chroma.server.websocket import websocket_endpoint
from chroma.session.broadcast import BroadcastGateway
from chroma.session.registry import RoomRegistry
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

    from starlette.requests import Request
    from starlette.websockets import WebSocket

    from chroma.logic.types import ColorPrompt


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def status(request: Request) -> JSONResponse:
    registry: RoomRegistry = request.app.state.registry
    return JSONResponse(
        {
            "status": "ok",
            "rooms": registry.room_count,
            "connections": registry.gateway.connection_count,
        },
    )


def build_registry(settings: ChromaServerSettings, catalog: Sequence[ColorPrompt] | None = None) -> RoomRegistry:
    """Wire a RoomRegistry from settings. Raises CatalogError for an unusable catalog."""
    if catalog is None:
        catalog = load_catalog(settings.catalog_path)
    return RoomRegistry(
        catalog,
        BroadcastGateway(),
        max_rounds=settings.max_rounds,
        min_players=settings.min_players,
        countdown_seconds=settings.round_end_countdown_seconds,
        tick_interval=settings.countdown_tick_seconds,
        guess_time_limit=settings.guess_time_limit_seconds,
        room_id_length=settings.room_id_length,
        rng=random.Random(settings.shuffle_seed),  # noqa: S311
    )


def create_app(
    settings: ChromaServerSettings | None = None,
    registry: RoomRegistry | None = None,
    catalog: Sequence[ColorPrompt] | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = ChromaServerSettings()

    if registry is None:
        registry = build_registry(settings, catalog)

    message_router = MessageRouter(registry)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router, allowed_origin=settings.ws_allowed_origin)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        yield
        await registry.shutdown()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.registry = registry

    logger.info("room server ready", max_rounds=settings.max_rounds, min_players=settings.min_players)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    _settings = ChromaServerSettings()
    setup_logging(_settings.log_dir)
    return create_app(settings=_settings)
