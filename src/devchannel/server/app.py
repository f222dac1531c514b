"""FastAPI app factory + lifespan for the signalling channel server."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from devchannel.bootstrap import generate
from devchannel.config import ChannelSettings, ServerOptions
from devchannel.server.hub import ChannelHub
from devchannel.server.routes import channel_router, router

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.settings
    log.info("devchannel starting up; channel endpoint at %s", settings.sock_path)
    app.state.hub = ChannelHub(loop=asyncio.get_running_loop())
    yield
    app.state.hub.close()
    log.info("devchannel shutting down")


def create_app(options: ServerOptions | None = None) -> FastAPI:
    """Build the app. Raises ResolutionError before anything binds."""
    if options is None:
        options = ServerOptions.from_env()
    settings = ChannelSettings.from_options(options)

    app = FastAPI(
        title="devchannel",
        description="Live-reload signalling channel for a development server",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.client_script = generate(settings.config)
    app.include_router(router)
    app.include_router(channel_router(settings.sock_path))
    return app
