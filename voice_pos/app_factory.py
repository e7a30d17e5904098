"""
Application factory for the voice POS server.

One process serves the JSON API, the relay WebSocket and (when present) the
static voice and cashier pages.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from . import db
from .config import CORS_ORIGINS, RELAY_PATH
from .relay.hub import RelayHub
from .routes import relay_router, sales_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db.init_db()
    logger.info("Voice POS server ready (relay at %s)", RELAY_PATH)
    yield


def create_app(static_dir: Optional[str] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        static_dir: Directory with the HTML/JS pages. Defaults to ``static/``
                    at the project root; skipped when it does not exist.

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Voice POS Relay API",
        description="Relays spoken orders into point-of-sale carts",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.relay_hub = RelayHub()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(sales_router)
    app.include_router(relay_router)

    @app.get("/health")
    def health_check():
        return {
            "status": "healthy",
            "relay_peers": app.state.relay_hub.peer_count,
        }

    if static_dir is None:
        static_dir = os.path.join(os.path.dirname(os.path.dirname(__file__)), "static")
    if os.path.isdir(static_dir):
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")

    return app
