"""FastAPI application for the form2chat turn protocol.

``create_app()`` wires the form store and the chat engine onto
``app.state`` at startup; ``cli()`` backs the ``form2chat-server`` script.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from form2chat.engine import ChatEngine
from form2chat.errors import StoreIOError
from form2chat.forms import FormStore
from form2chat.recovery import RecoverySigner
from form2chat_db.engine import dispose_engine, get_engine

from form2chat_server.config import ServerSettings, load_settings
from form2chat_server.errors import (
    generic_error_handler,
    key_error_handler,
    store_error_handler,
    value_error_handler,
)
from form2chat_server.routes import register_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Load every form (a broken one aborts startup) and build the engine."""
    settings: ServerSettings = app.state.settings

    forms = FormStore(form_dir=settings.form_dir)
    forms.load()
    if settings.recovery_secret is None:
        logger.warning("FORM2CHAT_RECOVERY_SECRET is not set; recovery snapshots are unsigned")

    app.state.forms = forms
    app.state.engine = ChatEngine(forms, signer=RecoverySigner(settings.recovery_secret))
    logger.info("Serving %d forms", len(forms.forms))

    yield

    await dispose_engine()


async def health() -> dict:
    """Readiness probe: the database answers ``SELECT 1``."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("Health check failed: %s", exc)
        return {"status": "error", "detail": str(exc)}
    return {"status": "ok"}


def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build the application; ``settings`` defaults to the environment."""
    settings = settings or load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="form2chat",
        description="Conversational form filling, one turn at a time",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StoreIOError, store_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(KeyError, key_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    app.add_api_route("/health", health, methods=["GET"])
    register_routes(app)
    return app


# uvicorn form2chat_server.app:app
app = create_app()


def cli() -> None:
    """Entry point of the ``form2chat-server`` console script."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "form2chat_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
