"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from form2chat_server.routes.chat import router as chat_router
from form2chat_server.routes.forms import router as forms_router
from form2chat_server.routes.sessions import router as sessions_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the versioned API prefix."""
    app.include_router(chat_router, prefix=API_PREFIX)
    app.include_router(sessions_router, prefix=API_PREFIX)
    app.include_router(forms_router, prefix=API_PREFIX)
