"""Global exception handlers — map SDK exceptions to HTTP status codes.

The SDK raises ``ValueError`` subclasses for conditions such as restarting
a submitted session, ``KeyError`` for unknown forms and ``StoreIOError``
when the database fails.  Rather than catching these in every route, we
install global handlers that pick the right HTTP status code.  Validation
problems with an answer never get here: the engine turns them into a
re-prompt.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from form2chat.errors import StoreIOError

logger = logging.getLogger(__name__)

# --- Keyword patterns in ValueError messages and their HTTP status codes ---
# Checked in order; first match wins.
_VALUE_ERROR_PATTERNS: list[tuple[str, int]] = [
    # restart (or another mutation) on a finalized session
    ("already submitted", 409),
    ("not found", 404),
]


# --- Client-safe messages keyed by HTTP status code ---
# Internal details (session ids, form ids) stay in the server log; the
# client receives only a generic description.
_SAFE_MESSAGES: dict[int, str] = {
    404: "Resource not found",
    409: "Session already submitted",
    400: "Invalid request",
}


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Map SDK ``ValueError`` to a contextual HTTP error response.

    Inspects the exception message to decide between 409 (submitted),
    404 (not found) or 400 (anything else).

    The raw exception message is logged server-side but **never** sent
    to the client.
    """
    msg = str(exc)
    status = 400
    for pattern, code in _VALUE_ERROR_PATTERNS:
        if pattern in msg.lower():
            status = code
            break

    logger.warning("ValueError [%d] at %s: %s", status, request.url, msg)
    safe_detail = _SAFE_MESSAGES.get(status, "Invalid request")
    return JSONResponse(status_code=status, content={"detail": safe_detail})


async def key_error_handler(request: Request, exc: KeyError) -> JSONResponse:
    """Map ``KeyError`` (e.g. unknown form id) to 404."""
    logger.warning("KeyError at %s: %s", request.url, exc)
    return JSONResponse(status_code=404, content={"detail": "Resource not found"})


async def store_error_handler(request: Request, exc: StoreIOError) -> JSONResponse:
    """Map session store failures to 503; the caller decides whether to retry."""
    logger.error("StoreIOError at %s: %s", request.url, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Session store unavailable"},
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
