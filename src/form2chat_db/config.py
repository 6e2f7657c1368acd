"""Database configuration — connection and pool settings from the environment.

The connection target comes from ``DATABASE_URL`` when set, otherwise from
the ``PG_HOST`` / ``PG_PORT`` / ``PG_USER`` / ``PG_PASSWORD`` /
``PG_DATABASE`` parts.  Either way the URL may be written with or without
the ``+asyncpg`` driver suffix; :class:`DatabaseSettings` hands out both
flavours:

    sync_url   — psycopg2, used by Alembic migrations
    async_url  — asyncpg, used by the runtime engine
"""

import os
from dataclasses import dataclass

_ASYNC_SCHEME = "postgresql+asyncpg://"
_SYNC_SCHEME = "postgresql://"


@dataclass(frozen=True)
class DatabaseSettings:
    """Immutable database configuration read once per engine."""

    url: str
    pool_size: int = 5
    max_overflow: int = 10
    # Log every SQL statement (FORM2CHAT_DB_ECHO=1), for local debugging
    echo: bool = False

    @property
    def sync_url(self) -> str:
        if self.url.startswith(_ASYNC_SCHEME):
            return _SYNC_SCHEME + self.url[len(_ASYNC_SCHEME):]
        return self.url

    @property
    def async_url(self) -> str:
        if self.url.startswith(_SYNC_SCHEME):
            return _ASYNC_SCHEME + self.url[len(_SYNC_SCHEME):]
        return self.url


def _url_from_parts() -> str:
    host = os.getenv("PG_HOST", "localhost")
    port = os.getenv("PG_PORT", "5432")
    user = os.getenv("PG_USER", "form2chat")
    password = os.getenv("PG_PASSWORD", "form2chat")
    database = os.getenv("PG_DATABASE", "form2chat")
    return f"{_SYNC_SCHEME}{user}:{password}@{host}:{port}/{database}"


def load_db_settings() -> DatabaseSettings:
    """Build settings from ``DATABASE_URL`` / ``PG_*`` environment variables."""
    return DatabaseSettings(
        url=os.getenv("DATABASE_URL") or _url_from_parts(),
        pool_size=int(os.getenv("PG_POOL_SIZE", "5")),
        max_overflow=int(os.getenv("PG_MAX_OVERFLOW", "10")),
        echo=os.getenv("FORM2CHAT_DB_ECHO", "").lower() in ("1", "true", "yes"),
    )
