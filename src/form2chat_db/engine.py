"""Process-wide async engine and session factory.

Both are built on first use from :func:`load_db_settings` (or settings
passed to :func:`get_engine` before that) and live until
:func:`dispose_engine`, which the server calls on shutdown.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from form2chat_db.config import DatabaseSettings, load_db_settings

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine(settings: DatabaseSettings | None = None) -> AsyncEngine:
    """Return the shared engine, creating it on the first call.

    ``settings`` only matters for that first call.
    """
    global _engine
    if _engine is None:
        settings = settings or load_db_settings()
        _engine = create_async_engine(
            settings.async_url,
            echo=settings.echo,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            # Drop connections PostgreSQL closed while the pool held them
            pool_pre_ping=True,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the shared ``AsyncSession`` factory bound to :func:`get_engine`.

    ``expire_on_commit=False`` keeps ORM rows readable after ``get_db``
    commits, which the route handlers rely on when serialising.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine (no-op if never built)."""
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
