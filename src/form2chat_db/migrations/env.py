"""Alembic environment for the chat_sessions / submissions / uploaded_files schema.

Migrations run over psycopg2 (``DatabaseSettings.sync_url``); the runtime
engine uses asyncpg against the same database.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from form2chat_db.config import load_db_settings
from form2chat_db.models.base import Base

# Import all models so Base.metadata knows about their tables.
import form2chat_db.models.session  # noqa: F401
import form2chat_db.models.submission  # noqa: F401
import form2chat_db.models.upload  # noqa: F401

config = context.config

# alembic.ini only holds a placeholder; "%" must be doubled for configparser
config.set_main_option("sqlalchemy.url", load_db_settings().sync_url.replace("%", "%%"))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode — emit SQL without connecting."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode — connect and apply."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            # JSONB / enum column changes should show up in autogenerate
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
