"""Alembic environment for the Sitewatch schema"""
from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context

from sitewatch.core.config import settings
from sitewatch.core.database import Base

# Import all models so Alembic can detect them
from sitewatch.db import models  # noqa: F401

# this is the Alembic Config object
config = context.config

# Interpret the config file for Python logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Set the SQLAlchemy URL from settings (use sync URL for Alembic)
database_url_sync = settings.database_url_sync
# Alembic runs with a sync driver
for async_prefix, sync_prefix in (("postgresql+asyncpg://", "postgresql://"), ("sqlite+aiosqlite://", "sqlite://")):
    if database_url_sync.startswith(async_prefix):
        database_url_sync = database_url_sync.replace(async_prefix, sync_prefix, 1)

config.set_main_option("sqlalchemy.url", database_url_sync)

# add your model's MetaData object here
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (generates SQL only)."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    """Run migrations in 'online' mode."""
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode with sync engine (Alembic requires sync)."""
    # Create sync engine from config (Alembic autogenerate requires sync connection)
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        future=True,
    )

    with connectable.connect() as connection:
        do_run_migrations(connection)

    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
