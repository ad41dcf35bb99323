# alembic/env.py
from __future__ import annotations
import asyncio
from logging.config import fileConfig
from sqlalchemy import pool
from sqlalchemy.engine import make_url
from alembic import context
from sqlalchemy.ext.asyncio import async_engine_from_config

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from twofa.core.config import settings
from twofa.core.db import Base
from twofa.models import *  # populates Base.metadata

target_metadata = Base.metadata


def _database_url() -> str:
    # an explicit sqlalchemy.url on the Config wins over DB_* / DATABASE_URL
    return config.get_main_option("sqlalchemy.url") or settings.database_url


def _configure(**kwargs) -> None:
    url = make_url(_database_url())
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        # sqlite can't ALTER most things in place
        render_as_batch=url.get_backend_name() == "sqlite",
        **kwargs,
    )


def _run_migrations(connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    # offline mode only renders SQL; swap the async driver for the dialect default
    url = make_url(_database_url())
    _configure(
        url=url.set(drivername=url.get_backend_name()),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    connectable = async_engine_from_config(
        {"sqlalchemy.url": _database_url()},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
