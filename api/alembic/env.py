from __future__ import annotations

import logging
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine

from signalboard.db import Base, get_database_url
from signalboard import models  # noqa: F401  (registers tables on Base.metadata)

config = context.config

# Leave logging alone when the app has already configured it
if config.config_file_name and not logging.getLogger().handlers:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def get_admin_url() -> str:
    """Migrations need DDL privileges; DB_ADMIN_URL overrides the app's URL."""
    url = config.get_main_option("sqlalchemy.url") or os.getenv("DB_ADMIN_URL")
    if url:
        return url
    return get_database_url()


def run_migrations_offline() -> None:
    url = get_admin_url()

    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = get_admin_url()
    connectable = create_engine(url, pool_pre_ping=True)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite cannot ALTER constraints in place
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()

    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
