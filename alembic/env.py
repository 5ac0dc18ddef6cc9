"""
Alembic environment for the organization billing schema

The database URL comes from DATABASE_URL unless overridden on the command
line with `alembic -x dburl=postgresql+asyncpg://... upgrade head`.
"""

import os
import asyncio
from logging.config import fileConfig
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine
from alembic import context

from app.utils.database import Base
# Register every model on Base.metadata for autogenerate
from app.models import organization, user_account, stripe_product, stripe_subscription, stripe_subscription_schedule

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def database_url() -> str:
    return context.get_x_argument(as_dictionary=True).get("dburl") or os.getenv(
        "DATABASE_URL", "postgresql+asyncpg://localhost:5432/orgbilling_db"
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of connecting"""
    context.configure(
        url=database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def apply_migrations(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    # One-shot engine, no pooling for a migration run
    connectable = create_async_engine(database_url(), poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(apply_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
