from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from sqlmodel import SQLModel
from app.core.config import settings
from app.core.db import sync_database_url
from app.models.appointment import Appointment  # noqa: F401 - register table
from app.models.blocked_time import BlockedTime  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

database_url = sync_database_url(settings.database_url)
target_metadata = SQLModel.metadata


def run_migrations_offline() -> None:
    """Emit the SQL for the booking tables without a database connection (alembic upgrade --sql)."""
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(database_url, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()
    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
