"""Alembic environment: runs migrations against the URL resolved by db.postgres_db."""
import sys
from pathlib import Path

from alembic import context
from sqlalchemy import engine_from_config, pool

# curio/ is the import root for application modules
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from db.postgres_db import get_database_url  # noqa: E402

config = context.config
target_metadata = None


def _database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or get_database_url()


def run_migrations_offline() -> None:
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _database_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
