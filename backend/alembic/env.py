from logging.config import fileConfig
import os
import sys
import re

from sqlalchemy import engine_from_config
from sqlalchemy import pool

from alembic import context

# Make travel_app importable; env.py lives in backend/alembic/
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '.')))


# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
# This line sets up loggers basically.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from travel_app.core.config import settings
from travel_app.database import Base  # Import Base from the app's database module
# Import all models to ensure they are registered with Base.metadata
from travel_app import models  # noqa: F401

target_metadata = Base.metadata


def _db_url() -> str:
    return (
        os.getenv("DB_URL")
        or os.getenv("SQLALCHEMY_DATABASE_URL")
        or config.get_main_option("sqlalchemy.url")
        or settings.SQLALCHEMY_DATABASE_URL
    )


def _masked(url: str) -> str:
    return re.sub(r"(://[^:/]+:)([^@]+)(@)", r"\1****\3", url)


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.

    This configures the context with just a URL and not an Engine, so no
    DBAPI needs to be available. Calls to context.execute() here emit the
    given string to the script output.
    """
    url = _db_url()
    print(f"[alembic] Using DB URL (offline): {_masked(url)}")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.startswith("sqlite"),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode against a live connection."""
    section = config.get_section(config.config_ini_section, {}) or {}
    section["sqlalchemy.url"] = _db_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        # SQLite cannot ALTER most constraints in place
        is_sqlite = connection.dialect.name == "sqlite"
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=is_sqlite,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
