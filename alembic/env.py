"""Alembic migration environment for the Murmur schema (user, profile, message)."""

import sys
from logging.config import fileConfig
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import create_engine, pool

from alembic import context

# murmur is imported from the checkout when alembic runs from the repo root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

load_dotenv()

from murmur.config import get_settings
from murmur.database import Base
from murmur.models.message import Message  # noqa: F401
from murmur.models.profile import Profile  # noqa: F401
from murmur.models.user import User  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
database_url = get_settings().DATABASE_URL
is_sqlite = database_url.startswith("sqlite")


def run_migrations_offline() -> None:
    """Emit the migration SQL without a database connection."""
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=is_sqlite,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations to DATABASE_URL. SQLite needs batch mode for ALTER TABLE."""
    engine = create_engine(
        database_url,
        poolclass=pool.NullPool,
        connect_args={"check_same_thread": False} if is_sqlite else {},
    )
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=is_sqlite,
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
