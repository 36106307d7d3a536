import logging
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import get_settings  # noqa: E402
from database import Base, engine  # noqa: E402
import models  # noqa: E402,F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

# SQLite needs batch mode for ALTER on the ledger tables
MIGRATION_OPTIONS = {"target_metadata": Base.metadata, "render_as_batch": True}


def run_offline() -> None:
    context.configure(
        url=get_settings().database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **MIGRATION_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    # Same engine as the app so the WAL/foreign-key pragmas apply here too
    with engine.connect() as connection:
        context.configure(connection=connection, **MIGRATION_OPTIONS)
        with context.begin_transaction():
            logger.info(f"migrating: url={engine.url!r}")
            context.run_migrations()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
