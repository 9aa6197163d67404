from __future__ import annotations

import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import engine_from_config, pool

from alembic import context

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# racine du repo (stockledger/alembic/env.py -> ../..) pour "import stockledger"
_ROOT = str(Path(__file__).resolve().parents[2])
if _ROOT not in sys.path:
    sys.path.insert(0, _ROOT)

from stockledger.app.core.config import DATABASE_URL  # noqa: E402
from stockledger.app.db.base import Base  # noqa: E402
from stockledger.app.db.models import models_v1  # noqa: F401,E402  (tables products / transfers / alerts ...)

target_metadata = Base.metadata

# l'URL de alembic.ini n'est qu'un défaut : DATABASE_URL gagne toujours
config.set_main_option("sqlalchemy.url", DATABASE_URL)


def _context_options(url: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "compare_server_default": True,
        # SQLite ne sait pas ALTER les contraintes CHECK
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    """SQL généré sans connexion (alembic upgrade --sql)."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_context_options(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **_context_options(str(connectable.url)))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
