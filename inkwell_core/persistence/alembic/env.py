"""
Alembic migration environment for the Inkwell core database
"""

import logging

from alembic import context
from sqlalchemy import engine_from_config, pool

from inkwell_core import settings
from inkwell_core.persistence import models


config = context.config
target_metadata = models.Base.metadata
logger = logging.getLogger("alembic.env")


def get_url() -> str:
    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url
    return settings.get_db_from_env() or settings.Settings().database.connection


def run_migrations_offline():
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=True,
        dialect_opts={"paramstyle": "named"}
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = get_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True
        )
        with context.begin_transaction():
            context.run_migrations()
    logger.debug("Migrations completed.")


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
