"""Alembic environment for the materialized view lifecycle tables.

The database URL comes from `alembic.ini` when a caller sets it (tests do),
otherwise from `DATABASE_URL` through the migration settings model.
"""
# pylint: disable=no-member,invalid-name,wrong-import-order

from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import engine_from_config, pool

from mat_views.config import config_load_database_url

alembic_config = context.config

if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name)

# Migrations are hand-written with op.* calls; there is no ORM metadata.
target_metadata = None


def alembic_resolve_database_url() -> str:
    configured_url = alembic_config.get_main_option("sqlalchemy.url")
    if configured_url:
        return configured_url
    database_url = config_load_database_url()
    alembic_config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return database_url


def alembic_configure_context(**context_options: Any) -> None:
    """Configure the migration context with options shared by both modes.

    Args:
        **context_options: Mode-specific options (`url` or `connection`).
    """

    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        transaction_per_migration=True,
        **context_options,
    )


def alembic_run_offline() -> None:
    """Emit migration SQL to stdout without connecting."""

    alembic_configure_context(
        url=alembic_resolve_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def alembic_run_online() -> None:
    """Apply migrations over a short-lived, unpooled connection."""

    alembic_resolve_database_url()
    migration_engine = engine_from_config(
        alembic_config.get_section(alembic_config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    try:
        with migration_engine.connect() as connection:
            alembic_configure_context(connection=connection)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        migration_engine.dispose()


if context.is_offline_mode():
    alembic_run_offline()
else:
    alembic_run_online()
