import asyncio
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncConnection

from app.dependencies import get_settings
from app.types.sqlalchemy import Base
from app.utils.state import get_database_url, init_engine

config = context.config

# Alembic loggers are configured in alembic.ini, application loggers must be kept
# See https://stackoverflow.com/questions/42427487/using-alembic-config-main-redirects-log-output
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

# Every model has to be imported for autogenerate to see its table
for models_file in sorted(Path().glob("app/**/models_*.py")):
    __import__(".".join(models_file.with_suffix("").parts))

target_metadata = Base.metadata


def configure_context(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        # `TZDateTime` is rendered without the `app.types.sqlalchemy.` prefix,
        # migration files import it themselves
        # See https://alembic.sqlalchemy.org/en/latest/autogenerate.html#controlling-the-module-prefix
        user_module_prefix="",
        **kwargs,
    )


def run_migrations_offline() -> None:
    """
    Emit the migration SQL for the configured database without connecting to it.
    """
    configure_context(
        url=get_database_url(get_settings(), sync=True),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    configure_context(connection=connection)

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations(connection: AsyncConnection) -> None:
    # Alembic inspects the database, which SQLAlchemy does not support on an AsyncConnection
    # See https://alembic.sqlalchemy.org/en/latest/cookbook.html#programmatic-api-use-connection-sharing-with-asyncio
    await connection.run_sync(do_run_migrations)


async def run_cli_migrations() -> None:
    """
    Alembic was called from the command line: migrate the database of the production settings.
    """
    engine = init_engine(get_settings())

    async with engine.connect() as connection:
        await run_async_migrations(connection)
    await engine.dispose()


def run_migrations_online() -> None:
    """
    The application passes its own connection in `config.attributes["connection"]` when it
    upgrades the database on startup: a synchronous `Connection` from `init_db`, or an `AsyncConnection`.
    Without a connection, Alembic was invoked from the CLI.

    See https://alembic.sqlalchemy.org/en/latest/cookbook.html#connection-sharing
    """
    connection: None | Connection | AsyncConnection = config.attributes.get(
        "connection",
        None,
    )

    if connection is None:
        asyncio.run(run_cli_migrations())
    elif isinstance(connection, AsyncConnection):
        asyncio.run(run_async_migrations(connection))
    elif isinstance(connection, Connection):
        do_run_migrations(connection)
    else:
        raise TypeError(  # noqa: TRY003
            f"A Connection or an AsyncConnection is required, got a {type(connection)}",
        )


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
