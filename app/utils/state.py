from typing import Any, TypedDict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.utils.config import Settings
from app.types.sqlalchemy import SessionLocalType


class LifespanState(TypedDict):
    """
    The LifespanState is yielded by the application lifespan and copied by Starlette in every request state.
    Use dependencies to access it.
    """

    # Database engine
    engine: AsyncEngine
    # Database session creator
    SessionLocal: SessionLocalType


class RuntimeLifespanState(LifespanState):
    """
    Requests contains an extended version of the LifespanState for each request.
    """

    request_id: str


def get_database_url(settings: Settings, sync: bool = False) -> str:
    """
    Build the SQLAlchemy url of the configured database.

    The application uses the asynchronous drivers (aiosqlite, asyncpg). Startup migrations
    run before the event loop exists and need the synchronous ones (sqlite3, psycopg).
    """
    if settings.SQLITE_DB:
        driver = "sqlite" if sync else "sqlite+aiosqlite"
        return f"{driver}:///./{settings.SQLITE_DB}"

    driver = "postgresql+psycopg" if sync else "postgresql+asyncpg"
    return f"{driver}://{settings.POSTGRES_USER}:{settings.POSTGRES_PASSWORD}@{settings.POSTGRES_HOST}/{settings.POSTGRES_DB}"


def use_immediate_sqlite_transactions(engine: AsyncEngine) -> None:
    """
    Make every SQLite transaction take the database write lock as soon as it begins.

    The sqlite3 driver only emits `BEGIN` right before the first write and SQLite ignores `SELECT ... FOR UPDATE`.
    Without this, the reads checking that a window is free run outside of any lock and two concurrent
    reservations can both insert. With `BEGIN IMMEDIATE`, a second transaction waits for the first one
    to commit before reading.
    See https://docs.sqlalchemy.org/en/20/dialects/sqlite.html#serializable-isolation-savepoints-transactional-ddl
    """

    @event.listens_for(engine.sync_engine, "connect")
    def disable_driver_transactions(dbapi_connection, connection_record) -> None:
        # The driver must not emit its own BEGIN and COMMIT
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def begin_immediate(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def init_engine(settings: Settings, **engine_kwargs: Any) -> AsyncEngine:
    """
    Return the (asynchronous) database engine, based on the settings.

    Extra keyword arguments are forwarded to `create_async_engine`, tests use them to disable pooling.
    """
    engine = create_async_engine(
        get_database_url(settings),
        echo=settings.DATABASE_DEBUG,
        **engine_kwargs,
    )
    if settings.SQLITE_DB:
        use_immediate_sqlite_transactions(engine)
    return engine


def init_SessionLocal(engine: AsyncEngine) -> SessionLocalType:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def disconnect_engine(engine: AsyncEngine) -> None:
    await engine.dispose()
