import logging

from sqlalchemy import Connection, MetaData
from sqlalchemy.engine import Engine, create_engine

from app.core.utils.config import Settings
from app.types.sqlalchemy import Base
from app.utils.state import get_database_url

# These utils are used at startup to run database initializations & migrations

hub_error_logger = logging.getLogger("hub.error")


def get_sync_db_engine(settings: Settings) -> Engine:
    """
    Create a synchronous database engine
    """
    return create_engine(
        get_database_url(settings, sync=True),
        echo=settings.DATABASE_DEBUG,
    )


def drop_db_sync(conn: Connection):
    """
    Drop all tables in the database
    """
    # All tables should be dropped, including the alembic_version table,
    # otherwise the database would be considered up to date and would not be initialized
    # when running tests a second time.

    # `Base.metadata.drop_all(conn)` only knows tables defined in models.
    # We reflect the database to also drop tables whose model was deleted.
    my_metadata: MetaData = MetaData(schema=Base.metadata.schema)
    my_metadata.reflect(bind=conn, resolve_fks=False)
    my_metadata.drop_all(bind=conn)
    hub_error_logger.info(
        f"Startup: Dropped {len(my_metadata.tables)} tables",
    )
