"""File defining the Metadata. And the basic functions creating the database tables and calling the router"""

import logging
import os
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

import alembic.command as alembic_command
import alembic.config as alembic_config
import alembic.migration as alembic_migration
from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from sqlalchemy.engine import Connection, Engine

from app import api
from app.core.utils.config import Settings
from app.core.utils.log import LogConfig
from app.dependencies import disconnect_state, init_app_state
from app.types.exceptions import ContentHTTPException
from app.types.sqlalchemy import Base
from app.utils import initialization
from app.utils.state import LifespanState

# NOTE: We can not get loggers at the top of this file like we do in other files
# as the loggers are not yet initialized


# Set to "False" in processes which must not initialize the database, see gunicorn.conf.py
INIT_DB_ENV_VARIABLE = "HUB_INIT_DB"


def get_alembic_config(connection: Connection) -> alembic_config.Config:
    """
    Alembic configuration sharing `connection`, read by `migrations/env.py`
    """
    alembic_cfg = alembic_config.Config("alembic.ini")
    alembic_cfg.attributes["connection"] = connection
    return alembic_cfg


def update_db_tables(
    sync_engine: Engine,
    hub_error_logger: logging.Logger,
    drop_db: bool = False,
) -> None:
    """
    Bring the database to the latest revision, in a single transaction.

    An empty database is created from the models and stamped `head`, which is faster than
    replaying every migration. A database with a revision is upgraded with Alembic.
    See https://alembic.sqlalchemy.org/en/latest/cookbook.html#building-an-up-to-date-database-from-scratch

    Alembic inspects the database and needs a synchronous connection.
    """
    try:
        with sync_engine.begin() as conn:
            if drop_db:
                initialization.drop_db_sync(conn)

            alembic_cfg = get_alembic_config(conn)
            current_revision = alembic_migration.MigrationContext.configure(
                conn,
            ).get_current_revision()

            if current_revision is None:
                hub_error_logger.info(
                    "Startup: Empty database, creating the tables from the models",
                )
                Base.metadata.create_all(conn)
                alembic_command.stamp(alembic_cfg, "head")
            else:
                hub_error_logger.info(
                    f"Startup: Database at revision {current_revision}, running migrations",
                )
                alembic_command.upgrade(alembic_cfg, "head")

            hub_error_logger.info("Startup: Database tables updated")
    except Exception as error:
        hub_error_logger.fatal(
            f"Startup: Could not create tables in the database: {error}",
        )
        raise


def init_db(
    settings: Settings,
    hub_error_logger: logging.Logger,
    drop_db: bool = False,
) -> None:
    """
    Init the database by creating the tables or running the migrations

    The method uses a synchronous engine, it should be called only once before workers start handling requests
    """
    sync_engine = initialization.get_sync_db_engine(settings=settings)

    update_db_tables(
        sync_engine=sync_engine,
        hub_error_logger=hub_error_logger,
        drop_db=drop_db,
    )
    sync_engine.dispose()


def use_route_path_as_operation_ids(app: FastAPI) -> None:
    """
    Simplify operation IDs so that generated API clients have simpler function names.

    The operation_id will have the format "method_path", like "get_bookings_users_me".

    See https://fastapi.tiangolo.com/advanced/path-operation-advanced-configuration/
    """
    for route in app.routes:
        if isinstance(route, APIRoute):
            method = "_".join(route.methods)
            route.operation_id = method.lower() + route.path.replace("/", "_")


# We wrap the application in a function to be able to pass the settings and drop_db parameters
# The drop_db parameter is used to drop the database tables before creating them again
def get_application(settings: Settings, drop_db: bool = False) -> FastAPI:
    # Initialize loggers
    LogConfig().initialize_loggers(settings=settings)

    hub_access_logger = logging.getLogger("hub.access")
    hub_security_logger = logging.getLogger("hub.security")
    hub_error_logger = logging.getLogger("hub.error")

    # Creating a lifespan which will be called when the application starts then shuts down
    # https://fastapi.tiangolo.com/advanced/events/
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[LifespanState, None]:
        hub_error_logger.info("Startup: Initializing application")

        # When running with gunicorn, the database is initialized once by the arbiter
        # in the `on_starting` hook and workers must not initialize it again
        if os.getenv(INIT_DB_ENV_VARIABLE, "True") != "False":
            init_db(
                settings=settings,
                hub_error_logger=hub_error_logger,
                drop_db=drop_db,
            )

        state = await app.dependency_overrides.get(
            init_app_state,
            init_app_state,
        )(
            app=app,
            settings=settings,
            hub_error_logger=hub_error_logger,
        )

        yield state

        hub_error_logger.info("Shutting down")
        await app.dependency_overrides.get(
            disconnect_state,
            disconnect_state,
        )(
            state=state,
            hub_error_logger=hub_error_logger,
        )

    app = FastAPI(
        title="Conference Hub",
        version=settings.CONFERENCE_HUB_VERSION,
        lifespan=lifespan,
    )
    app.include_router(api.api_router)
    use_route_path_as_operation_ids(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def logging_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """
        Log every request with a unique identifier.

        The identifier is stored in the request state, so loggers can associate records with a request,
        and returned in the `X-Request-ID` header so clients can report it.
        """
        # The identifier is saved in the request state, which is a copy of the lifespan state
        # https://www.starlette.io/requests/#other-state
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        if request.client is None:
            hub_security_logger.warning(
                f"Client information not available for {request.url.path}",
            )
            raise HTTPException(status_code=400, detail="No client information")

        client_address = f"{request.client.host}:{request.client.port}"

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        hub_access_logger.info(
            f'{client_address} - "{request.method} {request.url.path}" {response.status_code} ({request_id})',
        )
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ):
        # We use a Debug logger to log the error as personal data may be present in the request
        hub_error_logger.debug(
            f"Validation error: {exc.errors()} ({request.state.request_id})",
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=jsonable_encoder({"detail": exc.errors(), "body": exc.body}),
        )

    @app.exception_handler(ContentHTTPException)
    async def content_exception_handler(
        request: Request,
        exc: ContentHTTPException,
    ):
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(exc.content),
            headers=exc.headers,
        )

    return app
