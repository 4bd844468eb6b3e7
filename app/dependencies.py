"""
Various FastAPI [dependencies](https://fastapi.tiangolo.com/tutorial/dependencies/)

They are used in endpoints function signatures. For example:
```python
async def get_rooms(db: AsyncSession = Depends(get_db)):
```
"""

import logging
from collections.abc import AsyncGenerator, Callable, Coroutine
from functools import lru_cache
from typing import Annotated, Any, cast

import starlette.datastructures
from fastapi import Depends, FastAPI, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import schemas_auth
from app.core.users import models_users
from app.core.users.types_users import UserRole
from app.core.utils import security
from app.core.utils.config import Settings, construct_prod_settings
from app.types.exceptions import InvalidAppStateTypeError
from app.types.scopes_type import ScopeType
from app.utils.auth import auth_utils
from app.utils.state import (
    LifespanState,
    RuntimeLifespanState,
    disconnect_engine,
    init_engine,
    init_SessionLocal,
)

hub_security_logger = logging.getLogger("hub.security")


async def init_app_state(
    app: FastAPI,
    settings: Settings,
    hub_error_logger: logging.Logger,
) -> LifespanState:
    """
    Initialize the state of the application. This dependency should be used at the start of the application lifespan.

    This method should be called as a dependency, and tests may override it to provide their own state.
    ```python
    state = await app.dependency_overrides.get(
        init_app_state,
        init_app_state,
    )(
        app=app,
        settings=settings,
        hub_error_logger=hub_error_logger,
    )
    ```
    """
    engine = init_engine(settings=settings)

    SessionLocal = init_SessionLocal(engine)

    hub_error_logger.info("Startup: Database engine initialized")

    return LifespanState(
        engine=engine,
        SessionLocal=SessionLocal,
    )


async def disconnect_state(
    state: LifespanState,
    hub_error_logger: logging.Logger,
) -> None:
    """
    Disconnect items requiring it. This dependency should be used at the end of the application lifespan.
    """
    await disconnect_engine(state["engine"])

    hub_error_logger.info("Application state disconnected successfully.")


def get_app_state(request: Request) -> RuntimeLifespanState:
    """
    Get the application state from the request. The request_id is injected by our middleware.
    """
    # `request.state` may be a TypedDict or a starlette State object
    # depending if it is accessed in an endpoint or the lifespan
    if isinstance(request.state, dict):
        return cast("RuntimeLifespanState", request.state)
    if isinstance(request.state, starlette.datastructures.State):
        return cast("RuntimeLifespanState", request.state.__dict__["_state"])
    raise InvalidAppStateTypeError


AppState = Annotated[RuntimeLifespanState, Depends(get_app_state)]


async def get_request_id(state: AppState) -> str:
    """
    The request identifier is a unique UUID which is used to associate logs saved during the same request
    """

    return state["request_id"]


@lru_cache
def get_settings() -> Settings:
    """
    Return a settings object, based on `config.yaml` and `.env`
    """
    # `lru_cache()` decorator is here to prevent the class to be instantiated multiple times.
    # See https://fastapi.tiangolo.com/advanced/settings/#lru_cache-technical-details
    return construct_prod_settings()


async def get_db(state: AppState) -> AsyncGenerator[AsyncSession, None]:
    """
    Return a database session that will be automatically committed and closed after usage.

    If an HTTPException is raised during the request, we consider that the error was expected and managed by the endpoint. We commit the session.
    If an other exception is raised, we rollback the session.

    Cruds and endpoints should never call `db.commit()` or `db.rollback()` directly.
    After adding an object to the session, calling `await db.flush()` will integrate the changes in the transaction without committing them.
    """
    async with state["SessionLocal"]() as db:
        try:
            yield db
        except HTTPException:
            await db.commit()
            raise
        except Exception:
            await db.rollback()
            raise
        else:
            await db.commit()
        finally:
            await db.close()


def get_token_data(
    settings: Settings = Depends(get_settings),
    token: str = Depends(security.oauth2_scheme),
    request_id: str = Depends(get_request_id),
) -> schemas_auth.TokenData:
    """
    Dependency that returns the token payload data
    """
    return auth_utils.get_token_data(
        settings=settings,
        token=token,
        request_id=request_id,
    )


async def get_user_from_token(
    db: AsyncSession = Depends(get_db),
    token_data: schemas_auth.TokenData = Depends(get_token_data),
) -> models_users.CoreUser:
    """
    Dependency that makes sure the token is valid, contains the API scope and returns the corresponding user.
    """
    return await auth_utils.get_user_from_token_with_scopes(
        scopes=[ScopeType.API],
        db=db,
        token_data=token_data,
    )


def is_user(
    included_roles: list[UserRole] | None = None,
) -> Callable[
    [models_users.CoreUser, str],
    Coroutine[Any, Any, models_users.CoreUser],
]:
    """
    Generate a dependency which will:
        * check if the request header contains a valid API JWT token
        * make sure the user making the request exists
        * make sure the user has one of the `included_roles`, if provided. Admins are always allowed
        * return the corresponding user `models_users.CoreUser` object
    """

    async def is_user(
        user: models_users.CoreUser = Depends(get_user_from_token),
        request_id: str = Depends(get_request_id),
    ) -> models_users.CoreUser:
        if user.role == UserRole.admin or included_roles is None:
            return user
        if user.role not in included_roles:
            hub_security_logger.warning(
                f"Is_user: user {user.id} with role {user.role} was refused, expected one of {[role.value for role in included_roles]} ({request_id})",
            )
            raise HTTPException(
                status_code=403,
                detail="Unauthorized, user role is not allowed",
            )
        return user

    return is_user


def is_user_a_manager(
    user: models_users.CoreUser = Depends(
        is_user(included_roles=[UserRole.facility_manager]),
    ),
) -> models_users.CoreUser:
    """
    A dependency that checks that the user is a facility manager or an admin.

    Being a facility manager does not give rights on every facility, endpoints should
    check that the user manages the facility they act on.
    """
    return user


def is_user_an_admin(
    user: models_users.CoreUser = Depends(
        is_user(included_roles=[UserRole.admin]),
    ),
) -> models_users.CoreUser:
    """
    A dependency that checks that the user is an admin.
    """
    return user
