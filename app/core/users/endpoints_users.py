import logging
import uuid
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.users import cruds_users, models_users, schemas_users
from app.core.users.types_users import UserRole
from app.core.utils import security
from app.dependencies import (
    get_db,
    get_request_id,
    is_user,
    is_user_an_admin,
)
from app.types import standard_responses
from app.types.module import CoreModule

router = APIRouter(tags=["Users"])

core_module = CoreModule(
    root="users",
    tag="Users",
    router=router,
)

hub_security_logger = logging.getLogger("hub.security")


@router.get(
    "/users",
    response_model=list[schemas_users.CoreUser],
    status_code=200,
)
async def read_users(
    roles: list[UserRole] = Query(default=[]),
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_an_admin),
):
    """
    Return all users from database, optionally filtered by role

    **This endpoint is only usable by administrators**
    """

    return await cruds_users.get_users(db, roles=roles)


@router.post(
    "/users",
    response_model=schemas_users.CoreUser,
    status_code=201,
)
async def create_user(
    user_create: schemas_users.CoreUserCreateRequest,
    db: AsyncSession = Depends(get_db),
    request_id: str = Depends(get_request_id),
):
    """
    Register a new account. The account is created with the `user` role,
    an administrator may then promote it.
    """
    if await cruds_users.get_user_by_email(db=db, email=user_create.email):
        raise HTTPException(
            status_code=400,
            detail="An account with this email already exists",
        )

    user = models_users.CoreUser(
        id=str(uuid.uuid4()),
        email=user_create.email,
        password_hash=security.get_password_hash(user_create.password),
        name=user_create.name,
        role=UserRole.user,
        department=user_create.department,
        position=user_create.position,
        phone=user_create.phone,
        created_on=datetime.now(UTC),
    )
    await cruds_users.create_user(db=db, user=user)

    hub_security_logger.info(
        f"Create_user: account {user.id} created for {user.email} ({request_id})",
    )
    return user


@router.post(
    "/users/make-admin",
    response_model=standard_responses.Result,
    status_code=200,
)
async def make_admin(
    db: AsyncSession = Depends(get_db),
    request_id: str = Depends(get_request_id),
):
    """
    This endpoint is only usable if the database contains exactly one user.
    It will give this user the `admin` role.
    """
    users = await cruds_users.get_users(db=db)

    if len(users) != 1:
        raise HTTPException(
            status_code=403,
            detail="This endpoint is only usable if there is exactly one user in the database",
        )

    await cruds_users.update_user(
        db=db,
        user_id=users[0].id,
        user_update=schemas_users.CoreUserUpdateAdmin(role=UserRole.admin),
    )
    hub_security_logger.warning(
        f"Make_admin: user {users[0].id} is now an administrator ({request_id})",
    )

    return standard_responses.Result()


@router.get(
    "/users/me",
    response_model=schemas_users.CoreUser,
    status_code=200,
)
async def read_current_user(
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    Return the current user

    **The user must be authenticated to use this endpoint**
    """

    return user


@router.patch(
    "/users/me",
    status_code=204,
)
async def update_current_user(
    user_update: schemas_users.CoreUserUpdate,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    Update the current user, the request should contain a JSON with the fields to change (not necessarily all fields) and their new value

    **The user must be authenticated to use this endpoint**
    """

    await cruds_users.update_user(db=db, user_id=user.id, user_update=user_update)


@router.get(
    "/users/{user_id}",
    response_model=schemas_users.CoreUser,
    status_code=200,
)
async def read_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_an_admin),
):
    """
    Return the user with id `user_id`

    **This endpoint is only usable by administrators**
    """

    db_user = await cruds_users.get_user_by_id(db=db, user_id=user_id)
    if db_user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return db_user


@router.patch(
    "/users/{user_id}",
    status_code=204,
)
async def update_user(
    user_id: str,
    user_update: schemas_users.CoreUserUpdateAdmin,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_an_admin),
    request_id: str = Depends(get_request_id),
):
    """
    Update a user, including their role

    **This endpoint is only usable by administrators**
    """
    db_user = await cruds_users.get_user_by_id(db=db, user_id=user_id)
    if db_user is None:
        raise HTTPException(status_code=404, detail="User not found")

    if user_update.role is not None and user_update.role != db_user.role:
        hub_security_logger.warning(
            f"Update_user: role of user {user_id} changed from {db_user.role} to {user_update.role} by {user.id} ({request_id})",
        )

    await cruds_users.update_user(db=db, user_id=user_id, user_update=user_update)
