"""File defining the functions called by the endpoints, making queries to the table using the models"""

from collections.abc import Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.users import models_users, schemas_users
from app.core.users.types_users import UserRole


async def get_users(
    db: AsyncSession,
    roles: list[UserRole] | None = None,
) -> Sequence[models_users.CoreUser]:
    """
    Return all users from database.

    `roles` can be used to filter results.
    """
    query = select(models_users.CoreUser)
    if roles:
        query = query.where(models_users.CoreUser.role.in_(roles))
    result = await db.execute(query.order_by(models_users.CoreUser.name))
    return result.scalars().all()


async def get_user_by_id(
    db: AsyncSession,
    user_id: str,
) -> models_users.CoreUser | None:
    result = await db.execute(
        select(models_users.CoreUser).where(models_users.CoreUser.id == user_id),
    )
    return result.scalars().first()


async def get_user_by_email(
    db: AsyncSession,
    email: str,
) -> models_users.CoreUser | None:
    result = await db.execute(
        select(models_users.CoreUser).where(models_users.CoreUser.email == email),
    )
    return result.scalars().first()


async def create_user(
    db: AsyncSession,
    user: models_users.CoreUser,
) -> models_users.CoreUser:
    db.add(user)
    await db.flush()
    return user


async def update_user(
    db: AsyncSession,
    user_id: str,
    user_update: schemas_users.CoreUserUpdateAdmin | schemas_users.CoreUserUpdate,
):
    await db.execute(
        update(models_users.CoreUser)
        .where(models_users.CoreUser.id == user_id)
        .values(**user_update.model_dump(exclude_none=True)),
    )
    await db.flush()
