import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import bcrypt
import jwt
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import schemas_auth
from app.core.users import cruds_users, models_users

if TYPE_CHECKING:
    from app.core.utils.config import Settings


"""
In order to salt and hash password, we use the bcrypt hashing function (see https://en.wikipedia.org/wiki/Bcrypt).

A different salt will be added automatically for each password.
It is important to use enough rounds while accounting for the hash computation time. Default is 12.
"""

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/auth/simple_token",
    scheme_name="PasswordAuthentication",
    scopes={"API": "Access Conference Hub endpoints"},
)
"""
To generate JWT access tokens, we use a *FastAPI* OAuth2PasswordBearer object.
See [FastAPI documentation](https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/) about JWT.
"""

jwt_algorithm = "HS256"
"""
The algorithm used to generate JWT access tokens
"""

FAKE_PASSWORD_HASH = bcrypt.hashpw(
    secrets.token_urlsafe(12).encode("utf-8"),
    bcrypt.gensalt(rounds=12),
)


def get_password_hash(password: str) -> str:
    """
    Return a salted hash computed from password.
    Both the salt and the algorithm identifier are included in the hash.
    """
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """
    Compare `plain_password` against its salted hash representation `hashed_password`.

    When `hashed_password` is None (ie the email isn't valid) a fake hash is checked
    so that the response time does not reveal whether an account exists.
    """
    if hashed_password is None:
        bcrypt.checkpw(plain_password.encode("utf-8"), FAKE_PASSWORD_HASH)
        return False
    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        hashed_password.encode("utf-8"),
    )


async def authenticate_user(
    db: AsyncSession,
    email: str,
    password: str,
) -> models_users.CoreUser | None:
    """
    Try to authenticate the user.
    If the user is unknown or the password is invalid return `None`. Else return the user's *CoreUser* representation.
    """
    user = await cruds_users.get_user_by_email(db=db, email=email)
    if not user:
        verify_password("", None)
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def create_access_token(
    settings: "Settings",
    data: schemas_auth.TokenData,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT. The token is signed using the ACCESS_TOKEN_SECRET_KEY secret.
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = data.model_dump(exclude_none=True)
    iat = datetime.now(UTC)
    expire_on = iat + expires_delta
    to_encode.update({"exp": expire_on, "iat": iat})
    return jwt.encode(
        to_encode,
        settings.ACCESS_TOKEN_SECRET_KEY,
        algorithm=jwt_algorithm,
    )
