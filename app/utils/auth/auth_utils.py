import logging

import jwt
from fastapi import HTTPException, status
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import schemas_auth
from app.core.users import cruds_users, models_users
from app.core.utils import security
from app.core.utils.config import Settings
from app.types.scopes_type import ScopeType

hub_access_logger = logging.getLogger("hub.access")


def get_token_data(
    settings: Settings,
    token: str,
    request_id: str,
) -> schemas_auth.TokenData:
    """
    Decode and validate an access token, then return its payload
    """
    try:
        payload = jwt.decode(
            token,
            settings.ACCESS_TOKEN_SECRET_KEY,
            algorithms=[security.jwt_algorithm],
        )
        token_data = schemas_auth.TokenData(**payload)
        hub_access_logger.info(
            f"Get_token_data: Decoded a token for user {token_data.sub} ({request_id})",
        )
    # ExpiredSignatureError is a subclass of InvalidTokenError and must be caught first
    except ExpiredSignatureError:
        hub_access_logger.info(
            f"Get_token_data: Token has expired ({request_id})",
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except (InvalidTokenError, ValidationError):
        hub_access_logger.warning(
            f"Get_token_data: Failed to decode a token ({request_id})",
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    return token_data


async def get_user_from_token_with_scopes(
    scopes: list[ScopeType],
    db: AsyncSession,
    token_data: schemas_auth.TokenData,
) -> models_users.CoreUser:
    """
    Make sure the token contains every expected scope and return the corresponding user.
    """
    token_scopes = token_data.scopes.split(" ")
    missing_scopes = [scope.value for scope in scopes if scope.value not in token_scopes]
    if missing_scopes:
        raise HTTPException(
            status_code=403,
            detail=f"Unauthorized, token does not contain the scopes {missing_scopes}",
        )

    user = await cruds_users.get_user_by_id(db=db, user_id=token_data.sub)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
