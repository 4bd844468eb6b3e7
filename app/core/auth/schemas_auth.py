"""Schemas file for endpoint /auth"""

from pydantic import BaseModel

from app.types.scopes_type import ScopeType


class AccessToken(BaseModel):
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    """
    Payload of an access token.

    `sub` contains the user id. `scopes` is a space separated list of scopes.
    """

    sub: str
    scopes: str = ScopeType.API.value
