import logging

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    status,
)
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import schemas_auth
from app.core.utils.config import Settings
from app.core.utils.security import (
    authenticate_user,
    create_access_token,
)
from app.dependencies import (
    get_db,
    get_request_id,
    get_settings,
)
from app.types.module import CoreModule
from app.types.scopes_type import ScopeType
from app.utils import validators

router = APIRouter(tags=["Auth"])

core_module = CoreModule(
    root="auth",
    tag="Auth",
    router=router,
)

hub_security_logger = logging.getLogger("hub.security")


@router.post(
    "/auth/simple_token",
    response_model=schemas_auth.AccessToken,
    status_code=200,
)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    request_id: str = Depends(get_request_id),
):
    """
    Ask for a JWT access token using oauth password flow.

    *username* (the account email) and *password* must be provided

    Note: the request body needs to use **form-data** and not json.
    """
    email = validators.email_normalizer(form_data.username)
    user = await authenticate_user(db, email, form_data.password)
    if not user:
        hub_security_logger.warning(
            f"Login_for_access_token: failed login attempt for {email} ({request_id})",
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect login or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    # We put the user id in the subject field of the token.
    # The subject `sub` is a JWT registered claim name, see https://datatracker.ietf.org/doc/html/rfc7519#section-4.1
    data = schemas_auth.TokenData(sub=user.id, scopes=ScopeType.API.value)
    access_token = create_access_token(settings=settings, data=data)
    hub_security_logger.info(
        f"Login_for_access_token: user {user.id} logged in ({request_id})",
    )
    return schemas_auth.AccessToken(access_token=access_token, token_type="bearer")
