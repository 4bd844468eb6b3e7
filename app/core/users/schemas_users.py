from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from app.core.users.types_users import UserRole
from app.utils import validators


class CoreUserBase(BaseModel):
    """Base schema for user's model"""

    name: str
    department: str | None = None
    position: str | None = None

    _normalize_name = field_validator("name")(validators.trailing_spaces_remover)
    _normalize_department = field_validator("department")(
        validators.trailing_spaces_remover,
    )


class CoreUserSimple(BaseModel):
    """Simplified schema for user's model, used when embedding a user in another object"""

    id: str
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class CoreUser(CoreUserBase):
    """Schema for user's model similar to core_user table in database"""

    id: str
    email: str
    role: UserRole
    phone: str | None = None
    created_on: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CoreUserCreateRequest(CoreUserBase):
    """
    The schema is used to register a new account. New accounts always get the `user` role.
    """

    email: str
    password: str
    phone: str | None = None

    # Email normalization, this will modify the email variable
    # https://pydantic-docs.helpmanual.io/usage/validators/#reuse-validators
    _normalize_email = field_validator("email")(validators.email_normalizer)
    _normalize_password = field_validator("password")(validators.password_validator)
    _format_phone = field_validator("phone")(validators.phone_formatter)


class CoreUserUpdate(BaseModel):
    """Schema for user update"""

    name: str | None = None
    department: str | None = None
    position: str | None = None
    phone: str | None = None

    _normalize_name = field_validator("name")(validators.trailing_spaces_remover)
    _format_phone = field_validator("phone")(validators.phone_formatter)


class CoreUserUpdateAdmin(CoreUserUpdate):
    role: UserRole | None = None
