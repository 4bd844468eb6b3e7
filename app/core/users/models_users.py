from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from app.core.users.types_users import UserRole
from app.types.sqlalchemy import Base


class CoreUser(Base):
    __tablename__ = "core_user"

    id: Mapped[str] = mapped_column(
        primary_key=True,
        index=True,
    )
    email: Mapped[str] = mapped_column(unique=True, index=True)
    password_hash: Mapped[str]
    name: Mapped[str]
    role: Mapped[UserRole]
    department: Mapped[str | None]
    position: Mapped[str | None]
    phone: Mapped[str | None]
    created_on: Mapped[datetime | None]
