import datetime
import uuid
from collections.abc import Callable
from typing import Annotated

from sqlalchemy import DateTime, types
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase, MappedAsDataclass, mapped_column
from sqlalchemy.types import TypeDecorator

from app.types.exceptions import MissingTZInfoInDatetimeError


class TZDateTime(TypeDecorator):
    """
    Store timezone-aware timestamps as timezone-naive UTC timestamps.

    SQLite has no timezone support, so every instant is normalized to UTC before being written
    and read back as an aware UTC datetime.
    See https://docs.sqlalchemy.org/en/20/core/custom_types.html#store-timezone-aware-timestamps-as-timezone-naive-utc
    """

    # Changing this type may break existing migrations

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            if not value.tzinfo or value.tzinfo.utcoffset(value) is None:
                raise MissingTZInfoInDatetimeError()
            value = value.astimezone(datetime.UTC).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            value = value.replace(tzinfo=datetime.UTC)
        return value


# See https://docs.sqlalchemy.org/en/20/orm/declarative_tables.html#mapping-whole-column-declarations-to-python-types
PrimaryKey = Annotated[uuid.UUID, mapped_column(primary_key=True)]

SessionLocalType = Callable[[], AsyncSession]


class Base(MappedAsDataclass, DeclarativeBase):
    """Base class for all models.

    The type map is overridden to use our timezone aware datetime type
    (see https://docs.sqlalchemy.org/en/20/orm/declarative_tables.html#customizing-the-type-map)"""

    type_annotation_map = {
        bool: types.Boolean(),
        datetime.date: types.Date(),
        datetime.time: types.Time(),
        datetime.datetime: TZDateTime(),
        str: types.String(),
        uuid.UUID: types.Uuid(),
    }
