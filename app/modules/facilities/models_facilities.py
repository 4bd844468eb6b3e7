"""Models file for facilities, rooms, resources and room availability"""

import uuid
from datetime import datetime, time
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.modules.facilities.types_facilities import (
    BlackoutType,
    ResourceStatus,
    RoomStatus,
    Weekday,
)
from app.types.sqlalchemy import Base, PrimaryKey

if TYPE_CHECKING:
    from app.core.users.models_users import CoreUser


class Facility(Base):
    __tablename__ = "facilities_facility"

    id: Mapped[PrimaryKey]
    name: Mapped[str] = mapped_column(unique=True)
    location: Mapped[str | None]
    description: Mapped[str | None]
    # A facility has at most one manager
    manager_id: Mapped[str | None] = mapped_column(
        ForeignKey("core_user.id"),
        index=True,
    )

    manager: Mapped["CoreUser | None"] = relationship(
        "CoreUser",
        lazy="joined",
        init=False,
    )
    rooms: Mapped[list["Room"]] = relationship(
        back_populates="facility",
        lazy="selectin",
        default_factory=list,
    )


class Room(Base):
    __tablename__ = "facilities_room"

    id: Mapped[PrimaryKey]
    facility_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("facilities_facility.id"),
        index=True,
    )
    name: Mapped[str]
    capacity: Mapped[int]
    location: Mapped[str | None]
    description: Mapped[str | None]
    status: Mapped[RoomStatus]
    # Price of one started hour, in the smallest unit of `currency`. None means the room is free
    hourly_rate: Mapped[int | None]
    currency: Mapped[str]

    facility: Mapped["Facility"] = relationship(
        back_populates="rooms",
        lazy="joined",
        init=False,
    )
    resources: Mapped[list["RoomResource"]] = relationship(
        lazy="selectin",
        cascade="all, delete-orphan",
        init=False,
    )
    availability: Mapped["RoomAvailability | None"] = relationship(
        lazy="selectin",
        cascade="all, delete-orphan",
        init=False,
    )


class Resource(Base):
    __tablename__ = "facilities_resource"

    id: Mapped[PrimaryKey]
    name: Mapped[str]
    type: Mapped[str]
    status: Mapped[ResourceStatus]
    description: Mapped[str | None]
    facility_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("facilities_facility.id"),
    )


class RoomResource(Base):
    __tablename__ = "facilities_room_resource"

    room_id: Mapped[PrimaryKey] = mapped_column(
        ForeignKey("facilities_room.id"),
    )
    resource_id: Mapped[PrimaryKey] = mapped_column(
        ForeignKey("facilities_resource.id"),
    )
    quantity: Mapped[int] = mapped_column(default=1)

    resource: Mapped["Resource"] = relationship(lazy="joined", init=False)


class RoomAvailability(Base):
    """
    Booking rules of a room. A room without this record uses the default rules.
    """

    __tablename__ = "facilities_room_availability"

    room_id: Mapped[PrimaryKey] = mapped_column(
        ForeignKey("facilities_room.id"),
    )
    min_duration_minutes: Mapped[int]
    max_duration_minutes: Mapped[int]
    buffer_minutes: Mapped[int]
    advance_booking_days: Mapped[int]
    same_day_booking_enabled: Mapped[bool]
    # None means unlimited
    max_bookings_per_user_per_day: Mapped[int | None]
    max_bookings_per_user_per_week: Mapped[int | None]
    updated_on: Mapped[datetime]

    operating_hours: Mapped[list["RoomOperatingHours"]] = relationship(
        lazy="selectin",
        cascade="all, delete-orphan",
        default_factory=list,
    )


class RoomOperatingHours(Base):
    __tablename__ = "facilities_room_operating_hours"

    room_id: Mapped[PrimaryKey] = mapped_column(
        ForeignKey("facilities_room_availability.room_id"),
    )
    weekday: Mapped[Weekday] = mapped_column(primary_key=True)
    enabled: Mapped[bool]
    # Local times, in the facility timezone
    opening: Mapped[time]
    closing: Mapped[time]


class RoomBlackout(Base):
    """
    A period during which a room can not be booked (maintenance, holiday...).
    Active blackouts block bookings exactly like a confirmed booking without buffer.
    """

    __tablename__ = "facilities_room_blackout"

    id: Mapped[PrimaryKey]
    room_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("facilities_room.id"),
        index=True,
    )
    title: Mapped[str]
    description: Mapped[str | None]
    start: Mapped[datetime]
    end: Mapped[datetime]
    blackout_type: Mapped[BlackoutType]
    is_active: Mapped[bool]
    created_by: Mapped[str | None] = mapped_column(ForeignKey("core_user.id"))
