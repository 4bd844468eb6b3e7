"""Schemas file for endpoints /facilities, /rooms and /resources"""

import uuid
from datetime import time

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from app.core.users.schemas_users import CoreUserSimple
from app.modules.facilities.types_facilities import (
    BlackoutType,
    ResourceStatus,
    RoomStatus,
    Weekday,
)
from app.utils import validators


class FacilityBase(BaseModel):
    name: str
    location: str | None = None
    description: str | None = None

    _normalize_name = field_validator("name")(validators.trailing_spaces_remover)


class FacilityUpdate(BaseModel):
    name: str | None = None
    location: str | None = None
    description: str | None = None


class FacilityManagerAssign(BaseModel):
    # None removes the current manager
    manager_id: str | None


class FacilitySimple(FacilityBase):
    id: uuid.UUID
    manager_id: str | None

    model_config = ConfigDict(from_attributes=True)


class Facility(FacilitySimple):
    manager: CoreUserSimple | None


class RoomBase(BaseModel):
    name: str
    capacity: int = Field(gt=0)
    location: str | None = None
    description: str | None = None
    status: RoomStatus = RoomStatus.available
    hourly_rate: int | None = Field(default=None, ge=0)
    currency: str | None = None

    _normalize_name = field_validator("name")(validators.trailing_spaces_remover)
    _normalize_currency = field_validator("currency")(validators.currency_validator)


class RoomCreate(RoomBase):
    facility_id: uuid.UUID


class RoomUpdate(BaseModel):
    name: str | None = None
    capacity: int | None = Field(default=None, gt=0)
    location: str | None = None
    description: str | None = None
    status: RoomStatus | None = None
    hourly_rate: int | None = Field(default=None, ge=0)
    currency: str | None = None

    _normalize_currency = field_validator("currency")(validators.currency_validator)


class RoomSimple(RoomBase):
    id: uuid.UUID
    facility_id: uuid.UUID
    currency: str

    model_config = ConfigDict(from_attributes=True)


class ResourceBase(BaseModel):
    name: str
    type: str
    status: ResourceStatus = ResourceStatus.available
    description: str | None = None
    facility_id: uuid.UUID | None = None


class ResourceUpdate(BaseModel):
    name: str | None = None
    type: str | None = None
    status: ResourceStatus | None = None
    description: str | None = None


class Resource(ResourceBase):
    id: uuid.UUID

    model_config = ConfigDict(from_attributes=True)


class RoomResourceAssign(BaseModel):
    resource_id: uuid.UUID
    quantity: int = Field(default=1, gt=0)


class RoomResource(BaseModel):
    resource: Resource
    quantity: int

    model_config = ConfigDict(from_attributes=True)


class RoomComplete(RoomSimple):
    facility: FacilitySimple
    resources: list[RoomResource]


class OperatingHours(BaseModel):
    weekday: Weekday
    enabled: bool = True
    opening: time
    closing: time

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def check_hours(self) -> "OperatingHours":
        if self.enabled and self.opening >= self.closing:
            raise ValueError("Opening time must be before closing time")  # noqa: TRY003
        return self


class RoomAvailabilityBase(BaseModel):
    min_duration_minutes: int = Field(default=30, gt=0)
    max_duration_minutes: int = Field(default=480, gt=0)
    buffer_minutes: int = Field(default=30, ge=0)
    advance_booking_days: int = Field(default=30, ge=0)
    same_day_booking_enabled: bool = True
    max_bookings_per_user_per_day: int | None = Field(default=None, gt=0)
    max_bookings_per_user_per_week: int | None = Field(default=None, gt=0)
    # Weekdays missing from the list are closed
    operating_hours: list[OperatingHours]

    @model_validator(mode="after")
    def check_durations(self) -> "RoomAvailabilityBase":
        if self.min_duration_minutes > self.max_duration_minutes:
            raise ValueError(  # noqa: TRY003
                "Minimum duration can not be greater than maximum duration",
            )
        weekdays = [hours.weekday for hours in self.operating_hours]
        if len(weekdays) != len(set(weekdays)):
            raise ValueError("Each weekday can only be configured once")  # noqa: TRY003
        return self


class RoomAvailability(RoomAvailabilityBase):
    room_id: uuid.UUID
    # False when the room has no configuration and the default rules are returned
    is_configured: bool = True

    model_config = ConfigDict(from_attributes=True)


class BlackoutBase(BaseModel):
    title: str
    description: str | None = None
    start: AwareDatetime
    end: AwareDatetime
    blackout_type: BlackoutType = BlackoutType.maintenance
    is_active: bool = True

    @model_validator(mode="after")
    def check_interval(self) -> "BlackoutBase":
        if self.start >= self.end:
            raise ValueError("Start must be before end")  # noqa: TRY003
        return self


class BlackoutUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    start: AwareDatetime | None = None
    end: AwareDatetime | None = None
    blackout_type: BlackoutType | None = None
    is_active: bool | None = None


class Blackout(BlackoutBase):
    id: uuid.UUID
    room_id: uuid.UUID
    created_by: str | None

    model_config = ConfigDict(from_attributes=True)
