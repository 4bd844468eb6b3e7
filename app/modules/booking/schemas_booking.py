"""Schemas file for endpoints /bookings and the room availability endpoints"""

import uuid
from datetime import date, datetime

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator

from app.core.users.schemas_users import CoreUserSimple
from app.modules.booking.types_booking import (
    BlockingPolicy,
    BookingStatus,
    Decision,
    OccupancyKind,
    PaymentStatus,
    SlotState,
    UnavailabilityReason,
)
from app.modules.facilities.schemas_facilities import RoomAvailability, RoomSimple

#########################
# Conflict computations #
#########################


class OccupiedInterval(BaseModel):
    """
    A window during which a room is occupied, either by a booking or by a blackout.
    Only bookings carry a status.
    """

    start: datetime
    end: datetime
    kind: OccupancyKind = OccupancyKind.booking
    status: BookingStatus | None = None
    id: uuid.UUID | None = None

    model_config = ConfigDict(frozen=True)


class Slot(BaseModel):
    start: datetime
    end: datetime
    state: SlotState
    reason: UnavailabilityReason | None = None


class SlotGrid(BaseModel):
    slots: list[Slot]
    start_options: list[datetime]
    # For each start option, the end times that can be selected
    end_options: dict[datetime, list[datetime]]


############
# Bookings #
############


class BookingBase(BaseModel):
    title: str = Field(min_length=1)
    description: str | None = None
    start: AwareDatetime
    end: AwareDatetime
    attendees: int | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def check_interval(self) -> "BookingBase":
        if self.start >= self.end:
            raise ValueError("Start must be before end")  # noqa: TRY003
        return self


class BookingCreate(BookingBase):
    room_id: uuid.UUID


class BookingEdit(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    start: AwareDatetime | None = None
    end: AwareDatetime | None = None
    attendees: int | None = Field(default=None, gt=0)


class BookingStatusUpdate(BaseModel):
    decision: Decision
    rejection_reason: str | None = None


class BookingCancel(BaseModel):
    reason: str | None = None


class Booking(BaseModel):
    id: uuid.UUID
    room_id: uuid.UUID
    user_id: str
    title: str
    description: str | None
    start: datetime
    end: datetime
    status: BookingStatus
    rejection_reason: str | None
    attendees: int | None
    amount: int | None
    currency: str | None
    payment_status: PaymentStatus
    payment_reference: str | None
    checked_in_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingComplete(Booking):
    room: RoomSimple
    user: CoreUserSimple


class BookingConflict(BaseModel):
    detail: str
    conflicts: list[OccupiedInterval]


class CheckInStatus(BaseModel):
    booking_id: uuid.UUID
    checked_in: bool
    checked_in_at: datetime | None
    window_opens: datetime
    window_closes: datetime
    can_check_in: bool


class MaintenanceResult(BaseModel):
    """Bookings modified by a maintenance job"""

    count: int
    booking_ids: list[uuid.UUID]


################
# Availability #
################


class AvailabilityCheck(BaseModel):
    available: bool
    conflicts: list[OccupiedInterval]


class DayAvailability(BaseModel):
    room_id: uuid.UUID
    day: date
    timezone: str
    blocking_policy: BlockingPolicy
    opening: datetime | None
    closing: datetime | None
    slots: list[Slot]
    start_options: list[datetime]
    end_options: dict[datetime, list[datetime]]
    restrictions: RoomAvailability
    unavailable_reason: str | None = None


class Quote(BaseModel):
    room_id: uuid.UUID
    start: datetime
    end: datetime
    # Every started hour is billed
    billed_hours: int
    amount: int | None
    currency: str | None
    payment_required: bool


class ReminderResult(BaseModel):
    """Outcome of a reminder run, bookings already reminded are counted but not notified again"""

    total: int
    already_notified: int
    reminders_sent: int
    booking_ids: list[uuid.UUID]


class DailyBookingCount(BaseModel):
    date: date
    bookings: int
