import logging
import uuid
from datetime import UTC, date, datetime, time, timedelta

from fastapi import BackgroundTasks, Depends, HTTPException, Query
from pydantic import AwareDatetime
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.users import models_users
from app.core.users.types_users import UserRole
from app.core.utils.config import Settings
from app.dependencies import (
    get_db,
    get_request_id,
    get_settings,
    is_user,
    is_user_a_manager,
    is_user_an_admin,
)
from app.modules.booking import (
    conflicts_booking,
    cruds_booking,
    models_booking,
    schemas_booking,
    utils_booking,
)
from app.modules.booking.types_booking import BookingStatus, Decision, PaymentStatus
from app.modules.facilities import (
    cruds_facilities,
    models_facilities,
    schemas_facilities,
    utils_facilities,
)
from app.modules.facilities.types_facilities import RoomStatus
from app.modules.invitations import cruds_invitations
from app.modules.issues import cruds_issues
from app.types.exceptions import (
    BookingConflictError,
    BookingRuleViolationError,
    ContentHTTPException,
)
from app.types.module import Module
from app.utils.tools import is_user_manager_of_facility

module = Module(
    root="booking",
    tag="Booking",
)

hub_booking_logger = logging.getLogger("hub.booking")

EXPIRED_REASON = "expired"
AUTO_RELEASED_REASON = "auto-released"


def conflict_exception(error: BookingConflictError) -> ContentHTTPException:
    return ContentHTTPException(
        status_code=409,
        content=schemas_booking.BookingConflict(
            detail=str(error),
            conflicts=error.conflicts,
        ).model_dump(mode="json"),
    )


def check_interval_or_400(start: datetime, end: datetime) -> None:
    if start >= end:
        raise HTTPException(status_code=400, detail="Start must be before end")


async def get_room_or_404(
    db: AsyncSession,
    room_id: uuid.UUID,
) -> models_facilities.Room:
    room = await cruds_facilities.get_room_by_id(db=db, room_id=room_id)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


async def get_booking_or_404(
    db: AsyncSession,
    booking_id: uuid.UUID,
) -> models_booking.Booking:
    booking = await cruds_booking.get_booking_by_id(db=db, booking_id=booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


def is_user_manager_of_booking(
    user: models_users.CoreUser,
    booking: models_booking.Booking,
) -> bool:
    return is_user_manager_of_facility(user, booking.room.facility.manager_id)


################
# Availability #
################


@module.router.get(
    "/rooms/available",
    response_model=list[schemas_facilities.RoomSimple],
    status_code=200,
)
async def get_available_rooms(
    start: AwareDatetime,
    end: AwareDatetime,
    capacity: int | None = Query(default=None, gt=0),
    facility_id: uuid.UUID | None = None,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
    settings: Settings = Depends(get_settings),
):
    """
    Return the rooms which can be booked between `start` and `end`: available rooms, large enough,
    without any blocking booking or blackout on the window once the buffer of each room is applied.

    **The user must be authenticated to use this endpoint**
    """
    check_interval_or_400(start, end)

    rooms = [
        room
        for room in await cruds_facilities.get_rooms(db=db, facility_id=facility_id)
        if room.status == RoomStatus.available
        and (capacity is None or room.capacity >= capacity)
    ]
    if not rooms:
        return []
    room_ids = [room.id for room in rooms]

    availabilities = await cruds_facilities.get_rooms_availability(
        db=db,
        room_ids=room_ids,
    )
    buffers_by_room = {
        room_id: timedelta(minutes=availability.buffer_minutes)
        for room_id, availability in availabilities.items()
    }
    default_buffer = timedelta(minutes=settings.DEFAULT_BUFFER_MINUTES)
    largest_buffer = max([default_buffer, *buffers_by_room.values()])
    blocking_statuses = settings.BOOKING_BLOCKING_POLICY.statuses()

    occupied_by_room = await utils_booking.get_occupied_intervals(
        db=db,
        room_ids=room_ids,
        start=start - largest_buffer,
        end=end,
        blocking_statuses=blocking_statuses,
    )
    return conflicts_booking.filter_available_rooms(
        start=start,
        end=end,
        rooms=rooms,
        occupied_by_room=occupied_by_room,
        buffers_by_room=buffers_by_room,
        default_buffer=default_buffer,
        blocking_statuses=blocking_statuses,
    )


@module.router.get(
    "/rooms/{room_id}/availability/slots",
    response_model=schemas_booking.DayAvailability,
    status_code=200,
)
async def get_room_day_slots(
    room_id: uuid.UUID,
    day: date = Query(alias="date"),
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
    settings: Settings = Depends(get_settings),
):
    """
    Return the slot grid of a room for one day of the facility timezone, with the start times
    that can be selected and, for each of them, the end times that can be selected.

    When the day can not be booked, `unavailable_reason` explains why and no option is returned.

    **The user must be authenticated to use this endpoint**
    """
    room = await get_room_or_404(db=db, room_id=room_id)
    availability = await utils_facilities.get_effective_room_availability(
        db=db,
        room_id=room_id,
        settings=settings,
    )
    tz = settings.FACILITY_ZONEINFO
    now = datetime.now(UTC)
    local_today = now.astimezone(tz).date()

    day_availability = schemas_booking.DayAvailability(
        room_id=room_id,
        day=day,
        timezone=settings.FACILITY_TIMEZONE,
        blocking_policy=settings.BOOKING_BLOCKING_POLICY,
        opening=None,
        closing=None,
        slots=[],
        start_options=[],
        end_options={},
        restrictions=availability,
    )

    hours = utils_facilities.get_operating_hours(availability, day.weekday())
    if hours is None:
        day_availability.unavailable_reason = (
            f"Room is closed on {day.strftime('%A')}"
        )
        return day_availability

    opening, closing = conflicts_booking.local_operating_window(
        day=day,
        opening=hours.opening,
        closing=hours.closing,
        tz=tz,
    )
    buffer = timedelta(minutes=availability.buffer_minutes)
    blocking_statuses = settings.BOOKING_BLOCKING_POLICY.statuses()
    occupied = await utils_booking.get_occupied_intervals(
        db=db,
        room_ids=[room_id],
        start=opening - buffer,
        end=closing,
        blocking_statuses=blocking_statuses,
    )
    grid = conflicts_booking.build_slot_grid(
        opening=opening,
        closing=closing,
        occupied=occupied[room_id],
        buffer=buffer,
        blocking_statuses=blocking_statuses,
        granularity=timedelta(minutes=settings.SLOT_GRANULARITY_MINUTES),
        min_duration=timedelta(minutes=availability.min_duration_minutes),
        max_duration=timedelta(minutes=availability.max_duration_minutes),
        not_before=now,
    )
    day_availability.opening = opening
    day_availability.closing = closing
    day_availability.slots = grid.slots

    if room.status != RoomStatus.available:
        day_availability.unavailable_reason = "Room is not available for booking"
    elif day < local_today:
        day_availability.unavailable_reason = "This day is in the past"
    elif not availability.same_day_booking_enabled and day == local_today:
        day_availability.unavailable_reason = (
            "Same-day bookings are not allowed for this room"
        )
    elif day > local_today + timedelta(days=availability.advance_booking_days):
        day_availability.unavailable_reason = f"Bookings can only be made up to {availability.advance_booking_days} days in advance"
    else:
        day_availability.start_options = grid.start_options
        day_availability.end_options = grid.end_options

    return day_availability


@module.router.get(
    "/rooms/{room_id}/availability/check",
    response_model=schemas_booking.AvailabilityCheck,
    status_code=200,
)
async def check_room_availability(
    room_id: uuid.UUID,
    start: AwareDatetime,
    end: AwareDatetime,
    exclude_booking_id: uuid.UUID | None = None,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
    settings: Settings = Depends(get_settings),
):
    """
    Check if the window is free on the room, and return the conflicting bookings and blackouts otherwise.
    `exclude_booking_id` allows to ignore a booking being edited.

    Booking rules (operating hours, durations...) are not checked by this endpoint.

    **The user must be authenticated to use this endpoint**
    """
    check_interval_or_400(start, end)
    await get_room_or_404(db=db, room_id=room_id)
    availability = await utils_facilities.get_effective_room_availability(
        db=db,
        room_id=room_id,
        settings=settings,
    )
    buffer = timedelta(minutes=availability.buffer_minutes)
    blocking_statuses = settings.BOOKING_BLOCKING_POLICY.statuses()

    occupied = await utils_booking.get_occupied_intervals(
        db=db,
        room_ids=[room_id],
        start=start - buffer,
        end=end,
        blocking_statuses=blocking_statuses,
        exclude_booking_id=exclude_booking_id,
    )
    conflicts = conflicts_booking.find_conflicts(
        start=start,
        end=end,
        occupied=occupied[room_id],
        buffer=buffer,
        blocking_statuses=blocking_statuses,
    )
    return schemas_booking.AvailabilityCheck(
        available=not conflicts,
        conflicts=conflicts,
    )


@module.router.get(
    "/rooms/{room_id}/bookings",
    response_model=list[schemas_booking.Booking],
    status_code=200,
)
async def get_room_bookings(
    room_id: uuid.UUID,
    start: AwareDatetime,
    end: AwareDatetime,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
    settings: Settings = Depends(get_settings),
):
    """
    Return the blocking bookings of a room overlapping the window, to display a calendar

    **The user must be authenticated to use this endpoint**
    """
    check_interval_or_400(start, end)
    await get_room_or_404(db=db, room_id=room_id)
    return await cruds_booking.get_bookings_in_window(
        db=db,
        room_ids=[room_id],
        start=start,
        end=end,
        statuses=settings.BOOKING_BLOCKING_POLICY.statuses(),
    )


@module.router.get(
    "/rooms/{room_id}/quote",
    response_model=schemas_booking.Quote,
    status_code=200,
)
async def get_room_quote(
    room_id: uuid.UUID,
    start: AwareDatetime,
    end: AwareDatetime,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    Return the price of a booking of the room, every started hour is billed

    **The user must be authenticated to use this endpoint**
    """
    check_interval_or_400(start, end)
    room = await get_room_or_404(db=db, room_id=room_id)
    return utils_booking.compute_quote(room=room, start=start, end=end)


############
# Bookings #
############


@module.router.post(
    "/bookings",
    response_model=schemas_booking.Booking,
    status_code=201,
)
async def create_booking(
    booking: schemas_booking.BookingCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
    settings: Settings = Depends(get_settings),
    request_id: str = Depends(get_request_id),
):
    """
    Request a booking. The booking is created as pending and the manager of the facility is warned by email
    and by an in-app notification.

    A booking conflicting with another booking or a blackout is refused with a 409 error listing the conflicting windows.

    **The user must be authenticated to use this endpoint**
    """
    room = await get_room_or_404(db=db, room_id=booking.room_id)
    availability = await utils_facilities.get_effective_room_availability(
        db=db,
        room_id=room.id,
        settings=settings,
    )
    now = datetime.now(UTC)

    try:
        await utils_booking.check_booking_rules(
            db=db,
            room=room,
            availability=availability,
            user_id=user.id,
            start=booking.start,
            end=booking.end,
            attendees=booking.attendees,
            settings=settings,
            now=now,
        )
    except BookingRuleViolationError as error:
        raise HTTPException(status_code=400, detail=str(error))

    quote = utils_booking.compute_quote(room=room, start=booking.start, end=booking.end)
    booking_db = models_booking.Booking(
        id=uuid.uuid4(),
        room_id=room.id,
        user_id=user.id,
        title=booking.title,
        description=booking.description,
        start=booking.start,
        end=booking.end,
        status=BookingStatus.pending,
        rejection_reason=None,
        attendees=booking.attendees,
        checked_in_at=None,
        created_at=now,
        updated_at=now,
        **utils_booking.payment_fields(quote, now),
    )
    try:
        await utils_booking.reserve_if_available(
            db=db,
            booking=booking_db,
            buffer=timedelta(minutes=availability.buffer_minutes),
            blocking_statuses=settings.BOOKING_BLOCKING_POLICY.statuses(),
        )
    except BookingConflictError as error:
        hub_booking_logger.info(
            f"Create_booking: request of {user.id} on room {room.id} refused, {len(error.conflicts)} conflicts ({request_id})",
        )
        raise conflict_exception(error)

    hub_booking_logger.info(
        f"Create_booking: booking {booking_db.id} created by {user.id} on room {room.id} ({request_id})",
    )
    await utils_booking.notify_booking_request(
        db=db,
        booking=booking_db,
        room=room,
        facility=room.facility,
        requester_name=user.name,
        settings=settings,
    )
    utils_booking.send_booking_request_email(
        background_tasks=background_tasks,
        booking=booking_db,
        room=room,
        facility=room.facility,
        requester_name=user.name,
        settings=settings,
    )
    return booking_db


@module.router.get(
    "/bookings",
    response_model=list[schemas_booking.BookingComplete],
    status_code=200,
)
async def get_bookings(
    statuses: list[BookingStatus] = Query(default=[]),
    room_id: uuid.UUID | None = None,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_an_admin),
):
    """
    Return all bookings, optionally filtered by status and room

    **This endpoint is only usable by administrators**
    """
    return await cruds_booking.get_bookings(db=db, statuses=statuses, room_id=room_id)


@module.router.get(
    "/bookings/users/me",
    response_model=list[schemas_booking.BookingComplete],
    status_code=200,
)
async def get_current_user_bookings(
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    Return the bookings of the current user, most recent first

    **The user must be authenticated to use this endpoint**
    """
    return await cruds_booking.get_bookings_by_user(db=db, user_id=user.id)


@module.router.get(
    "/bookings/users/me/manage",
    response_model=list[schemas_booking.BookingComplete],
    status_code=200,
)
async def get_bookings_for_manager(
    statuses: list[BookingStatus] = Query(default=[]),
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
):
    """
    Return the bookings of the facilities managed by the current user. Administrators manage every facility.

    **This endpoint is only usable by facility managers and administrators**
    """
    if user.role == UserRole.admin:
        return await cruds_booking.get_bookings(db=db, statuses=statuses)

    facilities = await cruds_facilities.get_facilities_by_manager(
        db=db,
        manager_id=user.id,
    )
    if not facilities:
        return []
    return await cruds_booking.get_bookings_by_facilities(
        db=db,
        facility_ids=[facility.id for facility in facilities],
        statuses=statuses,
    )


@module.router.post(
    "/bookings/expire-pending",
    response_model=schemas_booking.MaintenanceResult,
    status_code=200,
)
async def expire_pending_bookings(
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_an_admin),
    request_id: str = Depends(get_request_id),
):
    """
    Cancel pending bookings whose start has passed without any decision.
    Meant to be called regularly by a scheduled job.

    **This endpoint is only usable by administrators**
    """
    now = datetime.now(UTC)
    bookings = await cruds_booking.get_pending_bookings_started_before(db=db, now=now)
    booking_ids = [booking.id for booking in bookings]
    if booking_ids:
        await cruds_booking.cancel_bookings(
            db=db,
            booking_ids=booking_ids,
            reason=EXPIRED_REASON,
            now=now,
        )
    hub_booking_logger.info(
        f"Expire_pending_bookings: {len(booking_ids)} bookings expired ({request_id})",
    )
    return schemas_booking.MaintenanceResult(
        count=len(booking_ids),
        booking_ids=booking_ids,
    )


@module.router.post(
    "/bookings/auto-release",
    response_model=schemas_booking.MaintenanceResult,
    status_code=200,
)
async def auto_release_bookings(
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_an_admin),
    settings: Settings = Depends(get_settings),
    request_id: str = Depends(get_request_id),
):
    """
    Release confirmed bookings nobody checked in once the check-in grace period is over,
    so the room can be booked again. Meant to be called regularly by a scheduled job.

    **This endpoint is only usable by administrators**
    """
    now = datetime.now(UTC)
    bookings = await cruds_booking.get_unchecked_confirmed_bookings_started_before(
        db=db,
        threshold=now - timedelta(minutes=settings.CHECK_IN_GRACE_MINUTES),
    )
    booking_ids = [booking.id for booking in bookings]
    if booking_ids:
        await cruds_booking.cancel_bookings(
            db=db,
            booking_ids=booking_ids,
            reason=AUTO_RELEASED_REASON,
            now=now,
        )
    hub_booking_logger.info(
        f"Auto_release_bookings: {len(booking_ids)} bookings released ({request_id})",
    )
    return schemas_booking.MaintenanceResult(
        count=len(booking_ids),
        booking_ids=booking_ids,
    )


@module.router.post(
    "/bookings/send-reminders",
    response_model=schemas_booking.ReminderResult,
    status_code=200,
)
async def send_booking_reminders(
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_an_admin),
    settings: Settings = Depends(get_settings),
    request_id: str = Depends(get_request_id),
):
    """
    Send an in-app reminder to the requesters of confirmed bookings starting soon.
    Each booking is reminded once. Meant to be called regularly by a scheduled job.

    **This endpoint is only usable by administrators**
    """
    result = await utils_booking.send_booking_reminders(
        db=db,
        settings=settings,
        now=datetime.now(UTC),
    )
    hub_booking_logger.info(
        f"Send_booking_reminders: {result.reminders_sent} reminders sent, {result.already_notified} already sent ({request_id})",
    )
    return result


@module.router.get(
    "/facilities/{facility_id}/booking-trends",
    response_model=list[schemas_booking.DailyBookingCount],
    status_code=200,
)
async def get_facility_booking_trends(
    facility_id: uuid.UUID,
    days: int = Query(default=30, gt=0, le=366),
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
    settings: Settings = Depends(get_settings),
):
    """
    Return the number of bookings requested in the rooms of the facility for each of the last `days` days,
    today included. A facility without rooms has no trend.

    **This endpoint is only usable by the manager of the facility and administrators**
    """
    facility = await cruds_facilities.get_facility_by_id(db=db, facility_id=facility_id)
    if facility is None:
        raise HTTPException(status_code=404, detail="Facility not found")
    if not is_user_manager_of_facility(user, facility.manager_id):
        raise HTTPException(
            status_code=403,
            detail="You are not allowed to manage this facility",
        )
    if not facility.rooms:
        return []

    tz = settings.FACILITY_ZONEINFO
    today = datetime.now(UTC).astimezone(tz).date()
    first_day = today - timedelta(days=days - 1)
    created_at = await cruds_booking.get_booking_creation_dates_of_facility(
        db=db,
        facility_id=facility_id,
        since=datetime.combine(first_day, time(0), tzinfo=tz),
    )
    return utils_booking.count_bookings_per_day(
        created_at=created_at,
        last_day=today,
        days=days,
        tz=tz,
    )


@module.router.get(
    "/bookings/{booking_id}",
    response_model=schemas_booking.BookingComplete,
    status_code=200,
)
async def get_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    **This endpoint is only usable by the requester, the manager of the facility and administrators**
    """
    booking = await get_booking_or_404(db=db, booking_id=booking_id)
    if booking.user_id != user.id and not is_user_manager_of_booking(user, booking):
        raise HTTPException(
            status_code=403,
            detail="You are not allowed to see this booking",
        )
    return booking


@module.router.patch(
    "/bookings/{booking_id}",
    status_code=204,
)
async def edit_booking(
    booking_id: uuid.UUID,
    booking_edit: schemas_booking.BookingEdit,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
    settings: Settings = Depends(get_settings),
    request_id: str = Depends(get_request_id),
):
    """
    Edit a booking, the request should contain a JSON with the fields to change (not necessarily all fields) and their new value.
    A new window is checked against the room rules and the other bookings.

    **This endpoint is only usable by the requester while the booking is pending, the manager of the facility and administrators**
    """
    booking = await get_booking_or_404(db=db, booking_id=booking_id)
    is_manager = is_user_manager_of_booking(user, booking)
    if booking.user_id != user.id and not is_manager:
        raise HTTPException(
            status_code=403,
            detail="You are not allowed to edit this booking",
        )
    if booking.status == BookingStatus.cancelled:
        raise HTTPException(
            status_code=400,
            detail="Cancelled bookings can not be edited, resubmit them instead",
        )
    if booking.status != BookingStatus.pending and not is_manager:
        raise HTTPException(
            status_code=403,
            detail="Only pending bookings can be edited",
        )

    now = datetime.now(UTC)
    changes = booking_edit.model_dump(exclude_none=True)
    changes["updated_at"] = now

    start = booking_edit.start or booking.start
    end = booking_edit.end or booking.end
    window_changed = start != booking.start or end != booking.end
    if not window_changed and booking_edit.attendees is None:
        await cruds_booking.update_booking(db=db, booking_id=booking_id, values=changes)
        return

    check_interval_or_400(start, end)
    room = booking.room
    availability = await utils_facilities.get_effective_room_availability(
        db=db,
        room_id=room.id,
        settings=settings,
    )
    try:
        await utils_booking.check_booking_rules(
            db=db,
            room=room,
            availability=availability,
            user_id=booking.user_id,
            start=start,
            end=end,
            attendees=booking_edit.attendees or booking.attendees,
            settings=settings,
            now=now,
            exclude_booking_id=booking.id,
        )
    except BookingRuleViolationError as error:
        raise HTTPException(status_code=400, detail=str(error))

    if window_changed and booking.payment_status != PaymentStatus.paid:
        quote = utils_booking.compute_quote(room=room, start=start, end=end)
        payment = utils_booking.payment_fields(quote, now)
        # An existing reference is kept so the requester can still pay with it
        if booking.payment_reference and quote.payment_required:
            payment["payment_reference"] = booking.payment_reference
        changes.update(payment)

    try:
        await utils_booking.reserve_if_available(
            db=db,
            booking=booking,
            buffer=timedelta(minutes=availability.buffer_minutes),
            blocking_statuses=settings.BOOKING_BLOCKING_POLICY.statuses(),
            **changes,
        )
    except BookingConflictError as error:
        raise conflict_exception(error)

    hub_booking_logger.info(
        f"Edit_booking: booking {booking_id} edited by {user.id} ({request_id})",
    )


@module.router.patch(
    "/bookings/{booking_id}/status",
    status_code=204,
)
async def decide_booking(
    booking_id: uuid.UUID,
    status_update: schemas_booking.BookingStatusUpdate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
    settings: Settings = Depends(get_settings),
    request_id: str = Depends(get_request_id),
):
    """
    Approve or decline a pending booking. Approval checks again that no confirmed booking or blackout
    conflicts with the booking. The requester is warned by email and by an in-app notification.

    **This endpoint is only usable by the manager of the facility and administrators**
    """
    booking = await get_booking_or_404(db=db, booking_id=booking_id)
    if not is_user_manager_of_booking(user, booking):
        raise HTTPException(
            status_code=403,
            detail="You are not allowed to manage this booking",
        )
    if booking.status != BookingStatus.pending:
        raise HTTPException(
            status_code=400,
            detail="Only pending bookings can be approved or declined",
        )

    now = datetime.now(UTC)
    if status_update.decision == Decision.approved:
        if booking.start <= now:
            raise HTTPException(
                status_code=400,
                detail="This booking has already started",
            )
        availability = await utils_facilities.get_effective_room_availability(
            db=db,
            room_id=booking.room_id,
            settings=settings,
        )
        try:
            await utils_booking.reserve_if_available(
                db=db,
                booking=booking,
                buffer=timedelta(minutes=availability.buffer_minutes),
                blocking_statuses={BookingStatus.confirmed},
                status=BookingStatus.confirmed,
                rejection_reason=None,
                updated_at=now,
            )
        except BookingConflictError as error:
            raise conflict_exception(error)
    else:
        await cruds_booking.update_booking(
            db=db,
            booking_id=booking_id,
            values={
                "status": BookingStatus.cancelled,
                "rejection_reason": status_update.rejection_reason,
                "updated_at": now,
            },
        )

    hub_booking_logger.info(
        f"Decide_booking: booking {booking_id} {status_update.decision} by {user.id} ({request_id})",
    )
    await utils_booking.notify_booking_decision(
        db=db,
        booking=booking,
        room=booking.room,
        settings=settings,
    )
    utils_booking.send_booking_decision_email(
        background_tasks=background_tasks,
        booking=booking,
        room=booking.room,
        requester_email=booking.user.email,
        requester_name=booking.user.name,
        settings=settings,
    )


@module.router.post(
    "/bookings/{booking_id}/cancel",
    status_code=204,
)
async def cancel_booking(
    booking_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    booking_cancel: schemas_booking.BookingCancel | None = None,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
    settings: Settings = Depends(get_settings),
    request_id: str = Depends(get_request_id),
):
    """
    Cancel a booking. The room becomes available again for the window.

    **This endpoint is only usable by the requester, the manager of the facility and administrators**
    """
    booking = await get_booking_or_404(db=db, booking_id=booking_id)
    is_requester = booking.user_id == user.id
    if not is_requester and not is_user_manager_of_booking(user, booking):
        raise HTTPException(
            status_code=403,
            detail="You are not allowed to cancel this booking",
        )
    if booking.status == BookingStatus.cancelled:
        raise HTTPException(status_code=400, detail="Booking is already cancelled")

    reason = booking_cancel.reason if booking_cancel else None
    await cruds_booking.update_booking(
        db=db,
        booking_id=booking_id,
        values={
            "status": BookingStatus.cancelled,
            "rejection_reason": reason,
            "updated_at": datetime.now(UTC),
        },
    )
    hub_booking_logger.info(
        f"Cancel_booking: booking {booking_id} cancelled by {user.id} ({request_id})",
    )

    if is_requester:
        manager = booking.room.facility.manager
        recipients = [manager.email] if manager is not None else []
    else:
        recipients = [booking.user.email]
    utils_booking.send_booking_cancelled_email(
        background_tasks=background_tasks,
        booking=booking,
        room=booking.room,
        recipients=recipients,
        reason=reason,
        settings=settings,
    )


@module.router.post(
    "/bookings/{booking_id}/resubmit",
    response_model=schemas_booking.Booking,
    status_code=200,
)
async def resubmit_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
    settings: Settings = Depends(get_settings),
    request_id: str = Depends(get_request_id),
):
    """
    Submit again a cancelled booking which has not started yet. The booking becomes pending
    if the window is still free.

    **This endpoint is only usable by the requester**
    """
    booking = await get_booking_or_404(db=db, booking_id=booking_id)
    if booking.user_id != user.id:
        raise HTTPException(
            status_code=403,
            detail="Only the requester can resubmit a booking",
        )
    if booking.status != BookingStatus.cancelled:
        raise HTTPException(
            status_code=400,
            detail="Only cancelled bookings can be resubmitted",
        )

    now = datetime.now(UTC)
    if booking.start <= now:
        raise HTTPException(
            status_code=400,
            detail="Bookings which already started can not be resubmitted",
        )

    availability = await utils_facilities.get_effective_room_availability(
        db=db,
        room_id=booking.room_id,
        settings=settings,
    )
    try:
        await utils_booking.check_booking_rules(
            db=db,
            room=booking.room,
            availability=availability,
            user_id=booking.user_id,
            start=booking.start,
            end=booking.end,
            attendees=booking.attendees,
            settings=settings,
            now=now,
            exclude_booking_id=booking.id,
        )
    except BookingRuleViolationError as error:
        raise HTTPException(status_code=400, detail=str(error))

    try:
        await utils_booking.reserve_if_available(
            db=db,
            booking=booking,
            buffer=timedelta(minutes=availability.buffer_minutes),
            blocking_statuses=settings.BOOKING_BLOCKING_POLICY.statuses(),
            status=BookingStatus.pending,
            rejection_reason=None,
            checked_in_at=None,
            updated_at=now,
        )
    except BookingConflictError as error:
        raise conflict_exception(error)

    hub_booking_logger.info(
        f"Resubmit_booking: booking {booking_id} resubmitted by {user.id} ({request_id})",
    )
    return booking


@module.router.delete(
    "/bookings/{booking_id}",
    status_code=204,
)
async def delete_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_an_admin),
    request_id: str = Depends(get_request_id),
):
    """
    Remove a booking from the database. Requesters should cancel their bookings instead.

    **This endpoint is only usable by administrators**
    """
    await get_booking_or_404(db=db, booking_id=booking_id)
    await cruds_invitations.delete_invitations_of_booking(
        db=db,
        booking_id=booking_id,
    )
    await cruds_issues.unlink_booking(db=db, booking_id=booking_id)
    await cruds_booking.delete_booking(db=db, booking_id=booking_id)
    hub_booking_logger.info(
        f"Delete_booking: booking {booking_id} deleted by {user.id} ({request_id})",
    )


############
# Check-in #
############


def get_check_in_status(
    booking: models_booking.Booking,
    settings: Settings,
    now: datetime,
) -> schemas_booking.CheckInStatus:
    window_opens, window_closes = utils_booking.check_in_window(booking, settings)
    return schemas_booking.CheckInStatus(
        booking_id=booking.id,
        checked_in=booking.checked_in_at is not None,
        checked_in_at=booking.checked_in_at,
        window_opens=window_opens,
        window_closes=window_closes,
        can_check_in=booking.status == BookingStatus.confirmed
        and booking.checked_in_at is None
        and window_opens <= now <= window_closes,
    )


@module.router.get(
    "/bookings/{booking_id}/check-in",
    response_model=schemas_booking.CheckInStatus,
    status_code=200,
)
async def get_booking_check_in(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
    settings: Settings = Depends(get_settings),
):
    """
    **This endpoint is only usable by the requester, the manager of the facility and administrators**
    """
    booking = await get_booking_or_404(db=db, booking_id=booking_id)
    if booking.user_id != user.id and not is_user_manager_of_booking(user, booking):
        raise HTTPException(
            status_code=403,
            detail="You are not allowed to see this booking",
        )
    return get_check_in_status(booking, settings, datetime.now(UTC))


@module.router.post(
    "/bookings/{booking_id}/check-in",
    response_model=schemas_booking.CheckInStatus,
    status_code=200,
)
async def check_in_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
    settings: Settings = Depends(get_settings),
    request_id: str = Depends(get_request_id),
):
    """
    Confirm that the room is used. Check-in opens a few minutes before the start of the booking
    and closes after a grace period, unchecked bookings are then released.

    **This endpoint is only usable by the requester, the manager of the facility and administrators**
    """
    booking = await get_booking_or_404(db=db, booking_id=booking_id)
    if booking.user_id != user.id and not is_user_manager_of_booking(user, booking):
        raise HTTPException(
            status_code=403,
            detail="You are not allowed to check in this booking",
        )
    if booking.status != BookingStatus.confirmed:
        raise HTTPException(
            status_code=400,
            detail="Only confirmed bookings can be checked in",
        )
    if booking.checked_in_at is not None:
        raise HTTPException(status_code=400, detail="Booking is already checked in")

    now = datetime.now(UTC)
    window_opens, window_closes = utils_booking.check_in_window(booking, settings)
    if now < window_opens:
        raise HTTPException(status_code=400, detail="Check-in is not open yet")
    if now > window_closes:
        raise HTTPException(status_code=400, detail="Check-in window has closed")

    await cruds_booking.update_booking(
        db=db,
        booking_id=booking_id,
        values={"checked_in_at": now, "updated_at": now},
    )
    hub_booking_logger.info(
        f"Check_in_booking: booking {booking_id} checked in by {user.id} ({request_id})",
    )
    return get_check_in_status(booking, settings, now)
