import logging
import math
import uuid
from collections import defaultdict
from collections.abc import Collection, Sequence
from datetime import date, datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.notification import cruds_notification
from app.core.notification.notification_types import NotificationType
from app.core.notification.utils_notification import notify_user
from app.core.utils.config import Settings
from app.modules.booking import (
    conflicts_booking,
    cruds_booking,
    models_booking,
    schemas_booking,
)
from app.modules.booking.schemas_booking import OccupiedInterval, Quote
from app.modules.booking.types_booking import (
    BookingStatus,
    OccupancyKind,
    PaymentStatus,
)
from app.modules.facilities import (
    cruds_facilities,
    models_facilities,
    schemas_facilities,
)
from app.modules.facilities.types_facilities import RoomStatus
from app.modules.facilities.utils_facilities import get_operating_hours
from app.types.exceptions import BookingConflictError, BookingRuleViolationError
from app.utils.tools import get_random_string, send_templated_email

hub_booking_logger = logging.getLogger("hub.booking")

EMAIL_DATETIME_FORMAT = "%A %d %B %Y %H:%M"


def booking_to_interval(booking: models_booking.Booking) -> OccupiedInterval:
    return OccupiedInterval(
        start=booking.start,
        end=booking.end,
        kind=OccupancyKind.booking,
        status=booking.status,
        id=booking.id,
    )


def blackout_to_interval(blackout: models_facilities.RoomBlackout) -> OccupiedInterval:
    return OccupiedInterval(
        start=blackout.start,
        end=blackout.end,
        kind=OccupancyKind.blackout,
        id=blackout.id,
    )


async def get_occupied_intervals(
    db: AsyncSession,
    room_ids: Sequence[uuid.UUID],
    start: datetime,
    end: datetime,
    blocking_statuses: Collection[BookingStatus],
    exclude_booking_id: uuid.UUID | None = None,
) -> dict[uuid.UUID, list[OccupiedInterval]]:
    """
    Fetch the blocking bookings and active blackouts of the rooms overlapping `[start, end)`.

    To take buffers into account, callers should pass a `start` moved back by the largest buffer.
    """
    occupied: dict[uuid.UUID, list[OccupiedInterval]] = defaultdict(list)
    bookings = await cruds_booking.get_bookings_in_window(
        db=db,
        room_ids=room_ids,
        start=start,
        end=end,
        statuses=blocking_statuses,
        exclude_booking_id=exclude_booking_id,
    )
    for booking in bookings:
        occupied[booking.room_id].append(booking_to_interval(booking))
    blackouts = await cruds_facilities.get_active_blackouts(
        db=db,
        room_ids=room_ids,
        start=start,
        end=end,
    )
    for blackout in blackouts:
        occupied[blackout.room_id].append(blackout_to_interval(blackout))
    return occupied


async def reserve_if_available(
    db: AsyncSession,
    booking: models_booking.Booking,
    buffer: timedelta,
    blocking_statuses: Collection[BookingStatus],
    **changes: Any,
) -> models_booking.Booking:
    """
    Check that the room is free and save the booking in a single step.

    The room row is locked for the rest of the transaction, then blocking bookings and blackouts are fetched
    again and compared to the requested window. A conflict raises `BookingConflictError`
    and leaves the database untouched.

    `booking` is either a new booking, which will be inserted, or an existing booking to which `changes`
    (for example `start`, `end` or `status`) are applied. Existing bookings must not be modified before calling
    this function: the booking itself is excluded from the conflict check.
    """
    start: datetime = changes.get("start", booking.start)
    end: datetime = changes.get("end", booking.end)

    await cruds_booking.lock_room(db=db, room_id=booking.room_id)

    occupied = await get_occupied_intervals(
        db=db,
        room_ids=[booking.room_id],
        start=start - buffer,
        end=end,
        blocking_statuses=blocking_statuses,
        exclude_booking_id=booking.id,
    )
    conflicts = conflicts_booking.find_conflicts(
        start=start,
        end=end,
        occupied=occupied[booking.room_id],
        buffer=buffer,
        blocking_statuses=blocking_statuses,
    )
    if conflicts:
        raise BookingConflictError(conflicts)

    for key, value in changes.items():
        setattr(booking, key, value)
    if booking not in db:
        db.add(booking)
    await db.flush()
    return booking


async def check_booking_rules(
    db: AsyncSession,
    room: models_facilities.Room,
    availability: schemas_facilities.RoomAvailability,
    user_id: str,
    start: datetime,
    end: datetime,
    attendees: int | None,
    settings: Settings,
    now: datetime,
    exclude_booking_id: uuid.UUID | None = None,
) -> None:
    """
    Raise `BookingRuleViolationError` if the booking request does not respect the room rules.

    Calendar days and operating hours are evaluated in the facility timezone.
    """
    conflicts_booking.validate_interval(start, end)
    if room.status != RoomStatus.available:
        raise BookingRuleViolationError("Room is not available for booking")
    if start <= now:
        raise BookingRuleViolationError("Bookings must start in the future")

    duration = end - start
    if duration < timedelta(minutes=availability.min_duration_minutes):
        raise BookingRuleViolationError(
            f"Minimum booking duration is {availability.min_duration_minutes} minutes",
        )
    if duration > timedelta(minutes=availability.max_duration_minutes):
        raise BookingRuleViolationError(
            f"Maximum booking duration is {availability.max_duration_minutes} minutes",
        )

    tz = settings.FACILITY_ZONEINFO
    local_start = start.astimezone(tz)
    local_end = end.astimezone(tz)
    local_today = now.astimezone(tz).date()
    if local_start.date() != local_end.date():
        raise BookingRuleViolationError("Bookings must start and end on the same day")

    hours = get_operating_hours(availability, local_start.weekday())
    if hours is None:
        raise BookingRuleViolationError(
            f"Room is closed on {local_start.strftime('%A')}",
        )
    if local_start.time() < hours.opening or local_end.time() > hours.closing:
        raise BookingRuleViolationError(
            f"Bookings must be within operating hours ({hours.opening.strftime('%H:%M')} - {hours.closing.strftime('%H:%M')})",
        )

    if not availability.same_day_booking_enabled and local_start.date() == local_today:
        raise BookingRuleViolationError(
            "Same-day bookings are not allowed for this room",
        )
    if local_start.date() > local_today + timedelta(
        days=availability.advance_booking_days,
    ):
        raise BookingRuleViolationError(
            f"Bookings can only be made up to {availability.advance_booking_days} days in advance",
        )

    if attendees is not None and attendees > room.capacity:
        raise BookingRuleViolationError(
            f"Number of attendees exceeds room capacity ({room.capacity})",
        )

    day_start = local_start.replace(hour=0, minute=0, second=0, microsecond=0)
    caps = [
        (
            availability.max_bookings_per_user_per_day,
            day_start,
            day_start + timedelta(days=1),
            "Daily",
        ),
        (
            availability.max_bookings_per_user_per_week,
            day_start - timedelta(days=local_start.weekday()),
            day_start + timedelta(days=7 - local_start.weekday()),
            "Weekly",
        ),
    ]
    for cap, period_start, period_end, period_name in caps:
        if cap is None:
            continue
        count = await cruds_booking.count_user_bookings(
            db=db,
            user_id=user_id,
            room_id=room.id,
            start=period_start,
            end=period_end,
            statuses=settings.BOOKING_BLOCKING_POLICY.statuses(),
            exclude_booking_id=exclude_booking_id,
        )
        if count >= cap:
            raise BookingRuleViolationError(
                f"{period_name} booking limit reached for this room ({cap})",
            )


def compute_quote(
    room: models_facilities.Room,
    start: datetime,
    end: datetime,
) -> Quote:
    """
    Every started hour is billed at the hourly rate of the room. Rooms without a rate are free.
    """
    conflicts_booking.validate_interval(start, end)
    billed_hours = math.ceil((end - start) / timedelta(hours=1))
    payment_required = bool(room.hourly_rate)
    return Quote(
        room_id=room.id,
        start=start,
        end=end,
        billed_hours=billed_hours,
        amount=billed_hours * room.hourly_rate if room.hourly_rate else None,
        currency=room.currency if payment_required else None,
        payment_required=payment_required,
    )


def generate_payment_reference(now: datetime) -> str:
    return f"CHB_{int(now.timestamp() * 1000)}_{get_random_string(9)}"


def payment_fields(quote: Quote, now: datetime) -> dict[str, Any]:
    if not quote.payment_required:
        return {
            "amount": None,
            "currency": None,
            "payment_status": PaymentStatus.not_required,
            "payment_reference": None,
        }
    return {
        "amount": quote.amount,
        "currency": quote.currency,
        "payment_status": PaymentStatus.unpaid,
        "payment_reference": generate_payment_reference(now),
    }


def check_in_window(
    booking: models_booking.Booking,
    settings: Settings,
) -> tuple[datetime, datetime]:
    return (
        booking.start - timedelta(minutes=settings.CHECK_IN_OPENS_MINUTES),
        booking.start + timedelta(minutes=settings.CHECK_IN_GRACE_MINUTES),
    )


##########
# Emails #
##########


def _booking_email_context(
    booking: models_booking.Booking,
    room: models_facilities.Room,
    settings: Settings,
) -> dict[str, Any]:
    tz = settings.FACILITY_ZONEINFO
    return {
        "title": booking.title,
        "description": booking.description,
        "attendees": booking.attendees,
        "room_name": room.name,
        "start": booking.start.astimezone(tz).strftime(EMAIL_DATETIME_FORMAT),
        "end": booking.end.astimezone(tz).strftime(EMAIL_DATETIME_FORMAT),
        "timezone": settings.FACILITY_TIMEZONE,
    }


def send_booking_request_email(
    background_tasks: BackgroundTasks,
    booking: models_booking.Booking,
    room: models_facilities.Room,
    facility: models_facilities.Facility,
    requester_name: str,
    settings: Settings,
) -> None:
    """
    Warn the manager of the facility that a booking is waiting for approval
    """
    if facility.manager is None:
        return
    context = _booking_email_context(booking, room, settings)
    context.update(facility_name=facility.name, requester_name=requester_name)
    background_tasks.add_task(
        send_templated_email,
        recipient=facility.manager.email,
        subject=f"Conference Hub - New booking request for {room.name}",
        template_name="booking_request.html",
        context=context,
        settings=settings,
    )


def send_booking_decision_email(
    background_tasks: BackgroundTasks,
    booking: models_booking.Booking,
    room: models_facilities.Room,
    requester_email: str,
    requester_name: str,
    settings: Settings,
) -> None:
    decision = "confirmed" if booking.status == BookingStatus.confirmed else "declined"
    context = _booking_email_context(booking, room, settings)
    context.update(
        requester_name=requester_name,
        decision=decision,
        rejection_reason=booking.rejection_reason,
        amount=booking.amount,
        currency=booking.currency,
        payment_reference=booking.payment_reference,
    )
    background_tasks.add_task(
        send_templated_email,
        recipient=requester_email,
        subject=f"Conference Hub - Booking {decision}",
        template_name="booking_decision.html",
        context=context,
        settings=settings,
    )


def send_booking_cancelled_email(
    background_tasks: BackgroundTasks,
    booking: models_booking.Booking,
    room: models_facilities.Room,
    recipients: list[str],
    reason: str | None,
    settings: Settings,
) -> None:
    context = _booking_email_context(booking, room, settings)
    context.update(reason=reason)
    background_tasks.add_task(
        send_templated_email,
        recipient=recipients,
        subject="Conference Hub - Booking cancelled",
        template_name="booking_cancelled.html",
        context=context,
        settings=settings,
    )


########################
# In-app notifications #
########################


def local_time(moment: datetime, settings: Settings, fmt: str) -> str:
    return moment.astimezone(settings.FACILITY_ZONEINFO).strftime(fmt)


async def notify_booking_request(
    db: AsyncSession,
    booking: models_booking.Booking,
    room: models_facilities.Room,
    facility: models_facilities.Facility,
    requester_name: str,
    settings: Settings,
) -> None:
    """
    Warn the manager of the facility that a booking is waiting for approval
    """
    if facility.manager_id is None:
        return
    await notify_user(
        db=db,
        user_id=facility.manager_id,
        title="New Booking Request",
        message=f'{requester_name} requested "{booking.title}" in {room.name} on {local_time(booking.start, settings, EMAIL_DATETIME_FORMAT)}.',
        notification_type=NotificationType.booking_request,
        related_id=booking.id,
    )


async def notify_booking_decision(
    db: AsyncSession,
    booking: models_booking.Booking,
    room: models_facilities.Room,
    settings: Settings,
) -> None:
    start = local_time(booking.start, settings, EMAIL_DATETIME_FORMAT)
    if booking.status == BookingStatus.confirmed:
        title = "Booking Confirmed"
        message = f'Your booking "{booking.title}" in {room.name} on {start} has been confirmed.'
        notification_type = NotificationType.booking_confirmation
    else:
        title = "Booking Declined"
        message = f'Your booking "{booking.title}" in {room.name} on {start} has been declined.'
        if booking.rejection_reason:
            message += f" Reason: {booking.rejection_reason}"
        notification_type = NotificationType.booking_rejection
    await notify_user(
        db=db,
        user_id=booking.user_id,
        title=title,
        message=message,
        notification_type=notification_type,
        related_id=booking.id,
    )


async def send_booking_reminders(
    db: AsyncSession,
    settings: Settings,
    now: datetime,
) -> schemas_booking.ReminderResult:
    """
    Notify the requesters of confirmed bookings starting within the next `BOOKING_REMINDER_MINUTES`.

    A booking is only reminded once: bookings which already have a reminder notification are skipped,
    so the job can run as often as needed.
    """
    bookings = await cruds_booking.get_confirmed_bookings_starting_between(
        db=db,
        start=now,
        end=now + timedelta(minutes=settings.BOOKING_REMINDER_MINUTES),
    )
    already_notified = await cruds_notification.get_notified_related_ids(
        db=db,
        notification_type=NotificationType.booking_reminder,
        related_ids=[booking.id for booking in bookings],
    )

    reminded_ids: list[uuid.UUID] = []
    for booking in bookings:
        if booking.id in already_notified:
            continue
        await notify_user(
            db=db,
            user_id=booking.user_id,
            title="Upcoming Meeting Reminder",
            message=f'Your meeting "{booking.title}" in {booking.room.name} starts at {local_time(booking.start, settings, "%H:%M")}.',
            notification_type=NotificationType.booking_reminder,
            related_id=booking.id,
        )
        reminded_ids.append(booking.id)

    return schemas_booking.ReminderResult(
        total=len(bookings),
        already_notified=len(bookings) - len(reminded_ids),
        reminders_sent=len(reminded_ids),
        booking_ids=reminded_ids,
    )


##############
# Statistics #
##############


def count_bookings_per_day(
    created_at: Sequence[datetime],
    last_day: date,
    days: int,
    tz: ZoneInfo,
) -> list[schemas_booking.DailyBookingCount]:
    """
    Count the bookings created on each of the `days` days ending with `last_day`, in timezone `tz`.
    Days without any booking are included with a zero count.
    """
    counts = {last_day - timedelta(days=offset): 0 for offset in range(days - 1, -1, -1)}
    for moment in created_at:
        day = moment.astimezone(tz).date()
        if day in counts:
            counts[day] += 1
    return [
        schemas_booking.DailyBookingCount(date=day, bookings=count)
        for day, count in counts.items()
    ]
