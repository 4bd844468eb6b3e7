"""
Booking interval conflict resolution.

Every function of this file is pure: callers fetch the bookings, blackouts and availability
configuration, then ask these functions whether a window is free. Intervals are half-open `[start, end)`
and every datetime must be timezone aware.

A booking reserves its room from its start until its end *plus* the buffer of the room:
a new booking can not begin before the buffer has elapsed, but the buffer of an existing booking
never restricts a booking that ends before the existing one starts.
"""

import uuid
from collections.abc import Collection, Mapping, Sequence
from datetime import UTC, date, datetime, time, timedelta
from typing import Protocol, TypeVar
from zoneinfo import ZoneInfo

from app.modules.booking.schemas_booking import OccupiedInterval, Slot, SlotGrid
from app.modules.booking.types_booking import (
    BookingStatus,
    OccupancyKind,
    SlotState,
    UnavailabilityReason,
)
from app.types.exceptions import InvalidIntervalError, NaiveDatetimeError


class HasId(Protocol):
    id: uuid.UUID


RoomT = TypeVar("RoomT", bound=HasId)


def check_aware(value: datetime) -> None:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise NaiveDatetimeError(value)


def validate_interval(start: datetime, end: datetime) -> None:
    """
    Raise if one of the bounds is naive or if the interval is empty or reversed.
    An invalid interval is never considered free.
    """
    check_aware(start)
    check_aware(end)
    if start >= end:
        raise InvalidIntervalError(start, end)


def intervals_conflict(
    candidate_start: datetime,
    candidate_end: datetime,
    existing_start: datetime,
    existing_end: datetime,
    buffer: timedelta = timedelta(0),
) -> bool:
    """
    Return True if the candidate `[candidate_start, candidate_end)` can not coexist with
    the existing `[existing_start, existing_end)` once `buffer` is added after the existing end.

    Touching endpoints do not conflict: a candidate ending at `existing_start`
    or starting exactly at `existing_end + buffer` is free.
    """
    validate_interval(candidate_start, candidate_end)
    check_aware(existing_start)
    check_aware(existing_end)
    if buffer < timedelta(0):
        raise ValueError("Buffer can not be negative")  # noqa: TRY003

    buffered_existing_end = existing_end + buffer
    return candidate_start < buffered_existing_end and candidate_end > existing_start


def is_blocking(
    interval: OccupiedInterval,
    blocking_statuses: Collection[BookingStatus],
) -> bool:
    """Blackouts always block, bookings only when their status is a blocking one"""
    if interval.kind == OccupancyKind.blackout:
        return True
    return interval.status in blocking_statuses


def find_conflicts(
    start: datetime,
    end: datetime,
    occupied: Sequence[OccupiedInterval],
    buffer: timedelta,
    blocking_statuses: Collection[BookingStatus],
) -> list[OccupiedInterval]:
    """
    Return every blocking interval of `occupied` conflicting with `[start, end)`.

    The buffer only applies after bookings, blackouts are compared without buffer.
    """
    validate_interval(start, end)
    return [
        interval
        for interval in occupied
        if is_blocking(interval, blocking_statuses)
        and intervals_conflict(
            candidate_start=start,
            candidate_end=end,
            existing_start=interval.start,
            existing_end=interval.end,
            buffer=buffer
            if interval.kind == OccupancyKind.booking
            else timedelta(0),
        )
    ]


def filter_available_rooms(
    start: datetime,
    end: datetime,
    rooms: Sequence[RoomT],
    occupied_by_room: Mapping[uuid.UUID, Sequence[OccupiedInterval]],
    buffers_by_room: Mapping[uuid.UUID, timedelta],
    default_buffer: timedelta,
    blocking_statuses: Collection[BookingStatus],
) -> list[RoomT]:
    """
    Return the rooms of the pool without any conflict on `[start, end)`, in the order of `rooms`.

    `occupied_by_room` may contain more intervals than needed (coarse database prefilter),
    rooms missing from it are free. Rooms missing from `buffers_by_room` use `default_buffer`.
    """
    validate_interval(start, end)
    return [
        room
        for room in rooms
        if not find_conflicts(
            start=start,
            end=end,
            occupied=occupied_by_room.get(room.id, []),
            buffer=buffers_by_room.get(room.id, default_buffer),
            blocking_statuses=blocking_statuses,
        )
    ]


def local_operating_window(
    day: date,
    opening: time,
    closing: time,
    tz: ZoneInfo,
) -> tuple[datetime, datetime]:
    """
    Return the aware datetimes at which the room opens and closes on `day`, in the facility timezone
    """
    return (
        datetime.combine(day, opening, tzinfo=tz),
        datetime.combine(day, closing, tzinfo=tz),
    )


def _slot_state(
    slot_start: datetime,
    blocking: Sequence[OccupiedInterval],
    buffer: timedelta,
) -> tuple[SlotState, UnavailabilityReason | None]:
    # A booked slot stays booked even if it is also in the buffer of a previous booking
    for interval in blocking:
        if interval.start <= slot_start < interval.end:
            if interval.kind == OccupancyKind.blackout:
                return SlotState.booked, UnavailabilityReason.blackout
            return SlotState.booked, UnavailabilityReason.existing_booking
    for interval in blocking:
        if (
            interval.kind == OccupancyKind.booking
            and interval.end <= slot_start < interval.end + buffer
        ):
            return SlotState.buffer, UnavailabilityReason.buffer
    return SlotState.open, None


def build_slot_grid(
    opening: datetime,
    closing: datetime,
    occupied: Sequence[OccupiedInterval],
    buffer: timedelta,
    blocking_statuses: Collection[BookingStatus],
    granularity: timedelta = timedelta(minutes=30),
    min_duration: timedelta | None = None,
    max_duration: timedelta | None = None,
    not_before: datetime | None = None,
) -> SlotGrid:
    """
    Build the grid of one room for one operating window.

    Slots start every `granularity` from `opening` (inclusive) to `closing` (exclusive), the last slot
    may be shorter. A slot is `booked` if its start falls inside a blocking interval, `buffer` if it falls
    inside the buffer following a blocking booking, `open` otherwise.

    Start options are the open slots starting at or after `not_before` with at least one end option.
    End options of a start are the later slot starts and the closing time such that every slot in between
    is open, the window does not conflict with any blocking interval, and its duration respects
    `min_duration` and `max_duration`.

    `occupied` should contain the intervals of the neighbouring days whose buffer reaches `opening`.

    Slots are laid out on the UTC timeline, so a day with a clock change has one slot more or less,
    and are returned in the timezone of `opening`.
    """
    validate_interval(opening, closing)
    if granularity <= timedelta(0):
        raise ValueError("Granularity must be strictly positive")  # noqa: TRY003
    if not_before is not None:
        check_aware(not_before)

    blocking = [
        interval for interval in occupied if is_blocking(interval, blocking_statuses)
    ]

    # Arithmetic on aware datetimes sharing a tzinfo uses wall clock time
    tz = opening.tzinfo
    closing = closing.astimezone(UTC)

    slots: list[Slot] = []
    slot_start = opening.astimezone(UTC)
    while slot_start < closing:
        slot_end = min(slot_start + granularity, closing)
        state, reason = _slot_state(slot_start, blocking, buffer)
        slots.append(Slot(start=slot_start, end=slot_end, state=state, reason=reason))
        slot_start = slot_end

    start_options: list[datetime] = []
    end_options: dict[datetime, list[datetime]] = {}
    for index, slot in enumerate(slots):
        if slot.state != SlotState.open:
            continue
        if not_before is not None and slot.start < not_before:
            continue

        ends: list[datetime] = []
        for following in slots[index:]:
            # `following` is the last slot included in the window
            if following.state != SlotState.open:
                break
            end = following.end
            if find_conflicts(
                start=slot.start,
                end=end,
                occupied=blocking,
                buffer=buffer,
                blocking_statuses=blocking_statuses,
            ):
                break
            duration = end - slot.start
            if max_duration is not None and duration > max_duration:
                break
            if min_duration is not None and duration < min_duration:
                continue
            ends.append(end)

        if ends:
            start_options.append(slot.start)
            end_options[slot.start] = ends

    return SlotGrid(
        slots=[
            Slot(
                start=slot.start.astimezone(tz),
                end=slot.end.astimezone(tz),
                state=slot.state,
                reason=slot.reason,
            )
            for slot in slots
        ],
        start_options=[start.astimezone(tz) for start in start_options],
        end_options={
            start.astimezone(tz): [end.astimezone(tz) for end in ends]
            for start, ends in end_options.items()
        },
    )
