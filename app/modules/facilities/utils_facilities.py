import uuid
from datetime import time

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.utils.config import Settings
from app.modules.facilities import cruds_facilities, models_facilities, schemas_facilities
from app.modules.facilities.types_facilities import Weekday

DEFAULT_OPENING = time(8, 0)
DEFAULT_CLOSING = time(18, 0)


def default_room_availability(
    room_id: uuid.UUID,
    settings: Settings,
) -> schemas_facilities.RoomAvailability:
    """
    Rules applied to rooms without availability configuration:
    open every day from 08:00 to 18:00, the buffer comes from the settings
    """
    return schemas_facilities.RoomAvailability(
        room_id=room_id,
        buffer_minutes=settings.DEFAULT_BUFFER_MINUTES,
        operating_hours=[
            schemas_facilities.OperatingHours(
                weekday=weekday,
                enabled=True,
                opening=DEFAULT_OPENING,
                closing=DEFAULT_CLOSING,
            )
            for weekday in Weekday
        ],
        is_configured=False,
    )


def effective_room_availability(
    room_id: uuid.UUID,
    availability: models_facilities.RoomAvailability | None,
    settings: Settings,
) -> schemas_facilities.RoomAvailability:
    if availability is None:
        return default_room_availability(room_id=room_id, settings=settings)
    return schemas_facilities.RoomAvailability.model_validate(availability)


async def get_effective_room_availability(
    db: AsyncSession,
    room_id: uuid.UUID,
    settings: Settings,
) -> schemas_facilities.RoomAvailability:
    availability = await cruds_facilities.get_room_availability(db=db, room_id=room_id)
    return effective_room_availability(
        room_id=room_id,
        availability=availability,
        settings=settings,
    )


def get_operating_hours(
    availability: schemas_facilities.RoomAvailability,
    weekday: int,
) -> schemas_facilities.OperatingHours | None:
    """
    Return the operating hours of the weekday, or None if the room is closed that day
    """
    for hours in availability.operating_hours:
        if hours.weekday == weekday:
            return hours if hours.enabled else None
    return None
