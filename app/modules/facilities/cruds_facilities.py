"""File defining the functions called by the endpoints, making queries to the table using the models"""

import uuid
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.facilities import models_facilities, schemas_facilities

##############
# Facilities #
##############


async def get_facilities(db: AsyncSession) -> Sequence[models_facilities.Facility]:
    result = await db.execute(
        select(models_facilities.Facility).order_by(models_facilities.Facility.name),
    )
    return result.unique().scalars().all()


async def get_facility_by_id(
    db: AsyncSession,
    facility_id: uuid.UUID,
) -> models_facilities.Facility | None:
    result = await db.execute(
        select(models_facilities.Facility).where(
            models_facilities.Facility.id == facility_id,
        ),
    )
    return result.unique().scalars().first()


async def get_facilities_by_manager(
    db: AsyncSession,
    manager_id: str,
) -> Sequence[models_facilities.Facility]:
    result = await db.execute(
        select(models_facilities.Facility).where(
            models_facilities.Facility.manager_id == manager_id,
        ),
    )
    return result.unique().scalars().all()


async def create_facility(
    db: AsyncSession,
    facility: models_facilities.Facility,
) -> None:
    db.add(facility)
    await db.flush()


async def update_facility(
    db: AsyncSession,
    facility_id: uuid.UUID,
    facility_update: schemas_facilities.FacilityUpdate,
) -> None:
    await db.execute(
        update(models_facilities.Facility)
        .where(models_facilities.Facility.id == facility_id)
        .values(**facility_update.model_dump(exclude_none=True)),
    )
    await db.flush()


async def update_facility_manager(
    db: AsyncSession,
    facility_id: uuid.UUID,
    manager_id: str | None,
) -> None:
    await db.execute(
        update(models_facilities.Facility)
        .where(models_facilities.Facility.id == facility_id)
        .values(manager_id=manager_id),
    )
    await db.flush()


async def delete_facility(db: AsyncSession, facility_id: uuid.UUID) -> None:
    await db.execute(
        update(models_facilities.Resource)
        .where(models_facilities.Resource.facility_id == facility_id)
        .values(facility_id=None),
    )
    await db.execute(
        delete(models_facilities.Facility).where(
            models_facilities.Facility.id == facility_id,
        ),
    )
    await db.flush()


#########
# Rooms #
#########


async def get_rooms(
    db: AsyncSession,
    facility_id: uuid.UUID | None = None,
) -> Sequence[models_facilities.Room]:
    query = select(models_facilities.Room)
    if facility_id is not None:
        query = query.where(models_facilities.Room.facility_id == facility_id)
    result = await db.execute(query.order_by(models_facilities.Room.name))
    return result.unique().scalars().all()


async def get_room_by_id(
    db: AsyncSession,
    room_id: uuid.UUID,
) -> models_facilities.Room | None:
    result = await db.execute(
        select(models_facilities.Room).where(models_facilities.Room.id == room_id),
    )
    return result.unique().scalars().first()


async def create_room(db: AsyncSession, room: models_facilities.Room) -> None:
    db.add(room)
    await db.flush()


async def update_room(
    db: AsyncSession,
    room_id: uuid.UUID,
    room_update: schemas_facilities.RoomUpdate,
) -> None:
    await db.execute(
        update(models_facilities.Room)
        .where(models_facilities.Room.id == room_id)
        .values(**room_update.model_dump(exclude_none=True)),
    )
    await db.flush()


async def delete_room(db: AsyncSession, room_id: uuid.UUID) -> None:
    """
    Delete the room and everything attached to it. Bookings must be removed by the caller first.
    """
    await delete_room_availability(db=db, room_id=room_id)
    await db.execute(
        delete(models_facilities.RoomResource).where(
            models_facilities.RoomResource.room_id == room_id,
        ),
    )
    await db.execute(
        delete(models_facilities.RoomBlackout).where(
            models_facilities.RoomBlackout.room_id == room_id,
        ),
    )
    await db.execute(
        delete(models_facilities.Room).where(models_facilities.Room.id == room_id),
    )
    await db.flush()


#############
# Resources #
#############


async def get_resources(
    db: AsyncSession,
    facility_id: uuid.UUID | None = None,
) -> Sequence[models_facilities.Resource]:
    query = select(models_facilities.Resource)
    if facility_id is not None:
        query = query.where(models_facilities.Resource.facility_id == facility_id)
    result = await db.execute(query.order_by(models_facilities.Resource.name))
    return result.scalars().all()


async def get_resource_by_id(
    db: AsyncSession,
    resource_id: uuid.UUID,
) -> models_facilities.Resource | None:
    result = await db.execute(
        select(models_facilities.Resource).where(
            models_facilities.Resource.id == resource_id,
        ),
    )
    return result.scalars().first()


async def create_resource(
    db: AsyncSession,
    resource: models_facilities.Resource,
) -> None:
    db.add(resource)
    await db.flush()


async def update_resource(
    db: AsyncSession,
    resource_id: uuid.UUID,
    resource_update: schemas_facilities.ResourceUpdate,
) -> None:
    await db.execute(
        update(models_facilities.Resource)
        .where(models_facilities.Resource.id == resource_id)
        .values(**resource_update.model_dump(exclude_none=True)),
    )
    await db.flush()


async def delete_resource(db: AsyncSession, resource_id: uuid.UUID) -> None:
    await db.execute(
        delete(models_facilities.RoomResource).where(
            models_facilities.RoomResource.resource_id == resource_id,
        ),
    )
    await db.execute(
        delete(models_facilities.Resource).where(
            models_facilities.Resource.id == resource_id,
        ),
    )
    await db.flush()


async def get_room_resource(
    db: AsyncSession,
    room_id: uuid.UUID,
    resource_id: uuid.UUID,
) -> models_facilities.RoomResource | None:
    result = await db.execute(
        select(models_facilities.RoomResource).where(
            models_facilities.RoomResource.room_id == room_id,
            models_facilities.RoomResource.resource_id == resource_id,
        ),
    )
    return result.unique().scalars().first()


async def get_room_resources(
    db: AsyncSession,
    room_id: uuid.UUID,
) -> Sequence[models_facilities.RoomResource]:
    result = await db.execute(
        select(models_facilities.RoomResource).where(
            models_facilities.RoomResource.room_id == room_id,
        ),
    )
    return result.unique().scalars().all()


async def add_room_resource(
    db: AsyncSession,
    room_resource: models_facilities.RoomResource,
) -> None:
    db.add(room_resource)
    await db.flush()


async def update_room_resource_quantity(
    db: AsyncSession,
    room_id: uuid.UUID,
    resource_id: uuid.UUID,
    quantity: int,
) -> None:
    await db.execute(
        update(models_facilities.RoomResource)
        .where(
            models_facilities.RoomResource.room_id == room_id,
            models_facilities.RoomResource.resource_id == resource_id,
        )
        .values(quantity=quantity),
    )
    await db.flush()


async def delete_room_resource(
    db: AsyncSession,
    room_id: uuid.UUID,
    resource_id: uuid.UUID,
) -> None:
    await db.execute(
        delete(models_facilities.RoomResource).where(
            models_facilities.RoomResource.room_id == room_id,
            models_facilities.RoomResource.resource_id == resource_id,
        ),
    )
    await db.flush()


################
# Availability #
################


async def get_room_availability(
    db: AsyncSession,
    room_id: uuid.UUID,
) -> models_facilities.RoomAvailability | None:
    result = await db.execute(
        select(models_facilities.RoomAvailability).where(
            models_facilities.RoomAvailability.room_id == room_id,
        ),
    )
    return result.scalars().first()


async def get_rooms_availability(
    db: AsyncSession,
    room_ids: Sequence[uuid.UUID],
) -> dict[uuid.UUID, models_facilities.RoomAvailability]:
    result = await db.execute(
        select(models_facilities.RoomAvailability).where(
            models_facilities.RoomAvailability.room_id.in_(room_ids),
        ),
    )
    return {
        availability.room_id: availability for availability in result.scalars().all()
    }


async def delete_room_availability(db: AsyncSession, room_id: uuid.UUID) -> None:
    await db.execute(
        delete(models_facilities.RoomOperatingHours).where(
            models_facilities.RoomOperatingHours.room_id == room_id,
        ),
    )
    await db.execute(
        delete(models_facilities.RoomAvailability).where(
            models_facilities.RoomAvailability.room_id == room_id,
        ),
    )
    await db.flush()


async def set_room_availability(
    db: AsyncSession,
    availability: models_facilities.RoomAvailability,
) -> None:
    """
    Replace the availability configuration of the room
    """
    old_availability = await get_room_availability(db=db, room_id=availability.room_id)
    if old_availability is not None:
        # Operating hours are deleted through the relationship cascade
        await db.delete(old_availability)
        await db.flush()
    db.add(availability)
    await db.flush()


#############
# Blackouts #
#############


async def get_blackouts_by_room(
    db: AsyncSession,
    room_id: uuid.UUID,
) -> Sequence[models_facilities.RoomBlackout]:
    result = await db.execute(
        select(models_facilities.RoomBlackout)
        .where(models_facilities.RoomBlackout.room_id == room_id)
        .order_by(models_facilities.RoomBlackout.start),
    )
    return result.scalars().all()


async def get_active_blackouts(
    db: AsyncSession,
    room_ids: Sequence[uuid.UUID],
    start: datetime,
    end: datetime,
) -> Sequence[models_facilities.RoomBlackout]:
    """
    Return active blackouts of the rooms overlapping `[start, end)`
    """
    result = await db.execute(
        select(models_facilities.RoomBlackout).where(
            models_facilities.RoomBlackout.room_id.in_(room_ids),
            models_facilities.RoomBlackout.is_active,
            models_facilities.RoomBlackout.start < end,
            models_facilities.RoomBlackout.end > start,
        ),
    )
    return result.scalars().all()


async def get_blackout_by_id(
    db: AsyncSession,
    blackout_id: uuid.UUID,
) -> models_facilities.RoomBlackout | None:
    result = await db.execute(
        select(models_facilities.RoomBlackout).where(
            models_facilities.RoomBlackout.id == blackout_id,
        ),
    )
    return result.scalars().first()


async def create_blackout(
    db: AsyncSession,
    blackout: models_facilities.RoomBlackout,
) -> None:
    db.add(blackout)
    await db.flush()


async def update_blackout(
    db: AsyncSession,
    blackout_id: uuid.UUID,
    blackout_update: schemas_facilities.BlackoutUpdate,
) -> None:
    await db.execute(
        update(models_facilities.RoomBlackout)
        .where(models_facilities.RoomBlackout.id == blackout_id)
        .values(**blackout_update.model_dump(exclude_none=True)),
    )
    await db.flush()


async def delete_blackout(db: AsyncSession, blackout_id: uuid.UUID) -> None:
    await db.execute(
        delete(models_facilities.RoomBlackout).where(
            models_facilities.RoomBlackout.id == blackout_id,
        ),
    )
    await db.flush()
