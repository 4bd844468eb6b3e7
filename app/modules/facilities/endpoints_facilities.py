import logging
import uuid
from datetime import UTC, datetime

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.users import cruds_users, models_users
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
from app.modules.booking import cruds_booking
from app.modules.facilities import (
    cruds_facilities,
    models_facilities,
    schemas_facilities,
    utils_facilities,
)
from app.modules.invitations import cruds_invitations
from app.modules.issues import cruds_issues
from app.types.module import Module
from app.utils.tools import is_user_manager_of_facility

module = Module(
    root="facilities",
    tag="Facilities",
)

hub_security_logger = logging.getLogger("hub.security")
hub_booking_logger = logging.getLogger("hub.booking")


async def get_facility_or_404(
    db: AsyncSession,
    facility_id: uuid.UUID,
) -> models_facilities.Facility:
    facility = await cruds_facilities.get_facility_by_id(db=db, facility_id=facility_id)
    if facility is None:
        raise HTTPException(status_code=404, detail="Facility not found")
    return facility


async def get_room_or_404(
    db: AsyncSession,
    room_id: uuid.UUID,
) -> models_facilities.Room:
    room = await cruds_facilities.get_room_by_id(db=db, room_id=room_id)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


def check_user_manages_facility(
    user: models_users.CoreUser,
    facility: models_facilities.Facility,
) -> None:
    if not is_user_manager_of_facility(user, facility.manager_id):
        raise HTTPException(
            status_code=403,
            detail="You are not allowed to manage this facility",
        )


##############
# Facilities #
##############


@module.router.get(
    "/facilities",
    response_model=list[schemas_facilities.Facility],
    status_code=200,
)
async def get_facilities(
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    Return all facilities

    **The user must be authenticated to use this endpoint**
    """
    return await cruds_facilities.get_facilities(db=db)


@module.router.post(
    "/facilities",
    response_model=schemas_facilities.FacilitySimple,
    status_code=201,
)
async def create_facility(
    facility: schemas_facilities.FacilityBase,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_an_admin),
):
    """
    Create a facility, without manager

    **This endpoint is only usable by administrators**
    """
    facility_db = models_facilities.Facility(
        id=uuid.uuid4(),
        name=facility.name,
        location=facility.location,
        description=facility.description,
        manager_id=None,
    )
    await cruds_facilities.create_facility(db=db, facility=facility_db)
    return facility_db


@module.router.get(
    "/facilities/users/me/manage",
    response_model=list[schemas_facilities.Facility],
    status_code=200,
)
async def get_managed_facilities(
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
):
    """
    Return the facilities managed by the current user. Administrators manage every facility.

    **This endpoint is only usable by facility managers and administrators**
    """
    if user.role == UserRole.admin:
        return await cruds_facilities.get_facilities(db=db)
    return await cruds_facilities.get_facilities_by_manager(db=db, manager_id=user.id)


@module.router.get(
    "/facilities/{facility_id}",
    response_model=schemas_facilities.Facility,
    status_code=200,
)
async def get_facility(
    facility_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    **The user must be authenticated to use this endpoint**
    """
    return await get_facility_or_404(db=db, facility_id=facility_id)


@module.router.patch(
    "/facilities/{facility_id}",
    status_code=204,
)
async def update_facility(
    facility_id: uuid.UUID,
    facility_update: schemas_facilities.FacilityUpdate,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
):
    """
    Update a facility, the request should contain a JSON with the fields to change (not necessarily all fields) and their new value

    **This endpoint is only usable by the manager of the facility and administrators**
    """
    facility = await get_facility_or_404(db=db, facility_id=facility_id)
    check_user_manages_facility(user, facility)

    await cruds_facilities.update_facility(
        db=db,
        facility_id=facility_id,
        facility_update=facility_update,
    )


@module.router.patch(
    "/facilities/{facility_id}/manager",
    status_code=204,
)
async def assign_facility_manager(
    facility_id: uuid.UUID,
    assignment: schemas_facilities.FacilityManagerAssign,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_an_admin),
    request_id: str = Depends(get_request_id),
):
    """
    Assign a manager to a facility. The manager must have the `facility_manager` or `admin` role.
    A null `manager_id` removes the current manager.

    **This endpoint is only usable by administrators**
    """
    await get_facility_or_404(db=db, facility_id=facility_id)

    if assignment.manager_id is not None:
        manager = await cruds_users.get_user_by_id(db=db, user_id=assignment.manager_id)
        if manager is None:
            raise HTTPException(status_code=404, detail="User not found")
        if manager.role not in (UserRole.facility_manager, UserRole.admin):
            raise HTTPException(
                status_code=400,
                detail="The user must be a facility manager",
            )

    await cruds_facilities.update_facility_manager(
        db=db,
        facility_id=facility_id,
        manager_id=assignment.manager_id,
    )
    hub_security_logger.info(
        f"Assign_facility_manager: {user.id} set manager of facility {facility_id} to {assignment.manager_id} ({request_id})",
    )


@module.router.delete(
    "/facilities/{facility_id}",
    status_code=204,
)
async def delete_facility(
    facility_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_an_admin),
):
    """
    Delete a facility only if it does not contain any room

    **This endpoint is only usable by administrators**
    """
    facility = await get_facility_or_404(db=db, facility_id=facility_id)
    if facility.rooms:
        raise HTTPException(
            status_code=400,
            detail="There are still rooms in this facility",
        )
    await cruds_facilities.delete_facility(db=db, facility_id=facility_id)


#########
# Rooms #
#########


@module.router.get(
    "/rooms",
    response_model=list[schemas_facilities.RoomSimple],
    status_code=200,
)
async def get_rooms(
    facility_id: uuid.UUID | None = None,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    Return all rooms, optionally restricted to one facility

    **The user must be authenticated to use this endpoint**
    """
    return await cruds_facilities.get_rooms(db=db, facility_id=facility_id)


@module.router.post(
    "/rooms",
    response_model=schemas_facilities.RoomSimple,
    status_code=201,
)
async def create_room(
    room: schemas_facilities.RoomCreate,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
    settings: Settings = Depends(get_settings),
):
    """
    Create a room in a facility. Without currency, the default currency is used.

    **This endpoint is only usable by the manager of the facility and administrators**
    """
    facility = await get_facility_or_404(db=db, facility_id=room.facility_id)
    check_user_manages_facility(user, facility)

    room_db = models_facilities.Room(
        id=uuid.uuid4(),
        facility_id=room.facility_id,
        name=room.name,
        capacity=room.capacity,
        location=room.location,
        description=room.description,
        status=room.status,
        hourly_rate=room.hourly_rate,
        currency=room.currency or settings.DEFAULT_CURRENCY,
    )
    await cruds_facilities.create_room(db=db, room=room_db)
    return room_db


@module.router.get(
    "/rooms/{room_id}",
    response_model=schemas_facilities.RoomComplete,
    status_code=200,
)
async def get_room(
    room_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    Return a room with its facility and resources

    **The user must be authenticated to use this endpoint**
    """
    return await get_room_or_404(db=db, room_id=room_id)


@module.router.patch(
    "/rooms/{room_id}",
    status_code=204,
)
async def update_room(
    room_id: uuid.UUID,
    room_update: schemas_facilities.RoomUpdate,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
):
    """
    Update a room, the request should contain a JSON with the fields to change (not necessarily all fields) and their new value

    **This endpoint is only usable by the manager of the facility and administrators**
    """
    room = await get_room_or_404(db=db, room_id=room_id)
    check_user_manages_facility(user, room.facility)

    await cruds_facilities.update_room(db=db, room_id=room_id, room_update=room_update)


@module.router.delete(
    "/rooms/{room_id}",
    status_code=204,
)
async def delete_room(
    room_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
    settings: Settings = Depends(get_settings),
    request_id: str = Depends(get_request_id),
):
    """
    Delete a room with its history. The room can not be deleted while it has upcoming bookings.

    **This endpoint is only usable by the manager of the facility and administrators**
    """
    room = await get_room_or_404(db=db, room_id=room_id)
    check_user_manages_facility(user, room.facility)

    if await cruds_booking.has_future_bookings(
        db=db,
        room_id=room_id,
        now=datetime.now(UTC),
        statuses=settings.BOOKING_BLOCKING_POLICY.statuses(),
    ):
        raise HTTPException(
            status_code=400,
            detail="This room still has upcoming bookings",
        )

    await cruds_issues.delete_issues_of_room(db=db, room_id=room_id)
    await cruds_invitations.delete_invitations_of_room(db=db, room_id=room_id)
    await cruds_booking.delete_bookings_of_room(db=db, room_id=room_id)
    await cruds_facilities.delete_room(db=db, room_id=room_id)
    hub_booking_logger.info(
        f"Delete_room: room {room_id} deleted by {user.id} ({request_id})",
    )


##################
# Room resources #
##################


@module.router.get(
    "/rooms/{room_id}/resources",
    response_model=list[schemas_facilities.RoomResource],
    status_code=200,
)
async def get_room_resources(
    room_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    **The user must be authenticated to use this endpoint**
    """
    await get_room_or_404(db=db, room_id=room_id)
    return await cruds_facilities.get_room_resources(db=db, room_id=room_id)


@module.router.post(
    "/rooms/{room_id}/resources",
    status_code=204,
)
async def assign_room_resource(
    room_id: uuid.UUID,
    assignment: schemas_facilities.RoomResourceAssign,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
):
    """
    Add a resource to a room. If the resource is already in the room, its quantity is replaced.

    **This endpoint is only usable by the manager of the facility and administrators**
    """
    room = await get_room_or_404(db=db, room_id=room_id)
    check_user_manages_facility(user, room.facility)

    resource = await cruds_facilities.get_resource_by_id(
        db=db,
        resource_id=assignment.resource_id,
    )
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")

    if await cruds_facilities.get_room_resource(
        db=db,
        room_id=room_id,
        resource_id=assignment.resource_id,
    ):
        await cruds_facilities.update_room_resource_quantity(
            db=db,
            room_id=room_id,
            resource_id=assignment.resource_id,
            quantity=assignment.quantity,
        )
    else:
        await cruds_facilities.add_room_resource(
            db=db,
            room_resource=models_facilities.RoomResource(
                room_id=room_id,
                resource_id=assignment.resource_id,
                quantity=assignment.quantity,
            ),
        )


@module.router.delete(
    "/rooms/{room_id}/resources/{resource_id}",
    status_code=204,
)
async def remove_room_resource(
    room_id: uuid.UUID,
    resource_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
):
    """
    **This endpoint is only usable by the manager of the facility and administrators**
    """
    room = await get_room_or_404(db=db, room_id=room_id)
    check_user_manages_facility(user, room.facility)

    if not await cruds_facilities.get_room_resource(
        db=db,
        room_id=room_id,
        resource_id=resource_id,
    ):
        raise HTTPException(status_code=404, detail="Resource not found in this room")
    await cruds_facilities.delete_room_resource(
        db=db,
        room_id=room_id,
        resource_id=resource_id,
    )


#####################
# Room availability #
#####################


@module.router.get(
    "/rooms/{room_id}/availability",
    response_model=schemas_facilities.RoomAvailability,
    status_code=200,
)
async def get_room_availability(
    room_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
    settings: Settings = Depends(get_settings),
):
    """
    Return the booking rules of the room. Rooms without configuration return the default rules
    with `is_configured` set to false.

    **The user must be authenticated to use this endpoint**
    """
    await get_room_or_404(db=db, room_id=room_id)
    return await utils_facilities.get_effective_room_availability(
        db=db,
        room_id=room_id,
        settings=settings,
    )


@module.router.put(
    "/rooms/{room_id}/availability",
    response_model=schemas_facilities.RoomAvailability,
    status_code=200,
)
async def set_room_availability(
    room_id: uuid.UUID,
    availability: schemas_facilities.RoomAvailabilityBase,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
):
    """
    Replace the booking rules of the room. Weekdays missing from `operating_hours` are closed.

    Existing bookings are not modified.

    **This endpoint is only usable by the manager of the facility and administrators**
    """
    room = await get_room_or_404(db=db, room_id=room_id)
    check_user_manages_facility(user, room.facility)

    availability_db = models_facilities.RoomAvailability(
        room_id=room_id,
        min_duration_minutes=availability.min_duration_minutes,
        max_duration_minutes=availability.max_duration_minutes,
        buffer_minutes=availability.buffer_minutes,
        advance_booking_days=availability.advance_booking_days,
        same_day_booking_enabled=availability.same_day_booking_enabled,
        max_bookings_per_user_per_day=availability.max_bookings_per_user_per_day,
        max_bookings_per_user_per_week=availability.max_bookings_per_user_per_week,
        updated_on=datetime.now(UTC),
        operating_hours=[
            models_facilities.RoomOperatingHours(
                room_id=room_id,
                weekday=hours.weekday,
                enabled=hours.enabled,
                opening=hours.opening,
                closing=hours.closing,
            )
            for hours in availability.operating_hours
        ],
    )
    await cruds_facilities.set_room_availability(db=db, availability=availability_db)
    return availability_db


##################
# Room blackouts #
##################


@module.router.get(
    "/rooms/{room_id}/blackouts",
    response_model=list[schemas_facilities.Blackout],
    status_code=200,
)
async def get_room_blackouts(
    room_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    **The user must be authenticated to use this endpoint**
    """
    await get_room_or_404(db=db, room_id=room_id)
    return await cruds_facilities.get_blackouts_by_room(db=db, room_id=room_id)


@module.router.post(
    "/rooms/{room_id}/blackouts",
    response_model=schemas_facilities.Blackout,
    status_code=201,
)
async def create_room_blackout(
    room_id: uuid.UUID,
    blackout: schemas_facilities.BlackoutBase,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
):
    """
    Make a room unavailable during a period. Existing bookings are not cancelled.

    **This endpoint is only usable by the manager of the facility and administrators**
    """
    room = await get_room_or_404(db=db, room_id=room_id)
    check_user_manages_facility(user, room.facility)

    blackout_db = models_facilities.RoomBlackout(
        id=uuid.uuid4(),
        room_id=room_id,
        title=blackout.title,
        description=blackout.description,
        start=blackout.start,
        end=blackout.end,
        blackout_type=blackout.blackout_type,
        is_active=blackout.is_active,
        created_by=user.id,
    )
    await cruds_facilities.create_blackout(db=db, blackout=blackout_db)
    return blackout_db


@module.router.patch(
    "/rooms/blackouts/{blackout_id}",
    status_code=204,
)
async def update_room_blackout(
    blackout_id: uuid.UUID,
    blackout_update: schemas_facilities.BlackoutUpdate,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
):
    """
    **This endpoint is only usable by the manager of the facility and administrators**
    """
    blackout = await cruds_facilities.get_blackout_by_id(db=db, blackout_id=blackout_id)
    if blackout is None:
        raise HTTPException(status_code=404, detail="Blackout not found")
    room = await get_room_or_404(db=db, room_id=blackout.room_id)
    check_user_manages_facility(user, room.facility)

    start = blackout_update.start or blackout.start
    end = blackout_update.end or blackout.end
    if start >= end:
        raise HTTPException(status_code=400, detail="Start must be before end")

    await cruds_facilities.update_blackout(
        db=db,
        blackout_id=blackout_id,
        blackout_update=blackout_update,
    )


@module.router.delete(
    "/rooms/blackouts/{blackout_id}",
    status_code=204,
)
async def delete_room_blackout(
    blackout_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
):
    """
    **This endpoint is only usable by the manager of the facility and administrators**
    """
    blackout = await cruds_facilities.get_blackout_by_id(db=db, blackout_id=blackout_id)
    if blackout is None:
        raise HTTPException(status_code=404, detail="Blackout not found")
    room = await get_room_or_404(db=db, room_id=blackout.room_id)
    check_user_manages_facility(user, room.facility)

    await cruds_facilities.delete_blackout(db=db, blackout_id=blackout_id)


#############
# Resources #
#############


@module.router.get(
    "/resources",
    response_model=list[schemas_facilities.Resource],
    status_code=200,
)
async def get_resources(
    facility_id: uuid.UUID | None = None,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    **The user must be authenticated to use this endpoint**
    """
    return await cruds_facilities.get_resources(db=db, facility_id=facility_id)


@module.router.post(
    "/resources",
    response_model=schemas_facilities.Resource,
    status_code=201,
)
async def create_resource(
    resource: schemas_facilities.ResourceBase,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
):
    """
    Create a resource. Resources without facility can only be created by administrators.

    **This endpoint is only usable by facility managers and administrators**
    """
    if resource.facility_id is None:
        if user.role != UserRole.admin:
            raise HTTPException(
                status_code=403,
                detail="Only administrators can create shared resources",
            )
    else:
        facility = await get_facility_or_404(db=db, facility_id=resource.facility_id)
        check_user_manages_facility(user, facility)

    resource_db = models_facilities.Resource(
        id=uuid.uuid4(),
        name=resource.name,
        type=resource.type,
        status=resource.status,
        description=resource.description,
        facility_id=resource.facility_id,
    )
    await cruds_facilities.create_resource(db=db, resource=resource_db)
    return resource_db


async def check_user_manages_resource(
    db: AsyncSession,
    user: models_users.CoreUser,
    resource: models_facilities.Resource,
) -> None:
    if resource.facility_id is None:
        if user.role != UserRole.admin:
            raise HTTPException(
                status_code=403,
                detail="Only administrators can manage shared resources",
            )
        return
    facility = await get_facility_or_404(db=db, facility_id=resource.facility_id)
    check_user_manages_facility(user, facility)


@module.router.get(
    "/resources/{resource_id}",
    response_model=schemas_facilities.Resource,
    status_code=200,
)
async def get_resource(
    resource_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    resource = await cruds_facilities.get_resource_by_id(db=db, resource_id=resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    return resource


@module.router.patch(
    "/resources/{resource_id}",
    status_code=204,
)
async def update_resource(
    resource_id: uuid.UUID,
    resource_update: schemas_facilities.ResourceUpdate,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
):
    """
    **This endpoint is only usable by the manager of the facility and administrators**
    """
    resource = await cruds_facilities.get_resource_by_id(db=db, resource_id=resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    await check_user_manages_resource(db=db, user=user, resource=resource)

    await cruds_facilities.update_resource(
        db=db,
        resource_id=resource_id,
        resource_update=resource_update,
    )


@module.router.delete(
    "/resources/{resource_id}",
    status_code=204,
)
async def delete_resource(
    resource_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
):
    """
    Delete a resource and remove it from every room

    **This endpoint is only usable by the manager of the facility and administrators**
    """
    resource = await cruds_facilities.get_resource_by_id(db=db, resource_id=resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    await check_user_manages_resource(db=db, user=user, resource=resource)

    await cruds_facilities.delete_resource(db=db, resource_id=resource_id)
