import logging
import uuid
from datetime import UTC, datetime

from fastapi import BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.users import models_users
from app.core.users.types_users import UserRole
from app.core.utils.config import Settings
from app.dependencies import (
    get_db,
    get_request_id,
    get_settings,
    is_user,
)
from app.modules.booking import cruds_booking, models_booking
from app.modules.booking.types_booking import BookingStatus
from app.modules.invitations import (
    cruds_invitations,
    models_invitations,
    schemas_invitations,
    utils_invitations,
)
from app.modules.invitations.types_invitations import InvitationStatus
from app.types.module import Module
from app.utils.tools import is_user_manager_of_facility

module = Module(
    root="invitations",
    tag="Meeting invitations",
)

hub_booking_logger = logging.getLogger("hub.booking")


async def get_booking_or_404(
    db: AsyncSession,
    booking_id: uuid.UUID,
) -> models_booking.Booking:
    booking = await cruds_booking.get_booking_by_id(db=db, booking_id=booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


def check_user_organizes_booking(
    user: models_users.CoreUser,
    booking: models_booking.Booking,
) -> None:
    """Only the requester of the booking and administrators manage its invitations"""
    if booking.user_id != user.id and user.role != UserRole.admin:
        raise HTTPException(
            status_code=403,
            detail="You are not allowed to manage the invitations of this booking",
        )


@module.router.get(
    "/bookings/{booking_id}/invitations",
    response_model=list[schemas_invitations.MeetingInvitation],
    status_code=200,
)
async def get_booking_invitations(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    Return the invitations of a booking, most recent first

    **This endpoint is only usable by the requester, the manager of the facility and administrators**
    """
    booking = await get_booking_or_404(db=db, booking_id=booking_id)
    if booking.user_id != user.id and not is_user_manager_of_facility(
        user,
        booking.room.facility.manager_id,
    ):
        raise HTTPException(
            status_code=403,
            detail="You are not allowed to see this booking",
        )
    return await cruds_invitations.get_invitations_by_booking(
        db=db,
        booking_id=booking_id,
    )


@module.router.get(
    "/bookings/{booking_id}/invitations/capacity",
    response_model=schemas_invitations.InvitationCapacity,
    status_code=200,
)
async def get_booking_invitation_capacity(
    booking_id: uuid.UUID,
    new_invitees: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    Tell whether `new_invitees` more people can be invited without exceeding the capacity of the room

    **This endpoint is only usable by the requester and administrators**
    """
    booking = await get_booking_or_404(db=db, booking_id=booking_id)
    check_user_organizes_booking(user, booking)
    current_count = await cruds_invitations.count_active_invitations(
        db=db,
        booking_id=booking_id,
    )
    return utils_invitations.check_invitation_capacity(
        current_count=current_count,
        new_invitees=new_invitees,
        room_capacity=booking.room.capacity,
    )


@module.router.post(
    "/bookings/{booking_id}/invitations",
    response_model=list[schemas_invitations.MeetingInvitation],
    status_code=201,
)
async def create_booking_invitations(
    booking_id: uuid.UUID,
    invitations: schemas_invitations.InvitationsCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
    settings: Settings = Depends(get_settings),
    request_id: str = Depends(get_request_id),
):
    """
    Invite people to the meeting of a confirmed booking. Every invitee receives an email.

    Addresses which were already invited are ignored. The invitees and the organizer must fit in the room.

    **This endpoint is only usable by the requester and administrators**
    """
    booking = await get_booking_or_404(db=db, booking_id=booking_id)
    check_user_organizes_booking(user, booking)
    if booking.status != BookingStatus.confirmed:
        raise HTTPException(
            status_code=400,
            detail="Only confirmed bookings can have meeting invitations",
        )

    existing = await cruds_invitations.get_invitations_by_booking(
        db=db,
        booking_id=booking_id,
    )
    invited_emails = {invitation.invitee_email for invitation in existing}
    attendees: dict[str, schemas_invitations.Attendee] = {}
    for attendee in invitations.attendees:
        if attendee.email not in invited_emails:
            attendees.setdefault(attendee.email, attendee)

    capacity = utils_invitations.check_invitation_capacity(
        current_count=await cruds_invitations.count_active_invitations(
            db=db,
            booking_id=booking_id,
        ),
        new_invitees=len(attendees),
        room_capacity=booking.room.capacity,
    )
    if not capacity.can_invite:
        raise HTTPException(status_code=400, detail=capacity.message)

    now = datetime.now(UTC)
    invitations_db = [
        models_invitations.MeetingInvitation(
            id=uuid.uuid4(),
            booking_id=booking_id,
            organizer_id=booking.user_id,
            invitee_email=attendee.email,
            invitee_name=attendee.name or None,
            status=InvitationStatus.pending,
            invited_at=now,
            responded_at=None,
        )
        for attendee in attendees.values()
    ]
    if invitations_db:
        await cruds_invitations.create_invitations(db=db, invitations=invitations_db)
        utils_invitations.send_invitation_emails(
            background_tasks=background_tasks,
            invitations=invitations_db,
            booking=booking,
            organizer=booking.user,
            settings=settings,
        )
    hub_booking_logger.info(
        f"Create_booking_invitations: {len(invitations_db)} people invited to booking {booking_id} by {user.id} ({request_id})",
    )
    return invitations_db


@module.router.patch(
    "/bookings/invitations/{invitation_id}",
    status_code=204,
)
async def answer_booking_invitation(
    invitation_id: uuid.UUID,
    invitation_response: schemas_invitations.InvitationResponse,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    Record the answer of an invitee. A declined invitation frees its seat.

    **This endpoint is only usable by the requester of the booking and administrators**
    """
    invitation = await cruds_invitations.get_invitation_by_id(
        db=db,
        invitation_id=invitation_id,
    )
    if invitation is None:
        raise HTTPException(status_code=404, detail="Invitation not found")
    booking = await get_booking_or_404(db=db, booking_id=invitation.booking_id)
    check_user_organizes_booking(user, booking)

    await cruds_invitations.update_invitation_status(
        db=db,
        invitation_id=invitation_id,
        status=invitation_response.status,
        responded_at=datetime.now(UTC),
    )
