from fastapi import BackgroundTasks

from app.core.users import models_users
from app.core.utils.config import Settings
from app.modules.booking import models_booking
from app.modules.booking.utils_booking import EMAIL_DATETIME_FORMAT, local_time
from app.modules.invitations import models_invitations, schemas_invitations
from app.utils.tools import send_templated_email


def check_invitation_capacity(
    current_count: int,
    new_invitees: int,
    room_capacity: int,
) -> schemas_invitations.InvitationCapacity:
    """
    The organizer takes a seat too: the invitees and the organizer must fit in the room.
    """
    can_invite = current_count + new_invitees + 1 <= room_capacity
    return schemas_invitations.InvitationCapacity(
        can_invite=can_invite,
        current_count=current_count,
        room_capacity=room_capacity,
        message=None
        if can_invite
        else f"Cannot invite {new_invitees} more people. Room capacity is {room_capacity}, current invitations: {current_count} (plus organizer).",
    )


def send_invitation_emails(
    background_tasks: BackgroundTasks,
    invitations: list[models_invitations.MeetingInvitation],
    booking: models_booking.Booking,
    organizer: models_users.CoreUser,
    settings: Settings,
) -> None:
    for invitation in invitations:
        background_tasks.add_task(
            send_templated_email,
            recipient=invitation.invitee_email,
            subject=f"Conference Hub - Invitation: {booking.title}",
            template_name="meeting_invitation.html",
            context={
                "invitee_name": invitation.invitee_name,
                "organizer_name": organizer.name,
                "organizer_email": organizer.email,
                "title": booking.title,
                "description": booking.description,
                "room_name": booking.room.name,
                "start": local_time(booking.start, settings, EMAIL_DATETIME_FORMAT),
                "end": local_time(booking.end, settings, EMAIL_DATETIME_FORMAT),
                "timezone": settings.FACILITY_TIMEZONE,
            },
            settings=settings,
        )
