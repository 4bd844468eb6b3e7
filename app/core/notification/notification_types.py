from enum import Enum


class NotificationType(str, Enum):
    """
    Kind of an in-app notification. Clients use it to pick an icon and, with `related_id`,
    to link the notification to the booking or room it is about.
    """

    booking_confirmation = "booking_confirmation"
    booking_rejection = "booking_rejection"
    booking_reminder = "booking_reminder"
    room_maintenance = "room_maintenance"
    system_notification = "system_notification"
    booking_request = "booking_request"
    pending_approval = "pending_approval"

    def __str__(self) -> str:
        return f"{self.name}<{self.value}>"
