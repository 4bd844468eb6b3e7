from enum import Enum


class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"

    def __str__(self) -> str:
        return f"{self.name}<{self.value}>"


class Decision(str, Enum):
    """Answer given by a facility manager to a pending booking"""

    approved = "approved"
    declined = "declined"

    def __str__(self) -> str:
        return f"{self.name}<{self.value}>"


class BlockingPolicy(str, Enum):
    """
    Which booking statuses count when looking for conflicts.

    With `confirmed_only`, several pending requests may compete for the same window
    and only the first approved one wins.
    """

    confirmed_only = "confirmed_only"
    confirmed_and_pending = "confirmed_and_pending"

    def statuses(self) -> frozenset["BookingStatus"]:
        if self is BlockingPolicy.confirmed_only:
            return frozenset({BookingStatus.confirmed})
        return frozenset({BookingStatus.confirmed, BookingStatus.pending})


class PaymentStatus(str, Enum):
    not_required = "not_required"
    unpaid = "unpaid"
    paid = "paid"


class OccupancyKind(str, Enum):
    booking = "booking"
    blackout = "blackout"


class SlotState(str, Enum):
    open = "open"
    booked = "booked"
    buffer = "buffer"


class UnavailabilityReason(str, Enum):
    existing_booking = "conflict:existing_booking"
    blackout = "conflict:blackout"
    buffer = "conflict:buffer"
