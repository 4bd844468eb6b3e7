"""Models file for module booking"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.modules.booking.types_booking import BookingStatus, PaymentStatus
from app.types.sqlalchemy import Base, PrimaryKey

if TYPE_CHECKING:
    from app.core.users.models_users import CoreUser
    from app.modules.facilities.models_facilities import Room


class Booking(Base):
    __tablename__ = "booking"

    id: Mapped[PrimaryKey]
    room_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("facilities_room.id"),
        index=True,
    )
    user_id: Mapped[str] = mapped_column(ForeignKey("core_user.id"), index=True)
    title: Mapped[str]
    description: Mapped[str | None]
    start: Mapped[datetime] = mapped_column(index=True)
    end: Mapped[datetime]
    status: Mapped[BookingStatus]
    rejection_reason: Mapped[str | None]
    attendees: Mapped[int | None]
    # Payment linkage, the amount is expressed in the smallest unit of the currency
    amount: Mapped[int | None]
    currency: Mapped[str | None]
    payment_status: Mapped[PaymentStatus]
    payment_reference: Mapped[str | None]
    checked_in_at: Mapped[datetime | None]
    created_at: Mapped[datetime]
    updated_at: Mapped[datetime]

    room: Mapped["Room"] = relationship("Room", lazy="joined", init=False)
    user: Mapped["CoreUser"] = relationship("CoreUser", lazy="joined", init=False)
