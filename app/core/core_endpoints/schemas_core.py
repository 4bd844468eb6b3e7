from pydantic import BaseModel

from app.modules.booking.types_booking import BlockingPolicy


class CoreInformation(BaseModel):
    """Information about Conference Hub"""

    ready: bool
    version: str
    facility_timezone: str
    blocking_policy: BlockingPolicy
