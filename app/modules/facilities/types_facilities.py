from enum import Enum


class RoomStatus(str, Enum):
    available = "available"
    maintenance = "maintenance"
    reserved = "reserved"


class ResourceStatus(str, Enum):
    available = "available"
    in_use = "in_use"
    maintenance = "maintenance"


class BlackoutType(str, Enum):
    maintenance = "maintenance"
    cleaning = "cleaning"
    event = "event"
    holiday = "holiday"
    repair = "repair"
    other = "other"


class Weekday(int, Enum):
    """Same numbering as `datetime.weekday()`"""

    monday = 0
    tuesday = 1
    wednesday = 2
    thursday = 3
    friday = 4
    saturday = 5
    sunday = 6
