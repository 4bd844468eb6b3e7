from enum import Enum


class UserRole(str, Enum):
    """
    Roles are compared by simple equality, there is no hierarchy between them
    except that an admin is allowed everywhere.
    """

    user = "user"
    facility_manager = "facility_manager"
    admin = "admin"

    def __str__(self) -> str:
        return f"{self.name}<{self.value}>"
