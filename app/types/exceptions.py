from datetime import datetime
from typing import TYPE_CHECKING, Any

from fastapi import HTTPException

if TYPE_CHECKING:
    from app.modules.booking.schemas_booking import OccupiedInterval


class ContentHTTPException(HTTPException):
    """
    A custom HTTPException allowing to return custom content.

    Instead of returning `{detail: <content>}`, this exception can return a json serialized `<content>`.

    You need to define a custom exception handler to use it:
    ```python
    @app.exception_handler(ContentHTTPException)
    async def content_exception_handler(
        request: Request,
        exc: ContentHTTPException,
    ):
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(exc.content),
            headers=exc.headers,
        )
    ```
    """

    def __init__(
        self,
        status_code: int,
        content: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=content, headers=headers)
        self.content = content


class InvalidAppStateTypeError(Exception):
    def __init__(self):
        super().__init__("The request state is neither a dict nor a starlette State")


class MissingTZInfoInDatetimeError(TypeError):
    def __init__(self):
        super().__init__("tzinfo info is required for datetime objects")


class NaiveDatetimeError(ValueError):
    """
    Raised when a naive datetime reaches the conflict computations.
    Naive values are never coerced to a timezone.
    """

    def __init__(self, value: datetime):
        super().__init__(f"Datetime {value.isoformat()} has no timezone information")


class InvalidIntervalError(ValueError):
    def __init__(self, start: datetime, end: datetime):
        super().__init__(
            f"Invalid interval: start ({start.isoformat()}) must be strictly before end ({end.isoformat()})",
        )
        self.start = start
        self.end = end


class BookingConflictError(Exception):
    """
    Raised by `reserve_if_available` when the requested window overlaps a blocking booking or blackout.

    `conflicts` contains every interval responsible for the refusal.
    """

    def __init__(self, conflicts: "list[OccupiedInterval]"):
        super().__init__("This time slot conflicts with an existing booking")
        self.conflicts = conflicts


class BookingRuleViolationError(ValueError):
    """
    Raised when a booking request breaks one of the room availability rules
    (operating hours, duration, advance window, user quotas...)
    """


class DotenvMissingVariableError(Exception):
    def __init__(self, variable_name: str):
        super().__init__(f"{variable_name} should be configured in the dotenv")


class DotenvInvalidVariableError(Exception):
    pass
