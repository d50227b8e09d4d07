from fastapi import status


class BookingError(ValueError):
    """Base class for failures a client can act on.

    Each subclass carries the HTTP status it is rendered with; the message is
    returned to the caller verbatim, so it must never contain query text.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be completed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class InvalidRequest(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Missing or invalid fields."


class NotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found."


class Conflict(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "The resource was changed by another request."


class AlreadyMember(Conflict):
    default_message = "User is already a member."


class Full(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Team is full."


class InsufficientPlayers(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Not enough players."


class Unauthorized(BookingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication is required."


class Forbidden(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to do this."


class Unavailable(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "No eligible slot is available."


class Internal(BookingError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Database error."
