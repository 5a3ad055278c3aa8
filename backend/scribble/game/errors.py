from __future__ import annotations


class SessionError(Exception):
    """Base class for failures reported back to the client as an error event."""

    code = "session_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(SessionError):
    code = "invalid_payload"


class AuthorizationError(SessionError):
    code = "not_authorized"


class NotFoundError(SessionError):
    code = "not_found"


class RoomNotFoundError(NotFoundError):
    code = "room_not_found"

    def __init__(self, room_id: str = "") -> None:
        super().__init__("Room does not exist")
        self.room_id = room_id


class RoomFullError(SessionError):
    code = "room_full"

    def __init__(self) -> None:
        super().__init__("Room is full")


class GameStateError(SessionError):
    code = "invalid_state"
