"""Error taxonomy for room membership and event routing.

None of these are fatal: the event router catches them and turns them into
a negative acknowledgment for the originating connection.
"""


class ChatError(Exception):
    """Base exception for chat core errors."""
    def __init__(self, message: str, code: str = "chat_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class JoinError(ChatError):
    """Raised when a connection cannot join a room."""


class ValidationError(JoinError):
    """Raised when a username or room is missing or blank."""
    def __init__(self, message: str = "Username and room are required"):
        super().__init__(message, code="validation_error")


class DuplicateUsernameError(JoinError):
    """Raised when the username is already taken in the room."""
    def __init__(self, username: str, room: str):
        self.username = username
        self.room = room
        super().__init__("Username is in use", code="duplicate_username")


class ProfanityRejected(ChatError):
    """Raised when a text message fails the content filter."""
    def __init__(self, message: str = "profanity detected"):
        super().__init__(message, code="profanity_rejected")


class InvalidCoordinates(ChatError):
    """Raised when a location share lacks a usable latitude/longitude."""
    def __init__(self, message: str = "problem with coordinates"):
        super().__init__(message, code="invalid_coordinates")


class SenderNotFound(ChatError):
    """Raised when an event arrives for a connection with no joined user."""
    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        super().__init__(
            f"No user joined on connection {connection_id}",
            code="sender_not_found",
        )
