"""In-memory membership registry for chat rooms.

This module tracks which connection belongs to which user and room. It is the
single source of truth for room rosters: nothing else in the service caches
membership.

Key rules:
    - At most one user per connection ID
    - Usernames are unique within a room (trimmed, case-insensitive)
    - The same username may be used independently in different rooms
    - Rooms are derived from users; an empty room simply stops existing

Thread Safety:
    Every read-modify-write sequence runs under a single threading.Lock, so
    two concurrent joins with the same name cannot both succeed and a roster
    read never observes a half-removed user. None of the operations await, so
    the lock is never held across an event-loop suspension point.

Usage:
    registry = ChatRegistry()
    user = registry.add_user(connection_id, "alice", "lobby")
    roster = registry.get_users_in_room("lobby")
    registry.remove_user(connection_id)
"""
import logging
import threading
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import DuplicateUsernameError, ValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# Data Models
# =============================================================================


def normalize_name(value: str) -> str:
    """Return the comparison key for a username or room name."""
    return value.strip().casefold()


class User(BaseModel):
    """A connected participant who has joined a room.

    Users are immutable; renaming or switching rooms is a remove followed by
    a fresh join.

    Attributes:
        connection_id: Opaque transport-assigned connection identifier.
        username: Display name, trimmed, original casing preserved.
        room: Room name, trimmed, original casing preserved.
    """
    model_config = ConfigDict(frozen=True)

    connection_id: str = Field(..., description="Transport connection ID")
    username: str = Field(..., min_length=1, description="Display name")
    room: str = Field(..., min_length=1, description="Room name")

    @property
    def username_key(self) -> str:
        return normalize_name(self.username)

    @property
    def room_key(self) -> str:
        return normalize_name(self.room)

    def to_roster_entry(self) -> dict:
        """Public form used in roster snapshots (connection ID omitted)."""
        return {"username": self.username, "room": self.room}


# =============================================================================
# Registry
# =============================================================================


class ChatRegistry:
    """Tracks joined users keyed by connection ID.

    Users are kept in a single insertion-ordered dict, so filtering it by
    room yields that room's members in join order.
    """

    def __init__(self) -> None:
        # connection_id -> User, in join order
        self._users: Dict[str, User] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    def __contains__(self, connection_id: object) -> bool:
        with self._lock:
            return connection_id in self._users

    def add_user(self, connection_id: str, raw_username: str, raw_room: str) -> User:
        """Join a connection to a room under the given username.

        Args:
            connection_id: Transport-assigned connection ID.
            raw_username: Username as typed by the client.
            raw_room: Room name as typed by the client.

        Returns:
            The newly registered User.

        Raises:
            ValidationError: Username or room is blank, or the connection
                has already joined.
            DuplicateUsernameError: The username is taken in that room.
        """
        if not isinstance(raw_username, str) or not isinstance(raw_room, str):
            raise ValidationError()
        username = raw_username.strip()
        room = raw_room.strip()
        if not username or not room:
            raise ValidationError()

        username_key = normalize_name(username)
        room_key = normalize_name(room)

        with self._lock:
            if connection_id in self._users:
                raise ValidationError("Connection has already joined a room")
            for existing in self._users.values():
                if existing.room_key == room_key and existing.username_key == username_key:
                    raise DuplicateUsernameError(username, room)

            user = User(connection_id=connection_id, username=username, room=room)
            self._users[connection_id] = user

        logger.info(f"[Registry] {username} joined room {room} ({connection_id})")
        return user

    def remove_user(self, connection_id: str) -> Optional[User]:
        """Remove and return the user for a connection.

        Safe to call repeatedly; returns None once the user is gone.
        """
        with self._lock:
            user = self._users.pop(connection_id, None)
        if user is not None:
            logger.info(f"[Registry] {user.username} left room {user.room} ({connection_id})")
        return user

    def get_user(self, connection_id: str) -> Optional[User]:
        with self._lock:
            return self._users.get(connection_id)

    def get_users_in_room(self, room: str) -> List[User]:
        """Get the roster of a room in join order.

        Args:
            room: Room name; compared trimmed and case-insensitively.

        Returns:
            Snapshot list of users currently in the room.
        """
        room_key = normalize_name(room)
        with self._lock:
            return [u for u in self._users.values() if u.room_key == room_key]

    def rooms(self) -> List[str]:
        """Names of all non-empty rooms, as spelled by their first member."""
        names: Dict[str, str] = {}
        with self._lock:
            for user in self._users.values():
                names.setdefault(user.room_key, user.room)
        return list(names.values())

    def clear(self) -> None:
        """Drop every user (used by tests and on shutdown)."""
        with self._lock:
            self._users.clear()
