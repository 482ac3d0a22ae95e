"""Outbound payload shapes for the chat relay.

Every frame pushed to clients is built here:
    - serverMessage: system or user text message
    - locationMessage: a shared map link
    - roomData: roster snapshot for a room

Field names are camelCase because they go straight onto the wire.
"""
import time
from enum import Enum
from typing import Callable, List

from pydantic import BaseModel, ConfigDict, Field

from .registry import User

# Clock collaborator: milliseconds since the epoch.
Clock = Callable[[], int]

DEFAULT_MAP_HOST = "google.com"


def now_ms() -> int:
    """Default clock: current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class OutboundEvent(str, Enum):
    """Event names sent to clients."""
    SERVER_MESSAGE = "serverMessage"
    LOCATION_MESSAGE = "locationMessage"
    ROOM_DATA = "roomData"


class ChatMessage(BaseModel):
    """A system-authored or user-authored text message."""
    username: str = Field(..., description="Author shown in the UI")
    text: str = Field(..., description="Message text")
    createdAt: int = Field(..., description="Milliseconds since epoch")


class LocationMessage(BaseModel):
    """A location share rendered as a map link."""
    username: str = Field(..., description="Author shown in the UI")
    mapUrl: str = Field(..., description="Link to the shared position")
    createdAt: int = Field(..., description="Milliseconds since epoch")


class RosterEntry(BaseModel):
    username: str
    room: str


class RoomData(BaseModel):
    """Roster snapshot broadcast whenever membership changes."""
    room: str
    users: List[RosterEntry] = Field(default_factory=list)


class Coordinates(BaseModel):
    """Inbound geolocation payload.

    Strict: ints and floats only; booleans and numeric strings are rejected.
    """
    model_config = ConfigDict(strict=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


def build_map_url(latitude: float, longitude: float, host: str = DEFAULT_MAP_HOST) -> str:
    """Format a map link for a latitude/longitude pair.

    Example:
        >>> build_map_url(40.1, -75.2)
        'https://google.com/maps?q=40.1,-75.2'
    """
    return f"https://{host}/maps?q={latitude},{longitude}"


def generate_message(username: str, text: str, clock: Clock) -> dict:
    return ChatMessage(username=username, text=text, createdAt=clock()).model_dump()


def generate_location_message(username: str, map_url: str, clock: Clock) -> dict:
    return LocationMessage(username=username, mapUrl=map_url, createdAt=clock()).model_dump()


def build_room_data(room: str, users: List[User]) -> dict:
    """Build the roster snapshot for a room from registry users."""
    return RoomData(
        room=room,
        users=[RosterEntry(**u.to_roster_entry()) for u in users],
    ).model_dump()
