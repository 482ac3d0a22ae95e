"""Event routing for the chat relay.

Each inbound client event is turned into an Outcome: an ordered list of
directives (who should receive which frame) plus the acknowledgment owed to
the sender. Nothing here touches the network; the connection manager does
the actual delivery.

Inbound events handled:
    - join: register a username in a room
    - clientMessage: text message to the sender's room
    - locationData: geolocation share to the sender's room
    - disconnect: leave the room

Directive targets:
    - DIRECT: only the originating connection
    - ROOM_EXCEPT_SELF: everyone in the room but the originating connection
    - ROOM: everyone in the room
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError

from .errors import (
    ChatError,
    InvalidCoordinates,
    JoinError,
    ProfanityRejected,
    SenderNotFound,
    ValidationError,
)
from .filters import ProfanityCheck
from .messages import (
    DEFAULT_MAP_HOST,
    Clock,
    Coordinates,
    OutboundEvent,
    build_map_url,
    build_room_data,
    generate_location_message,
    generate_message,
)
from .registry import ChatRegistry, User

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_NAME = "Admin"

MESSAGE_RECEIVED = "message received by server"
COORDINATES_RECEIVED = "coordinates received by server"


# ---------------------------------------------------------------------------
# Directives and outcomes
# ---------------------------------------------------------------------------

class TargetKind(str, Enum):
    DIRECT = "direct"
    ROOM_EXCEPT_SELF = "room_except_self"
    ROOM = "room"


@dataclass(frozen=True)
class Target:
    """Recipient set for a directive, resolved against the registry at delivery."""
    kind: TargetKind
    room: Optional[str] = None
    connection_id: Optional[str] = None

    @classmethod
    def direct(cls, connection_id: str) -> "Target":
        return cls(TargetKind.DIRECT, connection_id=connection_id)

    @classmethod
    def room_except_self(cls, room: str, connection_id: str) -> "Target":
        return cls(TargetKind.ROOM_EXCEPT_SELF, room=room, connection_id=connection_id)

    @classmethod
    def whole_room(cls, room: str) -> "Target":
        return cls(TargetKind.ROOM, room=room)

    def resolve(self, registry: ChatRegistry) -> List[str]:
        """Connection IDs this target covers right now."""
        if self.kind == TargetKind.DIRECT:
            return [self.connection_id]
        members = [u.connection_id for u in registry.get_users_in_room(self.room)]
        if self.kind == TargetKind.ROOM_EXCEPT_SELF:
            return [cid for cid in members if cid != self.connection_id]
        return members


@dataclass(frozen=True)
class Directive:
    """One frame to deliver to a target set."""
    target: Target
    event: OutboundEvent
    payload: dict


@dataclass(frozen=True)
class Acknowledgment:
    """Reply owed to the originating connection.

    Attributes:
        error: Rejection reason; None when the event was accepted.
        status: Optional human-readable confirmation.
    """
    error: Optional[str] = None
    status: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class Outcome:
    """Result of handling one inbound event.

    ``ack`` is None when the event was silently ignored (unknown sender, or a
    disconnect); nothing is sent back in that case.
    """
    directives: List[Directive] = field(default_factory=list)
    ack: Optional[Acknowledgment] = None
    error: Optional[ChatError] = None

    @property
    def ok(self) -> bool:
        return self.ack is not None and self.ack.ok

    @classmethod
    def rejected(cls, error: ChatError) -> "Outcome":
        return cls(ack=Acknowledgment(error=error.message), error=error)

    @classmethod
    def ignored(cls) -> "Outcome":
        return cls()


# Aliases naming each handler's result.
JoinOutcome = Outcome
MessageOutcome = Outcome
LocationOutcome = Outcome
DisconnectOutcome = Outcome


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _resolve_sender(registry: ChatRegistry, connection_id: str) -> User:
    user = registry.get_user(connection_id)
    if user is None:
        raise SenderNotFound(connection_id)
    return user


def handle_join(
    registry: ChatRegistry,
    connection_id: str,
    username: Any,
    room: Any,
    clock: Clock,
    admin_name: str = DEFAULT_ADMIN_NAME,
) -> JoinOutcome:
    """Join a connection to a room.

    On success the directives are, in order: a welcome to the joiner, a join
    notice to the rest of the room, and the refreshed roster to everyone.

    Args:
        registry: Membership registry.
        connection_id: Originating connection.
        username: Requested username (raw client input).
        room: Requested room (raw client input).
        clock: Timestamp source.
        admin_name: Author shown on system messages.

    Returns:
        Outcome with three directives and a positive ack, or no directives and
        an ack carrying the join error.
    """
    try:
        user = registry.add_user(connection_id, username, room)
    except JoinError as e:
        logger.info(f"[Router] Join rejected for {connection_id}: {e.message}")
        return Outcome.rejected(e)

    directives = [
        Directive(
            Target.direct(connection_id),
            OutboundEvent.SERVER_MESSAGE,
            generate_message(admin_name, f"welcome to the chat app {user.username}!", clock),
        ),
        Directive(
            Target.room_except_self(user.room, connection_id),
            OutboundEvent.SERVER_MESSAGE,
            generate_message(admin_name, f"{user.username} has joined chat", clock),
        ),
        Directive(
            Target.whole_room(user.room),
            OutboundEvent.ROOM_DATA,
            build_room_data(user.room, registry.get_users_in_room(user.room)),
        ),
    ]
    return Outcome(directives=directives, ack=Acknowledgment())


def handle_text_message(
    registry: ChatRegistry,
    connection_id: str,
    raw_text: Any,
    clock: Clock,
    is_profane: ProfanityCheck,
) -> MessageOutcome:
    """Broadcast a text message to the sender's room unless it is profane."""
    try:
        sender = _resolve_sender(registry, connection_id)
    except SenderNotFound as e:
        logger.debug(f"[Router] Ignoring message: {e.message}")
        return Outcome.ignored()

    if not isinstance(raw_text, str):
        return Outcome.rejected(ValidationError("message must be text"))

    if is_profane(raw_text):
        logger.info(f"[Router] Profanity rejected from {sender.username} in {sender.room}")
        return Outcome.rejected(ProfanityRejected())

    directive = Directive(
        Target.whole_room(sender.room),
        OutboundEvent.SERVER_MESSAGE,
        generate_message(sender.username, raw_text, clock),
    )
    return Outcome(directives=[directive], ack=Acknowledgment(status=MESSAGE_RECEIVED))


def handle_location(
    registry: ChatRegistry,
    connection_id: str,
    coordinates: Any,
    clock: Clock,
    map_host: str = DEFAULT_MAP_HOST,
) -> LocationOutcome:
    """Broadcast a map link for the sender's position to their room."""
    try:
        sender = _resolve_sender(registry, connection_id)
    except SenderNotFound as e:
        logger.debug(f"[Router] Ignoring location: {e.message}")
        return Outcome.ignored()

    # Latitude 0 and longitude 0 are valid positions; only missing or
    # non-numeric values are rejected.
    try:
        Coordinates.model_validate(coordinates)
    except PydanticValidationError:
        return Outcome.rejected(InvalidCoordinates())

    # The link uses the numbers as the client sent them (40, not 40.0).
    if isinstance(coordinates, Coordinates):
        coordinates = {"latitude": coordinates.latitude, "longitude": coordinates.longitude}

    directive = Directive(
        Target.whole_room(sender.room),
        OutboundEvent.LOCATION_MESSAGE,
        generate_location_message(
            sender.username,
            build_map_url(coordinates["latitude"], coordinates["longitude"], map_host),
            clock,
        ),
    )
    return Outcome(directives=[directive], ack=Acknowledgment(status=COORDINATES_RECEIVED))


def handle_disconnect(
    registry: ChatRegistry,
    connection_id: str,
    clock: Clock,
    admin_name: str = DEFAULT_ADMIN_NAME,
) -> DisconnectOutcome:
    """Remove the connection's user and tell the room it left.

    The roster directive is built after removal, so it no longer lists the
    departed user.
    """
    user = registry.remove_user(connection_id)
    if user is None:
        return Outcome.ignored()

    return Outcome(directives=[
        Directive(
            Target.whole_room(user.room),
            OutboundEvent.SERVER_MESSAGE,
            generate_message(admin_name, f"{user.username} has left chat", clock),
        ),
        Directive(
            Target.whole_room(user.room),
            OutboundEvent.ROOM_DATA,
            build_room_data(user.room, registry.get_users_in_room(user.room)),
        ),
    ])
