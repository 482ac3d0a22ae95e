"""Tests for event routing: directive targets, payloads and acknowledgments."""
import pytest

from roomchat.chat import events
from roomchat.chat.errors import DuplicateUsernameError, InvalidCoordinates, ProfanityRejected, ValidationError
from roomchat.chat.events import Target, TargetKind
from roomchat.chat.messages import OutboundEvent

from conftest import FIXED_TS, fake_is_profane


def never_profane(text):
    return False


def join(registry, clock, connection_id, username, room):
    outcome = events.handle_join(registry, connection_id, username, room, clock)
    assert outcome.ok
    return outcome


# ---------------------------------------------------------------------------
# Join
# ---------------------------------------------------------------------------


class TestHandleJoin:

    def test_join_produces_three_directives_in_order(self, registry, clock):
        outcome = events.handle_join(registry, "c1", "alice", "r1", clock)

        assert outcome.ok
        assert outcome.ack.error is None
        welcome, notice, roster = outcome.directives

        assert welcome.target == Target.direct("c1")
        assert welcome.event == OutboundEvent.SERVER_MESSAGE
        assert welcome.payload == {
            "username": "Admin",
            "text": "welcome to the chat app alice!",
            "createdAt": FIXED_TS,
        }

        assert notice.target == Target.room_except_self("r1", "c1")
        assert notice.payload["text"] == "alice has joined chat"
        assert notice.payload["createdAt"] == FIXED_TS

        assert roster.target == Target.whole_room("r1")
        assert roster.event == OutboundEvent.ROOM_DATA
        assert roster.payload == {"room": "r1", "users": [{"username": "alice", "room": "r1"}]}

    def test_join_uses_trimmed_names(self, registry, clock):
        outcome = events.handle_join(registry, "c1", "  alice ", " r1 ", clock)
        assert outcome.directives[0].payload["text"] == "welcome to the chat app alice!"
        assert outcome.directives[2].payload["room"] == "r1"

    def test_custom_admin_name(self, registry, clock):
        outcome = events.handle_join(registry, "c1", "alice", "r1", clock, admin_name="Bot")
        assert outcome.directives[0].payload["username"] == "Bot"

    def test_empty_username_rejected(self, registry, clock):
        outcome = events.handle_join(registry, "c1", "", "r1", clock)
        assert not outcome.ok
        assert outcome.directives == []
        assert isinstance(outcome.error, ValidationError)
        assert outcome.ack.error == "Username and room are required"
        assert registry.get_user("c1") is None

    def test_duplicate_rejected_and_roster_unchanged(self, registry, clock):
        join(registry, clock, "c1", "bob", "r1")
        outcome = events.handle_join(registry, "c2", "bob", "r1", clock)

        assert isinstance(outcome.error, DuplicateUsernameError)
        assert outcome.ack.error == "Username is in use"
        assert outcome.directives == []
        assert [u.connection_id for u in registry.get_users_in_room("r1")] == ["c1"]

    def test_roster_includes_earlier_members(self, registry, clock):
        join(registry, clock, "c1", "alice", "r1")
        outcome = join(registry, clock, "c2", "bob", "r1")
        assert outcome.directives[2].payload["users"] == [
            {"username": "alice", "room": "r1"},
            {"username": "bob", "room": "r1"},
        ]


# ---------------------------------------------------------------------------
# Text messages
# ---------------------------------------------------------------------------


class TestHandleTextMessage:

    def test_message_broadcast_to_room(self, registry, clock):
        join(registry, clock, "c1", "alice", "r1")
        outcome = events.handle_text_message(registry, "c1", "hello", clock, never_profane)

        assert outcome.ok
        assert outcome.ack.status == "message received by server"
        (directive,) = outcome.directives
        assert directive.target == Target.whole_room("r1")
        assert directive.event == OutboundEvent.SERVER_MESSAGE
        assert directive.payload == {"username": "alice", "text": "hello", "createdAt": FIXED_TS}

    def test_unknown_sender_silently_ignored(self, registry, clock):
        outcome = events.handle_text_message(registry, "ghost", "hello", clock, never_profane)
        assert outcome.directives == []
        assert outcome.ack is None

    def test_sender_removed_before_message(self, registry, clock):
        join(registry, clock, "c1", "alice", "r1")
        events.handle_disconnect(registry, "c1", clock)
        outcome = events.handle_text_message(registry, "c1", "late", clock, never_profane)
        assert outcome.directives == []
        assert outcome.ack is None

    def test_profanity_rejected(self, registry, clock):
        join(registry, clock, "c1", "alice", "r1")
        outcome = events.handle_text_message(registry, "c1", "oh heck", clock, fake_is_profane)

        assert outcome.directives == []
        assert isinstance(outcome.error, ProfanityRejected)
        assert outcome.ack.error == "profanity detected"

    def test_filter_sees_raw_text(self, registry, clock):
        join(registry, clock, "c1", "alice", "r1")
        seen = []

        def recording_filter(text):
            seen.append(text)
            return False

        events.handle_text_message(registry, "c1", "  spaced  ", clock, recording_filter)
        assert seen == ["  spaced  "]

    def test_non_text_message_rejected(self, registry, clock):
        join(registry, clock, "c1", "alice", "r1")
        outcome = events.handle_text_message(registry, "c1", {"text": "hi"}, clock, never_profane)
        assert outcome.directives == []
        assert isinstance(outcome.error, ValidationError)
        assert outcome.ack.error == "message must be text"


# ---------------------------------------------------------------------------
# Location
# ---------------------------------------------------------------------------


class TestHandleLocation:

    def test_location_broadcast_to_room(self, registry, clock):
        join(registry, clock, "c1", "alice", "r1")
        outcome = events.handle_location(
            registry, "c1", {"latitude": 40.1, "longitude": -75.2}, clock
        )

        assert outcome.ok
        assert outcome.ack.status == "coordinates received by server"
        (directive,) = outcome.directives
        assert directive.target == Target.whole_room("r1")
        assert directive.event == OutboundEvent.LOCATION_MESSAGE
        assert directive.payload == {
            "username": "alice",
            "mapUrl": "https://google.com/maps?q=40.1,-75.2",
            "createdAt": FIXED_TS,
        }

    def test_custom_map_host(self, registry, clock):
        join(registry, clock, "c1", "alice", "r1")
        outcome = events.handle_location(
            registry, "c1", {"latitude": 1.5, "longitude": 2.5}, clock, map_host="maps.example.org"
        )
        assert outcome.directives[0].payload["mapUrl"] == "https://maps.example.org/maps?q=1.5,2.5"

    def test_zero_coordinates_accepted(self, registry, clock):
        join(registry, clock, "c1", "alice", "r1")
        outcome = events.handle_location(registry, "c1", {"latitude": 0, "longitude": 0}, clock)
        assert outcome.ok
        assert outcome.directives[0].payload["mapUrl"] == "https://google.com/maps?q=0,0"

    def test_integer_coordinates_keep_client_formatting(self, registry, clock):
        join(registry, clock, "c1", "alice", "r1")
        outcome = events.handle_location(registry, "c1", {"latitude": 40, "longitude": 2}, clock)
        assert outcome.directives[0].payload["mapUrl"] == "https://google.com/maps?q=40,2"

    @pytest.mark.parametrize("coordinates", [
        {"latitude": 40.1},
        {"longitude": -75.2},
        {},
        None,
        {"latitude": "north", "longitude": 3},
        {"latitude": True, "longitude": "5"},
        {"latitude": "40.1", "longitude": 5},
        {"latitude": 40.1, "longitude": False},
        {"latitude": 91, "longitude": 0},
        {"latitude": 0, "longitude": 181},
    ])
    def test_invalid_coordinates_rejected(self, registry, clock, coordinates):
        join(registry, clock, "c1", "alice", "r1")
        outcome = events.handle_location(registry, "c1", coordinates, clock)

        assert outcome.directives == []
        assert isinstance(outcome.error, InvalidCoordinates)
        assert outcome.ack.error == "problem with coordinates"

    def test_unknown_sender_silently_ignored(self, registry, clock):
        outcome = events.handle_location(registry, "ghost", {"latitude": 1, "longitude": 2}, clock)
        assert outcome.directives == []
        assert outcome.ack is None


# ---------------------------------------------------------------------------
# Disconnect
# ---------------------------------------------------------------------------


class TestHandleDisconnect:

    def test_disconnect_sends_notice_then_roster(self, registry, clock):
        join(registry, clock, "c1", "a", "r1")
        outcome = events.handle_disconnect(registry, "c1", clock)

        notice, roster = outcome.directives
        assert notice.target == Target.whole_room("r1")
        assert notice.payload == {"username": "Admin", "text": "a has left chat", "createdAt": FIXED_TS}
        assert roster.target == Target.whole_room("r1")
        assert roster.payload == {"room": "r1", "users": []}
        assert outcome.ack is None

    def test_roster_recomputed_after_removal(self, registry, clock):
        join(registry, clock, "c1", "a", "r1")
        join(registry, clock, "c2", "b", "r1")
        outcome = events.handle_disconnect(registry, "c1", clock)
        assert outcome.directives[1].payload["users"] == [{"username": "b", "room": "r1"}]

    def test_second_disconnect_is_noop(self, registry, clock):
        join(registry, clock, "c1", "a", "r1")
        events.handle_disconnect(registry, "c1", clock)
        outcome = events.handle_disconnect(registry, "c1", clock)
        assert outcome.directives == []

    def test_disconnect_without_join_is_noop(self, registry, clock):
        assert events.handle_disconnect(registry, "c1", clock).directives == []


# ---------------------------------------------------------------------------
# Target resolution
# ---------------------------------------------------------------------------


class TestTargetResolve:

    def test_direct(self, registry):
        assert Target.direct("c9").resolve(registry) == ["c9"]
        assert Target.direct("c9").kind == TargetKind.DIRECT

    def test_room_and_room_except_self(self, registry, clock):
        join(registry, clock, "c1", "a", "r1")
        join(registry, clock, "c2", "b", "r1")
        join(registry, clock, "c3", "c", "r2")

        assert Target.whole_room("r1").resolve(registry) == ["c1", "c2"]
        assert Target.room_except_self("r1", "c1").resolve(registry) == ["c2"]
        assert Target.room_except_self("R1 ", "c2").resolve(registry) == ["c1"]
