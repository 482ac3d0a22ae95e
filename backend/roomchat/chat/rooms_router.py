"""Room roster REST API router.

Endpoints:
    GET /rooms                - List rooms that currently have members
    GET /rooms/{room}/users   - Get the roster of a room
"""
import logging
from typing import List

from fastapi import APIRouter, Request
from pydantic import BaseModel

from .messages import RoomData, build_room_data
from .registry import ChatRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rooms"])


class RoomListResponse(BaseModel):
    """Response model for the room list."""
    rooms: List[str] = []


@router.get("/rooms", response_model=RoomListResponse)
async def list_rooms(request: Request) -> RoomListResponse:
    """List every room with at least one joined user."""
    registry: ChatRegistry = request.app.state.registry
    return RoomListResponse(rooms=registry.rooms())


@router.get("/rooms/{room}/users", response_model=RoomData)
async def get_room_users(room: str, request: Request) -> RoomData:
    """Get the roster of a room.

    Args:
        room: The room name (compared trimmed and case-insensitively).

    Returns:
        RoomData with the users currently in the room, in join order. An
        unknown room yields an empty list.
    """
    registry: ChatRegistry = request.app.state.registry
    snapshot = build_room_data(room.strip(), registry.get_users_in_room(room))
    return RoomData(**snapshot)
