"""Typed errors raised by the room server.

Domain code raises these; MessageRouter is the single place that decides
whether an error is reported to the sender, logged, or silently dropped.
"""


class ChromaError(Exception):
    """Base class for every room-server error."""


class CatalogError(ChromaError):
    """Color catalog is missing, malformed, or too small for a full game.

    Raised at startup only; a running server never sees it.
    """


class RoomNotFoundError(ChromaError):
    """Client referenced a room id that does not exist (or no longer exists)."""

    def __init__(self, room_id: str) -> None:
        super().__init__(f"Room {room_id!r} not found")
        self.room_id = room_id


class UnauthorizedError(ChromaError):
    """Non-host attempted a host-only action."""


class MalformedMessageError(ChromaError):
    """Incoming frame could not be decoded into a known command."""


class InvariantViolationError(ChromaError):
    """Command is not valid in the room's current phase."""
