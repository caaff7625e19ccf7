"""Broadcast gateway: fan server messages out to room members."""

from __future__ import annotations

import contextlib
import json
from typing import TYPE_CHECKING

from chroma.messaging.types import to_wire

if TYPE_CHECKING:
    from chroma.messaging.protocol import ConnectionProtocol
    from chroma.messaging.types import ServerMessage
    from chroma.session.room import Room

# A dead socket must not stop delivery to the rest of the room.
_SEND_ERRORS = (RuntimeError, OSError, ConnectionError)


class BroadcastGateway:
    """Track live connections and deliver messages to one or all room members.

    Room membership is read from the Room itself at send time, so the gateway
    only needs connection_id -> connection.
    """

    def __init__(self) -> None:
        self._connections: dict[str, ConnectionProtocol] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def register(self, connection: ConnectionProtocol) -> None:
        self._connections[connection.connection_id] = connection

    def unregister(self, connection_id: str) -> None:
        self._connections.pop(connection_id, None)

    def is_registered(self, connection_id: str) -> bool:
        return connection_id in self._connections

    async def send_to(self, connection_id: str, message: ServerMessage) -> bool:
        """Send to a single connection. Returns False if it is gone or the send failed."""
        connection = self._connections.get(connection_id)
        if connection is None:
            return False
        try:
            await connection.send_text(json.dumps(to_wire(message)))
        except _SEND_ERRORS:
            return False
        return True

    async def broadcast(self, room: Room, message: ServerMessage) -> None:
        """Send the same encoded frame to every player currently in the room.

        Snapshot the member list so a leave during a send cannot mutate the
        dict we are iterating.
        """
        payload = json.dumps(to_wire(message))
        for connection_id in list(room.players):
            connection = self._connections.get(connection_id)
            if connection is None:
                continue
            with contextlib.suppress(*_SEND_ERRORS):
                await connection.send_text(payload)
