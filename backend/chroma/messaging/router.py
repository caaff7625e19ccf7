from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chroma.logic.exceptions import (
    InvariantViolationError,
    MalformedMessageError,
    RoomNotFoundError,
    UnauthorizedError,
)
from chroma.messaging.types import (
    CloseLobbyMessage,
    CreateRoomMessage,
    EndRoundMessage,
    ErrorMessage,
    ExitLobbyMessage,
    JoinRoomMessage,
    NoticePayload,
    PingMessage,
    PongMessage,
    StartGameMessage,
    StartRoundEndCountdownMessage,
    SubmitGuessMessage,
    parse_client_message,
    to_wire,
)

if TYPE_CHECKING:
    from chroma.messaging.protocol import ConnectionProtocol
    from chroma.messaging.types import ClientMessage
    from chroma.session.registry import RoomRegistry

logger = logging.getLogger(__name__)

ROOM_NOT_FOUND_MESSAGE = "Room not found"


class MessageRouter:
    """
    Routes incoming frames to the room registry.

    Contains no transport code, so it can be driven by a mock connection.
    Every error raised while handling one message is contained here; the
    connection always stays open.
    """

    def __init__(self, registry: RoomRegistry) -> None:
        self._registry = registry

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._registry.register_connection(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._registry.remove_connection(connection.connection_id)
        self._registry.unregister_connection(connection.connection_id)

    async def handle_text(self, connection: ConnectionProtocol, raw: str) -> None:
        """Decode one text frame and dispatch it. Malformed frames are dropped."""
        try:
            message = parse_client_message(raw)
        except MalformedMessageError as e:
            logger.warning("dropping malformed message from %s: %s", connection.connection_id, e)
            return
        except Exception:
            logger.exception("unexpected error decoding message from %s", connection.connection_id)
            return
        await self.handle_message(connection, message)

    async def handle_message(self, connection: ConnectionProtocol, message: ClientMessage) -> None:
        try:
            await self._dispatch(connection, message)
        except RoomNotFoundError as e:
            logger.info("join failed for %s: %s", connection.connection_id, e)
            await connection.send_message(to_wire(ErrorMessage(payload=NoticePayload(message=ROOM_NOT_FOUND_MESSAGE))))
        except (UnauthorizedError, InvariantViolationError) as e:
            logger.debug("rejected %s from %s: %s", message.type, connection.connection_id, e)
        except Exception:
            logger.exception("unexpected error handling %s from %s", message.type, connection.connection_id)

    async def _dispatch(self, connection: ConnectionProtocol, message: ClientMessage) -> None:
        connection_id = connection.connection_id
        if isinstance(message, CreateRoomMessage):
            await self._registry.create_room(connection, message.payload.nickname)
        elif isinstance(message, JoinRoomMessage):
            await self._registry.join_room(connection, message.payload.room_id, message.payload.nickname)
        elif isinstance(message, StartGameMessage):
            await self._registry.start_game(connection_id)
        elif isinstance(message, SubmitGuessMessage):
            await self._registry.submit_guess(connection_id, message.payload.guess)
        elif isinstance(message, EndRoundMessage):
            await self._registry.end_round(connection_id)
        elif isinstance(message, CloseLobbyMessage):
            await self._registry.close_room(connection_id)
        elif isinstance(message, ExitLobbyMessage):
            await self._registry.remove_connection(connection_id)
        elif isinstance(message, StartRoundEndCountdownMessage):
            await self._registry.request_countdown(connection_id)
        elif isinstance(message, PingMessage):
            await connection.send_message(to_wire(PongMessage()))
