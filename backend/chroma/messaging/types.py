"""Wire messages: every frame is a JSON object `{"type": ..., "payload": ...}`."""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from chroma.logic.exceptions import MalformedMessageError
from chroma.logic.types import CamelModel, Rgb
from chroma.session.room import RoomSnapshot

MAX_MESSAGE_SIZE = 4096
MAX_NICKNAME_LENGTH = 32

# ASCII control character boundaries for nickname validation
_SPACE_ORD = 0x20
_DEL_ORD = 0x7F


class ClientMessageType(StrEnum):
    CREATE_ROOM = "CREATE_ROOM"
    JOIN_ROOM = "JOIN_ROOM"
    START_GAME = "START_GAME"
    SUBMIT_GUESS = "SUBMIT_GUESS"
    END_ROUND = "END_ROUND"
    CLOSE_LOBBY = "CLOSE_LOBBY"
    EXIT_LOBBY = "EXIT_LOBBY"
    START_ROUND_END_COUNTDOWN = "START_ROUND_END_COUNTDOWN"
    PING = "PING"


class ServerMessageType(StrEnum):
    ROOM_CREATED = "ROOM_CREATED"
    GAME_STATE_UPDATE = "GAME_STATE_UPDATE"
    ROUND_END_COUNTDOWN = "ROUND_END_COUNTDOWN"
    ERROR = "ERROR"
    ALERT = "ALERT"
    PONG = "PONG"


def _check_nickname(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("nickname must not be blank")
    if any(ord(c) < _SPACE_ORD or ord(c) == _DEL_ORD for c in value):
        raise ValueError("nickname must not contain control characters")
    return value


# --- Client payloads ---


class NicknamePayload(CamelModel):
    nickname: str = Field(min_length=1, max_length=MAX_NICKNAME_LENGTH)

    @field_validator("nickname")
    @classmethod
    def _validate_nickname(cls, v: str) -> str:
        return _check_nickname(v)


class JoinRoomPayload(NicknamePayload):
    room_id: str = Field(min_length=1, max_length=64)


class SubmitGuessPayload(CamelModel):
    # Informational only: the guesser is identified by its connection.
    nickname: str | None = None
    guess: Rgb


class ActorPayload(CamelModel):
    """Payload of host and membership commands. The actor is the connection, not this field."""

    nickname: str | None = None


class EmptyPayload(CamelModel):
    pass


# --- Client messages ---


class CreateRoomMessage(BaseModel):
    type: Literal[ClientMessageType.CREATE_ROOM] = ClientMessageType.CREATE_ROOM
    payload: NicknamePayload


class JoinRoomMessage(BaseModel):
    type: Literal[ClientMessageType.JOIN_ROOM] = ClientMessageType.JOIN_ROOM
    payload: JoinRoomPayload


class StartGameMessage(BaseModel):
    type: Literal[ClientMessageType.START_GAME] = ClientMessageType.START_GAME
    payload: ActorPayload | None = None


class SubmitGuessMessage(BaseModel):
    type: Literal[ClientMessageType.SUBMIT_GUESS] = ClientMessageType.SUBMIT_GUESS
    payload: SubmitGuessPayload


class EndRoundMessage(BaseModel):
    type: Literal[ClientMessageType.END_ROUND] = ClientMessageType.END_ROUND
    payload: EmptyPayload | None = None


class CloseLobbyMessage(BaseModel):
    type: Literal[ClientMessageType.CLOSE_LOBBY] = ClientMessageType.CLOSE_LOBBY
    payload: ActorPayload | None = None


class ExitLobbyMessage(BaseModel):
    type: Literal[ClientMessageType.EXIT_LOBBY] = ClientMessageType.EXIT_LOBBY
    payload: ActorPayload | None = None


class StartRoundEndCountdownMessage(BaseModel):
    type: Literal[ClientMessageType.START_ROUND_END_COUNTDOWN] = ClientMessageType.START_ROUND_END_COUNTDOWN
    payload: EmptyPayload | None = None


class PingMessage(BaseModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING
    payload: EmptyPayload | None = None


ClientMessage = Annotated[
    CreateRoomMessage
    | JoinRoomMessage
    | StartGameMessage
    | SubmitGuessMessage
    | EndRoundMessage
    | CloseLobbyMessage
    | ExitLobbyMessage
    | StartRoundEndCountdownMessage
    | PingMessage,
    Field(discriminator="type"),
]

_client_message_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)


def parse_client_message(raw: str) -> ClientMessage:
    """Decode one text frame into a typed command.

    Raises MalformedMessageError for oversized frames, invalid JSON, unknown
    types and payloads that fail validation.
    """
    byte_len = len(raw.encode("utf-8"))
    if byte_len > MAX_MESSAGE_SIZE:
        raise MalformedMessageError(f"Message too large ({byte_len} bytes, max {MAX_MESSAGE_SIZE})")
    try:
        data = json.loads(raw)
        return _client_message_adapter.validate_python(data)
    except (ValueError, TypeError, RecursionError, ValidationError) as e:
        raise MalformedMessageError(str(e)) from e


# --- Server messages ---


class RoomCreatedPayload(CamelModel):
    room_id: str
    game_state: RoomSnapshot


class CountdownPayload(CamelModel):
    seconds_remaining: int


class NoticePayload(CamelModel):
    message: str


class RoomCreatedMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_CREATED] = ServerMessageType.ROOM_CREATED
    payload: RoomCreatedPayload


class GameStateUpdateMessage(BaseModel):
    type: Literal[ServerMessageType.GAME_STATE_UPDATE] = ServerMessageType.GAME_STATE_UPDATE
    payload: RoomSnapshot


class RoundEndCountdownMessage(BaseModel):
    type: Literal[ServerMessageType.ROUND_END_COUNTDOWN] = ServerMessageType.ROUND_END_COUNTDOWN
    payload: CountdownPayload


class ErrorMessage(BaseModel):
    type: Literal[ServerMessageType.ERROR] = ServerMessageType.ERROR
    payload: NoticePayload


class AlertMessage(BaseModel):
    type: Literal[ServerMessageType.ALERT] = ServerMessageType.ALERT
    payload: NoticePayload


class PongMessage(BaseModel):
    type: Literal[ServerMessageType.PONG] = ServerMessageType.PONG
    payload: EmptyPayload = Field(default_factory=EmptyPayload)


ServerMessage = (
    RoomCreatedMessage | GameStateUpdateMessage | RoundEndCountdownMessage | ErrorMessage | AlertMessage | PongMessage
)


def to_wire(message: ServerMessage) -> dict[str, Any]:
    """Dump a server message to the JSON-ready dict clients expect (camelCase keys)."""
    return message.model_dump(mode="json", by_alias=True)
