"""Room registry: room lifecycle, connection binding and round-end countdowns."""

from __future__ import annotations

import logging
import random
import secrets
import string
from typing import TYPE_CHECKING

from chroma.logic.catalog import draw_color_sequence, ensure_catalog_size
from chroma.logic.exceptions import RoomNotFoundError, UnauthorizedError
from chroma.logic.timer import RoundCountdown
from chroma.messaging.types import (
    AlertMessage,
    CountdownPayload,
    GameStateUpdateMessage,
    NoticePayload,
    RoomCreatedMessage,
    RoomCreatedPayload,
    RoundEndCountdownMessage,
)
from chroma.session.room import (
    DEFAULT_GUESS_TIME_LIMIT,
    DEFAULT_MAX_ROUNDS,
    DEFAULT_MIN_PLAYERS,
    Player,
    Room,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from chroma.logic.types import ColorPrompt, Rgb
    from chroma.messaging.protocol import ConnectionProtocol
    from chroma.session.broadcast import BroadcastGateway

logger = logging.getLogger(__name__)

ROOM_ID_ALPHABET = string.ascii_lowercase + string.digits
LOBBY_CLOSED_MESSAGE = "The lobby has been closed by the host."
HOST_LEFT_MESSAGE = "The host has left the lobby."


class RoomRegistry:
    """Own every live room and which connection is bound to which room.

    Each command runs its mutation and the resulting broadcast while holding
    the room's lock, so members of a room observe one ordered stream of
    snapshots. Countdown callbacks take the same lock.

    Constructed once per process (see create_app) and torn down with
    shutdown(); tests build their own instance with a seeded RNG.
    """

    def __init__(
        self,
        catalog: Sequence[ColorPrompt],
        gateway: BroadcastGateway,
        *,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        min_players: int = DEFAULT_MIN_PLAYERS,
        countdown_seconds: int = 5,
        tick_interval: float = 1.0,
        guess_time_limit: int = DEFAULT_GUESS_TIME_LIMIT,
        room_id_length: int = 6,
        rng: random.Random | None = None,
    ) -> None:
        ensure_catalog_size(catalog, max_rounds)
        self._catalog = tuple(catalog)
        self._gateway = gateway
        self._max_rounds = max_rounds
        self._min_players = min_players
        self._countdown_seconds = countdown_seconds
        self._tick_interval = tick_interval
        self._guess_time_limit = guess_time_limit
        self._room_id_length = room_id_length
        self._rng = rng or random.Random()  # noqa: S311
        self._rooms: dict[str, Room] = {}
        self._connection_rooms: dict[str, str] = {}  # connection_id -> room_id

    # --- Lookups ---

    @property
    def gateway(self) -> BroadcastGateway:
        return self._gateway

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    def get_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def room_for(self, connection_id: str) -> Room | None:
        room_id = self._connection_rooms.get(connection_id)
        return self._rooms.get(room_id) if room_id is not None else None

    def register_connection(self, connection: ConnectionProtocol) -> None:
        self._gateway.register(connection)

    def unregister_connection(self, connection_id: str) -> None:
        self._gateway.unregister(connection_id)

    # --- Room lifecycle ---

    async def create_room(self, connection: ConnectionProtocol, nickname: str) -> Room:
        """Create a lobby with the sender as host and reply with ROOM_CREATED."""
        await self.remove_connection(connection.connection_id)

        room = Room(
            room_id=self._new_room_id(),
            color_sequence=draw_color_sequence(self._catalog, self._max_rounds, self._rng),
            max_rounds=self._max_rounds,
            min_players=self._min_players,
            guess_time_limit=self._guess_time_limit,
        )
        async with room.lock:
            room.add_player(connection.connection_id, nickname, is_host=True)
            self._rooms[room.room_id] = room
            self._connection_rooms[connection.connection_id] = room.room_id
            logger.info("room %s created by %s", room.room_id, nickname)
            await self._gateway.send_to(
                connection.connection_id,
                RoomCreatedMessage(payload=RoomCreatedPayload(room_id=room.room_id, game_state=room.snapshot())),
            )
        return room

    async def join_room(self, connection: ConnectionProtocol, room_id: str, nickname: str) -> Player:
        """Add the sender to an existing room in any phase.

        Raises RoomNotFoundError when the id is unknown; nothing changes then.
        """
        connection_id = connection.connection_id
        if room_id not in self._rooms:
            raise RoomNotFoundError(room_id)

        current = self.room_for(connection_id)
        if current is not None and current.room_id == room_id:
            logger.info("connection %s already in room %s, ignoring join", connection_id, room_id)
            return current.players[connection_id]
        await self.remove_connection(connection_id)

        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFoundError(room_id)
        async with room.lock:
            if not self._is_live(room):
                raise RoomNotFoundError(room_id)
            player = room.add_player(connection_id, nickname)
            self._connection_rooms[connection_id] = room_id
            logger.info("%s joined room %s (%d players)", nickname, room_id, room.player_count)
            await self._broadcast_state(room)
        return player

    async def remove_connection(self, connection_id: str) -> None:
        """Detach a connection from its room (disconnect or EXIT_LOBBY). Idempotent.

        The host leaving closes the room for everyone; anyone else leaving
        just updates the room, or destroys it when it becomes empty.
        """
        room = self.room_for(connection_id)
        if room is None:
            self._connection_rooms.pop(connection_id, None)
            return

        async with room.lock:
            if not self._is_live(room) or self._connection_rooms.get(connection_id) != room.room_id:
                return

            self._connection_rooms.pop(connection_id, None)
            if room.is_host(connection_id):
                logger.info("host left room %s, closing it", room.room_id)
                room.remove_player(connection_id)
                await self._close(room, HOST_LEFT_MESSAGE)
                return

            player = room.remove_player(connection_id)
            if room.is_empty:
                self._destroy(room)
                return

            logger.info(
                "%s left room %s (%d players)",
                player.nickname if player else connection_id,
                room.room_id,
                room.player_count,
            )
            # The leaver may have been the last one we were waiting on.
            self._maybe_arm_countdown(room)
            await self._broadcast_state(room)

    async def close_room(self, connection_id: str) -> None:
        """Host-only: alert every member, detach them all and destroy the room."""
        room = self._bound_room(connection_id)
        if room is None:
            return
        async with room.lock:
            if not self._is_live(room):
                return
            if not room.is_host(connection_id):
                raise UnauthorizedError("Only the host can close the lobby")
            logger.info("room %s closed by host", room.room_id)
            await self._close(room, LOBBY_CLOSED_MESSAGE)

    # --- Game commands ---

    async def start_game(self, connection_id: str) -> None:
        room = self._bound_room(connection_id)
        if room is None:
            return
        async with room.lock:
            if not self._is_live(room):
                return
            room.start_game(connection_id)
            logger.info("room %s started with %d players", room.room_id, room.player_count)
            await self._broadcast_state(room)

    async def submit_guess(self, connection_id: str, guess: Rgb) -> None:
        room = self._bound_room(connection_id)
        if room is None:
            return
        async with room.lock:
            if not self._is_live(room):
                return
            room.submit_guess(connection_id, guess)
            await self._broadcast_state(room)
            self._maybe_arm_countdown(room)

    async def request_countdown(self, connection_id: str) -> None:
        """Re-check whether the grace countdown should start. Never starts a second one."""
        room = self._bound_room(connection_id)
        if room is None:
            return
        async with room.lock:
            if self._is_live(room):
                self._maybe_arm_countdown(room)

    async def end_round(self, connection_id: str) -> None:
        """Close the current round now, cancelling any pending countdown."""
        room = self._bound_room(connection_id)
        if room is None:
            return
        async with room.lock:
            if not self._is_live(room):
                return
            awarded = room.close_round()
            logger.info("room %s round ended manually, awarded %s", room.room_id, awarded)
            await self._broadcast_state(room)

    async def shutdown(self) -> None:
        """Cancel every countdown and forget all rooms."""
        for room in list(self._rooms.values()):
            room.clear_countdown()
        self._rooms.clear()
        self._connection_rooms.clear()
        logger.info("room registry shut down")

    # --- Countdown ---

    def _maybe_arm_countdown(self, room: Room) -> None:
        if not room.should_arm_countdown:
            return
        countdown = RoundCountdown(self._countdown_seconds, self._tick_interval)
        room.arm_countdown(countdown)
        countdown.start(
            on_tick=lambda remaining, r=room, c=countdown: self._on_countdown_tick(r, c, remaining),
            on_expire=lambda r=room, c=countdown: self._on_countdown_expired(r, c),
        )
        logger.info("room %s round %d countdown armed", room.room_id, room.round_number)

    async def _on_countdown_tick(self, room: Room, countdown: RoundCountdown, remaining: int) -> None:
        async with room.lock:
            if not self._is_live(room) or room.countdown is not countdown:
                return
            try:
                await self._gateway.broadcast(
                    room,
                    RoundEndCountdownMessage(payload=CountdownPayload(seconds_remaining=remaining)),
                )
            except Exception:
                # A lost tick must not stop the round from closing.
                logger.exception("room %s countdown tick %d failed", room.room_id, remaining)

    async def _on_countdown_expired(self, room: Room, countdown: RoundCountdown) -> None:
        async with room.lock:
            if not self._is_live(room) or room.countdown is not countdown:
                return
            try:
                awarded = room.close_round()
                logger.info("room %s round closed by countdown, awarded %s", room.room_id, awarded)
                await self._broadcast_state(room)
            finally:
                # Free the slot so the next arm check can start a fresh countdown.
                if room.countdown is countdown:
                    room.countdown = None

    # --- Internal helpers ---

    def _bound_room(self, connection_id: str) -> Room | None:
        """Room the connection is bound to; commands from unbound connections are dropped."""
        room = self.room_for(connection_id)
        if room is None:
            logger.debug("ignoring command from %s: not in a room", connection_id)
        return room

    def _is_live(self, room: Room) -> bool:
        """False once the room was destroyed while we waited for its lock."""
        return self._rooms.get(room.room_id) is room

    def _new_room_id(self) -> str:
        while True:
            room_id = "".join(secrets.choice(ROOM_ID_ALPHABET) for _ in range(self._room_id_length))
            if room_id not in self._rooms:
                return room_id

    async def _close(self, room: Room, message: str) -> None:
        await self._gateway.broadcast(room, AlertMessage(payload=NoticePayload(message=message)))
        self._destroy(room)

    def _destroy(self, room: Room) -> None:
        room.clear_countdown()
        for connection_id in list(room.players):
            if self._connection_rooms.get(connection_id) == room.room_id:
                del self._connection_rooms[connection_id]
        self._rooms.pop(room.room_id, None)
        logger.info("room %s destroyed", room.room_id)

    async def _broadcast_state(self, room: Room) -> None:
        await self._gateway.broadcast(room, GameStateUpdateMessage(payload=room.snapshot()))
