from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING

from chroma.tests.mocks.connection import MockConnection

if TYPE_CHECKING:
    from chroma.session.registry import RoomRegistry
    from chroma.session.room import Room


def connect(registry: RoomRegistry) -> MockConnection:
    """A fresh connection registered with the registry's gateway."""
    connection = MockConnection()
    registry.register_connection(connection)
    return connection


async def create_lobby(registry: RoomRegistry, *nicknames: str) -> tuple[Room, list[MockConnection]]:
    """Host (first nickname) creates a room and everyone else joins it.

    Message history is cleared so tests only see what they trigger.
    """
    host, *guests = nicknames
    host_connection = connect(registry)
    room = await registry.create_room(host_connection, host)
    connections = [host_connection]
    for nickname in guests:
        connection = connect(registry)
        await registry.join_room(connection, room.room_id, nickname)
        connections.append(connection)
    for connection in connections:
        connection.clear()
    return room, connections


async def start_lobby(registry: RoomRegistry, *nicknames: str) -> tuple[Room, list[MockConnection]]:
    room, connections = await create_lobby(registry, *nicknames)
    await registry.start_game(connections[0].connection_id)
    for connection in connections:
        connection.clear()
    return room, connections


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout=timeout)
