import asyncio
import json
from typing import Any
from uuid import uuid4

from chroma.messaging.protocol import ConnectionProtocol


class MockConnection(ConnectionProtocol):
    def __init__(self, connection_id: str | None = None) -> None:
        self._connection_id = connection_id or str(uuid4())
        self._inbox: asyncio.Queue[str] = asyncio.Queue()
        self._outbox: list[dict[str, Any]] = []
        self._closed = False
        self._close_code: int | None = None

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def sent_messages(self) -> list[dict[str, Any]]:
        return self._outbox.copy()

    @property
    def is_closed(self) -> bool:
        return self._closed

    def messages_of_type(self, message_type: str) -> list[dict[str, Any]]:
        return [m for m in self._outbox if m["type"] == message_type]

    def last_state(self) -> dict[str, Any]:
        """Most recent room snapshot this connection received."""
        for message in reversed(self._outbox):
            if message["type"] == "GAME_STATE_UPDATE":
                return message["payload"]
            if message["type"] == "ROOM_CREATED":
                return message["payload"]["gameState"]
        raise AssertionError("no snapshot received")

    def clear(self) -> None:
        self._outbox.clear()

    async def send_text(self, data: str) -> None:
        if self._closed:
            raise RuntimeError("Connection is closed")
        # decode and store for test inspection
        self._outbox.append(json.loads(data))

    async def receive_text(self) -> str:
        if self._closed:
            raise RuntimeError("Connection is closed")
        return await self._inbox.get()

    async def close(self, code: int = 1000, reason: str = "") -> None:  # noqa: ARG002
        self._closed = True
        self._close_code = code

    def simulate_receive_nowait(self, data: dict[str, Any]) -> None:
        """Queue a client frame for receive_text()."""
        self._inbox.put_nowait(json.dumps(data))
