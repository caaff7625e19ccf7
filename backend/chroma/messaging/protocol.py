"""Abstract connection protocol for JSON text communication."""

import json
from abc import ABC, abstractmethod
from typing import Any


class ConnectionProtocol(ABC):
    """
    Abstract interface for a client connection.

    Lets the registry and router be exercised without a real WebSocket.
    Frames are UTF-8 JSON text.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique identifier for this connection."""
        ...

    @abstractmethod
    async def send_text(self, data: str) -> None:
        """Send one text frame to the client."""
        ...

    @abstractmethod
    async def receive_text(self) -> str:
        """Wait for the next text frame from the client."""
        ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the connection."""
        ...

    async def send_message(self, data: dict[str, Any]) -> None:
        """Send a message encoded as JSON."""
        await self.send_text(json.dumps(data))
