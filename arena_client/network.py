"""Websocket networking client."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Optional

from websockets.asyncio.client import ClientConnection, connect


class NetworkClient:
    """Asynchronous websocket client that sends commands and queues server events."""

    def __init__(self, uri: str) -> None:
        self.uri = uri
        self.websocket: Optional[ClientConnection] = None
        self._incoming: asyncio.Queue[Dict[str, Any]] = asyncio.Queue()
        self._receiver_task: Optional[asyncio.Task[None]] = None

    async def connect(self) -> None:
        self.websocket = await connect(self.uri)
        self._receiver_task = asyncio.create_task(self._receiver_loop())

    async def _receiver_loop(self) -> None:
        assert self.websocket is not None
        try:
            async for message in self.websocket:
                try:
                    payload = json.loads(message)
                except json.JSONDecodeError:
                    continue
                await self._incoming.put(payload)
        finally:
            await self._incoming.put({"type": "disconnect"})

    async def _send_json(self, payload: Dict[str, Any]) -> None:
        if self.websocket is None:
            raise RuntimeError("Client is not connected")
        await self.websocket.send(json.dumps(payload))

    async def send_command(self, command: str, **payload: Any) -> None:
        await self._send_json({"type": command, **payload})

    async def create_room(self, name: str, grid_size: Optional[int] = None) -> None:
        payload: Dict[str, Any] = {"name": name}
        if grid_size is not None:
            payload["gridSize"] = grid_size
        await self.send_command("createRoom", **payload)

    async def join_room(self, room_id: str, name: str) -> None:
        await self.send_command("joinRoom", roomId=room_id, name=name)

    async def change_direction(self, room_id: str, direction: str) -> None:
        await self.send_command("changeDirection", roomId=room_id, direction=direction)

    async def next_event(self) -> Dict[str, Any]:
        return await self._incoming.get()

    async def wait_for(self, event_type: str, timeout: float = 5.0) -> Dict[str, Any]:
        """Discard queued events until one of ``event_type`` arrives."""

        async def _wait() -> Dict[str, Any]:
            while True:
                payload = await self._incoming.get()
                if payload.get("type") == event_type:
                    return payload
                if payload.get("type") == "disconnect":
                    raise ConnectionError(f"Disconnected while waiting for {event_type}")

        return await asyncio.wait_for(_wait(), timeout)

    async def close(self) -> None:
        if self.websocket is not None:
            await self.websocket.close()
        if self._receiver_task is not None:
            await self._receiver_task
