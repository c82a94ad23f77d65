"""Entry point for the asyncio based game room server."""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Dict, Iterable, Optional
import uuid

import websockets
from websockets.asyncio.server import ServerConnection, broadcast, serve

from . import constants, protocol
from .protocol import Envelope
from .registry import RoomRegistry, TickScheduler
from .scores import ScoreRecorder
from .simulation import now_ms


class GameServer(TickScheduler):
    """Websocket gateway in front of the room registry.

    Every room's mutations, whether they come from a client command or from
    the room's own tick task, run under that room's lock so a tick never
    observes a half-applied command. Each started room owns one asyncio task
    that ticks it until the game ends, the room is reset or it empties.
    """

    def __init__(
        self,
        host: str,
        port: int,
        tick_interval_ms: int = constants.TICK_INTERVAL_MS,
        score_recorder: Optional[ScoreRecorder] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.tick_interval = tick_interval_ms / 1000.0
        self.registry = RoomRegistry(self, score_recorder, tick_interval_ms)
        self.clients: Dict[str, ServerConnection] = {}
        self.ready = asyncio.Event()
        self._tick_tasks: Dict[str, asyncio.Task] = {}
        self._locks: Dict[Optional[str], asyncio.Lock] = {}

    async def start(self) -> None:
        """Start the websocket server and serve until cancelled."""

        async with serve(self._handle_client, self.host, self.port) as server:
            sockets = list(server.sockets)
            if sockets:
                self.port = sockets[0].getsockname()[1]
            logging.info("Server listening on %s:%s", self.host, self.port)
            self.ready.set()
            await server.serve_forever()

    # ------------------------------------------------------------- room ticks

    def schedule(self, room_id: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._run_room(room_id))
        self._tick_tasks[room_id] = task
        return task

    def cancel(self, room_id: str) -> None:
        task = self._tick_tasks.pop(room_id, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _run_room(self, room_id: str) -> None:
        try:
            while True:
                await asyncio.sleep(self.tick_interval)
                async with self._lock(room_id):
                    room = self.registry.rooms.get(room_id)
                    if room is None or not room.started or self._tick_tasks.get(room_id) is not asyncio.current_task():
                        return
                    try:
                        envelopes = self.registry.tick_room(room_id, now_ms())
                    except Exception:
                        logging.exception("Tick failed in room %s, stopping it", room_id)
                        self.registry.halt_room(room_id)
                        return
                    self._deliver(envelopes)
        finally:
            self._release_lock(room_id)

    # ----------------------------------------------------------- client IO

    def _lock(self, room_id: Optional[str]) -> asyncio.Lock:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = self._locks[room_id] = asyncio.Lock()
        return lock

    def _release_lock(self, room_id: Optional[str]) -> None:
        """Forget the lock of a room that no longer exists."""

        if room_id is not None and room_id not in self.registry.rooms:
            self._locks.pop(room_id, None)

    def _deliver(self, envelopes: Iterable[Envelope]) -> None:
        for envelope in envelopes:
            if envelope.recipients is None:
                connections = list(self.clients.values())
            else:
                connections = [self.clients[cid] for cid in envelope.recipients if cid in self.clients]
            if connections:
                broadcast(connections, envelope.encode())

    async def _handle_client(self, websocket: ServerConnection) -> None:
        connection_id = uuid.uuid4().hex
        self.clients[connection_id] = websocket
        logging.info("Client %s connected", connection_id)
        try:
            await websocket.send(protocol.encode_message("roomList", {"rooms": self.registry.room_list()}))
            async for message in websocket:
                await self._handle_message(connection_id, message)
        except websockets.ConnectionClosed:
            logging.info("Client %s disconnected", connection_id)
        finally:
            self.clients.pop(connection_id, None)
            room_id = self.registry.room_of(connection_id)
            async with self._lock(room_id):
                self._deliver(self.registry.disconnect(connection_id))
            self._release_lock(room_id)

    async def _handle_message(self, connection_id: str, message) -> None:
        try:
            payload = protocol.parse_client_message(message)
        except ValueError:
            logging.debug("Dropping malformed message from %s", connection_id)
            return
        room_id = payload.get("roomId") or self.registry.room_of(connection_id)
        room_id = str(room_id) if room_id is not None else None
        async with self._lock(room_id):
            self._deliver(self.registry.dispatch(connection_id, payload, now_ms()))
        self._release_lock(room_id)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the snake arena room server")
    parser.add_argument("--host", default="0.0.0.0", help="Host interface to bind to")
    parser.add_argument("--port", type=int, default=3001, help="Port to listen on")
    parser.add_argument(
        "--tick-ms", type=int, default=constants.TICK_INTERVAL_MS, help="Simulation tick interval in milliseconds"
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="[%(levelname)s] %(message)s")
    server = GameServer(args.host, args.port, tick_interval_ms=args.tick_ms)
    try:
        asyncio.run(server.start())
    except KeyboardInterrupt:
        logging.info("Server stopped")


if __name__ == "__main__":
    main()
