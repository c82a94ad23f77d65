"""Room registry and the command handlers that drive room lifecycles.

Every inbound command is a plain function taking the registry, the id of
the connection that sent it, the decoded payload and the current time. It
mutates the registry and returns the :class:`~arena_server.protocol.Envelope`
objects to deliver, so the whole lobby flow can be exercised without a
network. The websocket layer in :mod:`arena_server.main` only parses,
dispatches and delivers.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import random
from typing import Any, Callable, Dict, List, Optional

from . import constants
from .food import catalog
from .player import Player
from .protocol import Envelope
from .room import Room
from .scores import LoggingScoreRecorder, ScoreRecorder
from .simulation import advance
from .utils import Direction, place_non_overlapping


class TickScheduler:
    """Starts and stops the periodic tick of a room.

    The default implementation schedules nothing, which is what the unit
    tests want; the websocket server overrides both methods with asyncio
    tasks.
    """

    def schedule(self, room_id: str) -> Any:
        return room_id

    def cancel(self, room_id: str) -> None:
        return None


@dataclass(frozen=True)
class Session:
    room_id: str
    player_id: str


class RoomRegistry:
    """All live rooms plus the connection to player routing table."""

    def __init__(
        self,
        scheduler: Optional[TickScheduler] = None,
        score_recorder: Optional[ScoreRecorder] = None,
        tick_interval_ms: int = constants.TICK_INTERVAL_MS,
    ) -> None:
        self.rooms: Dict[str, Room] = {}
        self.sessions: Dict[str, Session] = {}
        self.scheduler = scheduler or TickScheduler()
        self.score_recorder = score_recorder or LoggingScoreRecorder()
        self.tick_interval_ms = tick_interval_ms

    # ----------------------------------------------------------------- helpers

    def new_room_id(self) -> str:
        while True:
            room_id = str(random.randint(constants.ROOM_ID_MIN, constants.ROOM_ID_MAX))
            if room_id not in self.rooms:
                return room_id

    def room_of(self, connection_id: str) -> Optional[str]:
        session = self.sessions.get(connection_id)
        return session.room_id if session else None

    def room_list(self) -> List[dict]:
        return [room.summary() for room in self.rooms.values()]

    def room_list_envelope(self) -> Envelope:
        return Envelope.broadcast("roomList", {"rooms": self.room_list()})

    def caller(self, connection_id: str, payload: dict) -> tuple[Optional[Room], Optional[Player]]:
        """Resolve the room named in ``payload`` and the caller's player in it."""

        room = self.rooms.get(str(payload.get("roomId", "")))
        if room is None:
            return None, None
        return room, room.players.get(connection_id)

    def start_ticking(self, room: Room) -> None:
        if room.tick_handle is None:
            room.tick_handle = self.scheduler.schedule(room.id)

    def stop_ticking(self, room: Room) -> None:
        if room.tick_handle is not None:
            self.scheduler.cancel(room.id)
            room.tick_handle = None

    def halt_room(self, room_id: str) -> None:
        """Stop a room whose tick failed, leaving its members in the lobby."""

        room = self.rooms.get(room_id)
        if room is None:
            return
        room.started = False
        self.stop_ticking(room)

    # -------------------------------------------------------------- dispatching

    def dispatch(self, connection_id: str, message: dict, now: int) -> List[Envelope]:
        handler = COMMAND_HANDLERS.get(message.get("type", ""))
        if handler is None:
            logging.debug("Ignoring unknown command %r from %s", message.get("type"), connection_id)
            return []
        return handler(self, connection_id, message, now)

    def disconnect(self, connection_id: str) -> List[Envelope]:
        """Treat a dropped connection as leaving its room."""

        session = self.sessions.get(connection_id)
        if session is None:
            return []
        logging.info("Connection %s dropped from room %s", connection_id, session.room_id)
        return self.leave(connection_id, session.room_id, acknowledge=False)

    def tick_room(self, room_id: str, now: int) -> List[Envelope]:
        """Advance a started room by one tick and return the events it produced."""

        room = self.rooms.get(room_id)
        if room is None or not room.started:
            return []
        outcome = advance(room, now, self.tick_interval_ms)
        envelopes = list(outcome.events)
        if outcome.game_over:
            self.stop_ticking(room)
            winner = outcome.winner.name if outcome.winner else None
            logging.info("Game over in room %s, winner %s", room.id, winner)
            self._record_scores(room)
            envelopes.append(self.room_list_envelope())
        return envelopes

    def _record_scores(self, room: Room) -> None:
        for player in room.players.values():
            try:
                self.score_recorder.record_score(player.name, player.score)
            except Exception:
                logging.exception("Failed to record score for %s", player.name)

    def leave(self, connection_id: str, room_id: str, acknowledge: bool) -> List[Envelope]:
        envelopes: List[Envelope] = []
        self.sessions.pop(connection_id, None)
        room = self.rooms.get(room_id)
        if room is not None:
            room.remove_player(connection_id)
            if not room.players:
                self.stop_ticking(room)
                room.started = False
                self.rooms.pop(room_id, None)
                logging.info("Room %s closed", room_id)
            else:
                envelopes.append(Envelope.to_room(room, "updatePlayers", {"players": room.public_players()}))
        if acknowledge:
            envelopes.append(Envelope.to(connection_id, "leftRoom"))
        envelopes.append(self.room_list_envelope())
        return envelopes


def _error(connection_id: str, message: str) -> List[Envelope]:
    logging.debug("Rejected command from %s: %s", connection_id, message)
    return [Envelope.to(connection_id, "error", {"message": message})]


def _player_name(payload: dict) -> str:
    raw = payload.get("name", payload.get("playerName"))
    name = str(raw).strip() if raw is not None else ""
    return name[: constants.MAX_NAME_LENGTH] or "Player"


def _grid_size(raw: object) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < constants.MIN_GRID_SIZE:
        return constants.DEFAULT_GRID_SIZE
    return min(raw, constants.MAX_GRID_SIZE)


def handle_create_room(registry: RoomRegistry, connection_id: str, payload: dict, now: int) -> List[Envelope]:
    if connection_id in registry.sessions:
        return _error(connection_id, "Already in a room")

    room = Room(registry.new_room_id(), connection_id, _grid_size(payload.get("gridSize")))
    room.add_player(connection_id, _player_name(payload))
    registry.rooms[room.id] = room
    registry.sessions[connection_id] = Session(room.id, connection_id)
    logging.info("Room %s created by %s (grid %d)", room.id, connection_id, room.grid_size)
    return [
        Envelope.to(connection_id, "roomCreated", {"roomId": room.id, "playerId": connection_id, "isOwner": True}),
        Envelope.to_room(room, "updatePlayers", {"players": room.public_players()}),
        registry.room_list_envelope(),
    ]


def handle_join_room(registry: RoomRegistry, connection_id: str, payload: dict, now: int) -> List[Envelope]:
    if connection_id in registry.sessions:
        return _error(connection_id, "Already in a room")
    room = registry.rooms.get(str(payload.get("roomId", "")))
    if room is None:
        return _error(connection_id, "Room not found")
    if room.is_full:
        return _error(connection_id, "Room is full")
    if room.started:
        return _error(connection_id, "Game already in progress")

    room.add_player(connection_id, _player_name(payload))
    registry.sessions[connection_id] = Session(room.id, connection_id)
    logging.info("Connection %s joined room %s", connection_id, room.id)
    return [
        Envelope.to(connection_id, "joinedRoom", {"roomId": room.id, "playerId": connection_id, "isOwner": False}),
        Envelope.to_room(room, "updatePlayers", {"players": room.public_players()}),
        registry.room_list_envelope(),
    ]


def handle_player_ready(registry: RoomRegistry, connection_id: str, payload: dict, now: int) -> List[Envelope]:
    room, player = registry.caller(connection_id, payload)
    if player is None:
        return _error(connection_id, "You are not in this room")
    if room.started:
        return _error(connection_id, "Game already in progress")
    player.is_ready = not player.is_ready
    return [Envelope.to_room(room, "updatePlayers", {"players": room.public_players()})]


def handle_start_game(registry: RoomRegistry, connection_id: str, payload: dict, now: int) -> List[Envelope]:
    room, player = registry.caller(connection_id, payload)
    if player is None:
        return _error(connection_id, "You are not in this room")
    if room.owner_id != connection_id:
        return _error(connection_id, "Only the room owner can start the game")
    if room.started:
        return _error(connection_id, "Game already in progress")
    if not all(member.is_ready for member in room.players.values()):
        return _error(connection_id, "Not all players are ready")

    heads = []
    for member in room.players.values():
        head = place_non_overlapping(room.grid_size, heads)
        member.reset_for_match(head)
        heads.append(head)
    room.foods = {}
    room.spawn_food(now)
    room.tick = 0
    room.snapshot.capture(room)
    room.started = True
    registry.start_ticking(room)
    logging.info("Game started in room %s with %d players", room.id, len(room.players))

    return [
        Envelope.to_room(
            room,
            "gameStarted",
            {
                "players": room.public_players(),
                "foods": [food.to_dict() for food in room.foods.values()],
                "gridSize": room.grid_size,
                "foodTypes": catalog(),
            },
        ),
        registry.room_list_envelope(),
    ]


def handle_change_direction(registry: RoomRegistry, connection_id: str, payload: dict, now: int) -> List[Envelope]:
    room, player = registry.caller(connection_id, payload)
    direction = Direction.parse(payload.get("direction"))
    if player is None or direction is None or not room.started:
        return []
    if player.steer(direction, now):
        return [Envelope.to_room(room, "effectTriggered", {"playerId": player.id, "effects": ["dash"]})]
    return []


def handle_reset_game(registry: RoomRegistry, connection_id: str, payload: dict, now: int) -> List[Envelope]:
    room, player = registry.caller(connection_id, payload)
    if player is None:
        return _error(connection_id, "You are not in this room")
    if room.owner_id != connection_id:
        return _error(connection_id, "Only the room owner can reset the game")

    registry.stop_ticking(room)
    room.started = False
    for member in room.players.values():
        member.reset_to_lobby()
    room.foods = {}
    room.tick = 0
    room.snapshot.clear()
    logging.info("Room %s reset", room.id)
    return [
        Envelope.to_room(room, "gameReset"),
        Envelope.to_room(room, "updatePlayers", {"players": room.public_players()}),
        registry.room_list_envelope(),
    ]


def handle_leave_room(registry: RoomRegistry, connection_id: str, payload: dict, now: int) -> List[Envelope]:
    room, player = registry.caller(connection_id, payload)
    if room is None:
        return _error(connection_id, "Room not found")
    if player is None:
        return _error(connection_id, "You are not in this room")
    logging.info("Connection %s left room %s", connection_id, room.id)
    return registry.leave(connection_id, room.id, acknowledge=True)


def handle_request_room_list(registry: RoomRegistry, connection_id: str, payload: dict, now: int) -> List[Envelope]:
    return [Envelope.to(connection_id, "roomList", {"rooms": registry.room_list()})]


CommandHandler = Callable[[RoomRegistry, str, dict, int], List[Envelope]]

COMMAND_HANDLERS: Dict[str, CommandHandler] = {
    "createRoom": handle_create_room,
    "joinRoom": handle_join_room,
    "playerReady": handle_player_ready,
    "startGame": handle_start_game,
    "changeDirection": handle_change_direction,
    "resetGame": handle_reset_game,
    "leaveRoom": handle_leave_room,
    "requestRoomList": handle_request_room_list,
}
