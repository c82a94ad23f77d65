from __future__ import annotations

from typing import List

import pytest

from arena_server.player import Player
from arena_server.registry import RoomRegistry, TickScheduler
from arena_server.room import Room
from arena_server.utils import Direction, Position


class RecordingScheduler(TickScheduler):
    """Remembers which rooms were asked to tick instead of running them."""

    def __init__(self) -> None:
        self.active: List[str] = []
        self.cancelled: List[str] = []

    def schedule(self, room_id: str) -> str:
        self.active.append(room_id)
        return room_id

    def cancel(self, room_id: str) -> None:
        self.cancelled.append(room_id)
        if room_id in self.active:
            self.active.remove(room_id)


class MemoryScoreRecorder:
    def __init__(self) -> None:
        self.scores: List[tuple] = []

    def record_score(self, name: str, score: int) -> None:
        self.scores.append((name, score))


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def scores() -> MemoryScoreRecorder:
    return MemoryScoreRecorder()


@pytest.fixture
def registry(scheduler, scores) -> RoomRegistry:
    return RoomRegistry(scheduler, scores)


def cells(*coords) -> List[Position]:
    return [Position(x, y) for x, y in coords]


def make_room(grid_size: int = 20, players: int = 1) -> Room:
    """A started room with ``players`` live snakes and no food."""

    room = Room("123456", "p1", grid_size)
    for index in range(1, players + 1):
        player = room.add_player(f"p{index}", f"Player {index}")
        player.is_alive = True
    room.started = True
    return room


def place(player: Player, snake: List[Position], direction: Direction = Direction.RIGHT) -> Player:
    player.snake = list(snake)
    player.direction = direction
    player.pending_direction = direction
    return player
