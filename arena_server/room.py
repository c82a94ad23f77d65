"""Game room: the players, food and snapshot state of one arena."""

from __future__ import annotations

import random
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set

from . import constants
from .delta import RoomSnapshot
from .food import Food, place_food
from .player import Player
from .utils import Position


class Room:
    """Owns every player and food of one arena.

    ``players`` keeps join order, which is also the tie breaker when picking
    a winner. ``snapshot`` holds the state last broadcast to clients and is
    what the delta encoder diffs against.
    """

    def __init__(self, room_id: str, owner_id: str, grid_size: int = constants.DEFAULT_GRID_SIZE) -> None:
        self.id = room_id
        self.owner_id = owner_id
        self.grid_size = grid_size
        self.players: Dict[str, Player] = {}
        self.foods: Dict[str, Food] = {}
        self.started = False
        self.tick_handle: Optional[Any] = None
        self.used_colors: Set[int] = set()
        self.tick = 0
        self.snapshot = RoomSnapshot()

    # ------------------------------------------------------------------ members

    @property
    def is_full(self) -> bool:
        return len(self.players) >= constants.MAX_ROOM_PLAYERS

    def add_player(self, player_id: str, name: str) -> Player:
        """Register a new unready player with the first free colour."""

        color_index = self._free_color_index()
        self.used_colors.add(color_index)
        player = Player(id=player_id, name=name, color=constants.PLAYER_COLORS[color_index])
        self.players[player_id] = player
        return player

    def remove_player(self, player_id: str) -> Optional[Player]:
        """Remove ``player_id``, release its colour and hand over ownership."""

        player = self.players.pop(player_id, None)
        if player is None:
            return None
        try:
            self.used_colors.discard(constants.PLAYER_COLORS.index(player.color))
        except ValueError:
            pass
        if self.owner_id == player_id and self.players:
            self.owner_id = next(iter(self.players))
        return player

    def _free_color_index(self) -> int:
        for index in range(len(constants.PLAYER_COLORS)):
            if index not in self.used_colors:
                return index
        return random.randrange(len(constants.PLAYER_COLORS))

    def alive_players(self) -> List[Player]:
        return [player for player in self.players.values() if player.is_alive]

    def snake_segments(self) -> Iterator[Position]:
        for player in self.players.values():
            yield from player.snake

    def public_players(self) -> List[dict]:
        return [player.to_dict() for player in self.players.values()]

    # --------------------------------------------------------------------- food

    def add_food(self, food: Food) -> Food:
        self.foods[food.id] = food
        return food

    def remove_food(self, food_id: str) -> Optional[Food]:
        return self.foods.pop(food_id, None)

    def spawn_food(self, now: int, avoid: Iterable[Position] = ()) -> Food:
        """Place one random food away from snakes, other food and ``avoid``."""

        food = place_food(self.foods.values(), self.snake_segments(), self.grid_size, now, avoid)
        return self.add_food(food)

    def food_at(self, cell: Position) -> Optional[Food]:
        """Return the first edible food whose nearest cell is ``cell``."""

        for food in self.foods.values():
            if not food.is_corpse and food.position.cell() == cell:
                return food
        return None

    # ------------------------------------------------------------------ listing

    def summary(self) -> dict:
        return {
            "roomId": self.id,
            "playerCount": len(self.players),
            "capacity": constants.MAX_ROOM_PLAYERS,
            "isJoinable": not self.is_full and not self.started,
        }
