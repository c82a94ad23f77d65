"""Client side entity representations mirroring the server state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class Segment:
    """A single snake cell."""

    x: float
    y: float

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


def _segments(payload: List[dict]) -> List[Segment]:
    return [Segment(segment["x"], segment["y"]) for segment in payload]


@dataclass
class PlayerEntity:
    """Player state synchronised from the server."""

    id: str
    color: str
    direction: str = "RIGHT"
    is_alive: bool = False
    score: int = 0
    effects: List[dict] = field(default_factory=list)
    revive_charges: int = 0
    snake: List[Segment] = field(default_factory=list)

    @classmethod
    def from_record(cls, record: dict) -> "PlayerEntity":
        entity = cls(id=record["id"], color=record.get("color", ""))
        entity.update_from_delta(record)
        if "snake" in record:
            entity.snake = _segments(record["snake"])
        return entity

    def update_from_delta(self, delta: dict) -> None:
        self.direction = delta.get("direction", self.direction)
        self.is_alive = delta.get("isAlive", self.is_alive)
        self.score = delta.get("score", self.score)
        self.revive_charges = delta.get("reviveCharges", self.revive_charges)
        self.color = delta.get("color", self.color)
        if "effects" in delta:
            self.effects = [dict(effect) for effect in delta["effects"]]

        movement = delta.get("movement")
        if movement is not None:
            self.snake.insert(0, Segment(movement["head"]["x"], movement["head"]["y"]))
            removed = movement.get("removedTail", 0)
            if removed > 0:
                del self.snake[-removed:]
        elif "fullSnake" in delta:
            self.snake = _segments(delta["fullSnake"])

    def to_state(self) -> dict:
        return {
            "id": self.id,
            "snake": [segment.to_dict() for segment in self.snake],
            "direction": self.direction,
            "isAlive": self.is_alive,
            "score": self.score,
            "effects": [dict(effect) for effect in self.effects],
            "reviveCharges": self.revive_charges,
            "color": self.color,
        }


@dataclass
class FoodEntity:
    """Food state synchronised from the server."""

    id: str
    x: float
    y: float
    type_id: int
    spawn_time: int
    custom_lifetime: Optional[int] = None
    is_corpse: bool = False
    corpse_color: Optional[str] = None

    @classmethod
    def from_record(cls, record: dict) -> "FoodEntity":
        return cls(
            id=record["id"],
            x=record["x"],
            y=record["y"],
            type_id=record["typeId"],
            spawn_time=record["spawnTime"],
            custom_lifetime=record.get("customLifetime"),
            is_corpse=record.get("isCorpse", False),
            corpse_color=record.get("corpseColor"),
        )

    def update_from_delta(self, record: dict) -> None:
        self.x = record.get("x", self.x)
        self.y = record.get("y", self.y)
        self.spawn_time = record.get("spawnTime", self.spawn_time)
        self.custom_lifetime = record.get("customLifetime", self.custom_lifetime)
        self.is_corpse = record.get("isCorpse", self.is_corpse)
        self.corpse_color = record.get("corpseColor", self.corpse_color)

    def to_state(self) -> dict:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "typeId": self.type_id,
            "spawnTime": self.spawn_time,
            "customLifetime": self.custom_lifetime,
            "isCorpse": self.is_corpse,
            "corpseColor": self.corpse_color,
        }


class EntityStore:
    """Maintain the players and food of the current game.

    Deltas carry a tick number; anything not newer than the last applied
    tick is discarded so late or duplicated frames cannot roll state back.
    """

    def __init__(self) -> None:
        self.players: Dict[str, PlayerEntity] = {}
        self.foods: Dict[str, FoodEntity] = {}
        self.grid_size: int = 0
        self.last_tick: int = 0

    def reset(self) -> None:
        self.players.clear()
        self.foods.clear()
        self.last_tick = 0

    def load_game_started(self, payload: dict) -> None:
        self.reset()
        self.grid_size = payload.get("gridSize", self.grid_size)
        for record in payload.get("players", []):
            self.players[record["id"]] = PlayerEntity.from_record(record)
        for record in payload.get("foods", []):
            self.foods[record["id"]] = FoodEntity.from_record(record)

    def apply_delta(self, delta: dict) -> bool:
        """Apply ``delta`` and return ``False`` if it was stale and ignored."""

        tick = delta.get("tick", 0)
        if tick <= self.last_tick:
            return False
        self.last_tick = tick

        for record in delta.get("players", []):
            entity = self.players.get(record["id"])
            if entity is None:
                self.players[record["id"]] = PlayerEntity.from_record(record)
            else:
                entity.update_from_delta(record)
        for player_id in delta.get("removedPlayers", []):
            self.players.pop(player_id, None)

        foods = delta.get("foods", {})
        for record in foods.get("added", []):
            self.foods[record["id"]] = FoodEntity.from_record(record)
        for record in foods.get("updated", []):
            entity = self.foods.get(record["id"])
            if entity is not None:
                entity.update_from_delta(record)
        for food_id in foods.get("removed", []):
            self.foods.pop(food_id, None)
        return True

    def to_state(self) -> dict:
        return {
            "players": {player_id: entity.to_state() for player_id, entity in self.players.items()},
            "foods": {food_id: entity.to_state() for food_id, entity in self.foods.items()},
        }
