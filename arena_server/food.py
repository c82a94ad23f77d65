"""Food catalog, food entities and collision-free food placement."""

from __future__ import annotations

from dataclasses import dataclass
import itertools
import random
from typing import Dict, Iterable, List, Optional

from . import constants
from .utils import Position, random_cell

_id_counter = itertools.count(1)


@dataclass(frozen=True)
class FoodType:
    """Static description of a kind of food."""

    id: int
    key: str
    color: str
    score: int
    lifetime_ms: int
    name: str
    description: str
    effect: Optional[str] = None
    duration: Optional[int] = None
    magnitude: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "key": self.key,
            "color": self.color,
            "score": self.score,
            "effect": self.effect,
            "duration": self.duration,
            "magnitude": self.magnitude,
            "lifetime": self.lifetime_ms,
            "name": self.name,
            "description": self.description,
        }


NORMAL = FoodType(1, "NORMAL", "#ff0000", 10, 15_000, "Food", "Grow by one segment and score a few points")
FREEZE = FoodType(
    2, "FREEZE", "#00aaff", 20, 8_000, "Frost Berry", "Frozen in place for 3 seconds",
    effect="freeze", duration=3_000,
)
SPEED = FoodType(
    3, "SPEED", "#ff5500", 30, 8_000, "Chili Pepper", "Double speed for 5 seconds",
    effect="speed", duration=5_000, magnitude=2.0,
)
SHRINK = FoodType(
    4, "SHRINK", "#aa00ff", 20, 8_000, "Shrink Mushroom", "Lose 3 tail segments at once",
    effect="shrink", magnitude=3,
)
RAINBOW = FoodType(5, "RAINBOW", "rainbow", 50, 7_000, "Rainbow Candy", "Triggers a random effect", effect="random")
TELEPORT = FoodType(
    6, "TELEPORT", "linear-gradient(45deg, #00ffaa, #00aaff)", 20, 7_000, "Portal",
    "Jump to a random free spot", effect="teleport",
)
REVIVE = FoodType(7, "REVIVE", "#ffd700", 60, 12_000, "Revive Charm", "Survive one death with brief immunity", effect="revive")
GHOST = FoodType(
    8, "GHOST", "#00ff00", 40, 8_000, "Ghost Shell", "Pass through walls for 6 seconds",
    effect="ghost", duration=6_000,
)
INVINCIBLE = FoodType(
    9, "INVINCIBLE", "#ffffff", 50, 8_000, "Star", "Immune to collisions for 5 seconds",
    effect="invincible", duration=5_000,
)
MAGNET = FoodType(
    10, "MAGNET", "#ff00ff", 30, 8_000, "Magnet", "Pull nearby food in for 8 seconds",
    effect="magnet", duration=8_000,
)

FOOD_TYPES: Dict[str, FoodType] = {
    food_type.key: food_type
    for food_type in (NORMAL, FREEZE, SPEED, SHRINK, RAINBOW, TELEPORT, REVIVE, GHOST, INVINCIBLE, MAGNET)
}

SPECIAL_FOOD_TYPES: List[FoodType] = [t for t in FOOD_TYPES.values() if t.effect is not None]


def pick_food_type() -> FoodType:
    """Return NORMAL 40% of the time, otherwise a uniformly chosen special type."""

    if random.random() < constants.NORMAL_FOOD_PROBABILITY:
        return NORMAL
    return random.choice(SPECIAL_FOOD_TYPES)


def catalog() -> List[dict]:
    """Serialise the food table for clients."""

    return [food_type.to_dict() for food_type in FOOD_TYPES.values()]


@dataclass
class Food:
    """A piece of food lying on the grid."""

    id: str
    position: Position
    food_type: FoodType
    spawn_time: int
    custom_lifetime: Optional[int] = None
    is_corpse: bool = False
    corpse_color: Optional[str] = None

    @staticmethod
    def next_id() -> str:
        return f"food-{next(_id_counter)}"

    @classmethod
    def corpse(cls, position: Position, color: str, now: int) -> "Food":
        """Create short lived cosmetic food marking a dead snake's segment."""

        return cls(
            id=cls.next_id(),
            position=position,
            food_type=NORMAL,
            spawn_time=now,
            custom_lifetime=constants.CORPSE_LIFETIME_MS,
            is_corpse=True,
            corpse_color=color,
        )

    @property
    def lifetime(self) -> int:
        if self.custom_lifetime is not None:
            return self.custom_lifetime
        return self.food_type.lifetime_ms

    def is_expired(self, now: int) -> bool:
        return now - self.spawn_time >= self.lifetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "x": self.position.x,
            "y": self.position.y,
            "typeId": self.food_type.id,
            "spawnTime": self.spawn_time,
            "customLifetime": self.custom_lifetime,
            "isCorpse": self.is_corpse,
            "corpseColor": self.corpse_color,
        }


def place_food(
    foods: Iterable[Food],
    snake_segments: Iterable[Position],
    grid_size: int,
    now: int,
    avoid: Iterable[Position] = (),
) -> Food:
    """Spawn a food of a random type on a free cell.

    Cells holding food, snake segments or anything in ``avoid`` are rejected.
    After :data:`constants.PLACEMENT_ATTEMPTS` rejections the last sampled
    cell is used even if it is occupied.
    """

    occupied = {food.position.cell() for food in foods}
    occupied.update(snake_segments)
    occupied.update(avoid)
    candidate = random_cell(grid_size)
    for _ in range(constants.PLACEMENT_ATTEMPTS):
        candidate = random_cell(grid_size)
        if candidate not in occupied:
            break
    return Food(id=Food.next_id(), position=candidate, food_type=pick_food_type(), spawn_time=now)
