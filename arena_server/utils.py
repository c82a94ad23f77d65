"""Grid geometry primitives used by the authoritative game server."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import math
import random
from typing import Iterable, Optional

from . import constants


class Direction(str, Enum):
    """Cardinal heading of a snake."""

    UP = "UP"
    DOWN = "DOWN"
    LEFT = "LEFT"
    RIGHT = "RIGHT"

    @property
    def offset(self) -> tuple[int, int]:
        return _OFFSETS[self]

    @property
    def opposite(self) -> "Direction":
        return _OPPOSITES[self]

    @classmethod
    def parse(cls, raw: object) -> Optional["Direction"]:
        """Return the direction named by ``raw`` or ``None`` if it is unknown."""

        if isinstance(raw, str):
            try:
                return cls(raw.upper())
            except ValueError:
                return None
        return None


_OFFSETS = {
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
}

_OPPOSITES = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}


@dataclass(frozen=True)
class Position:
    """A cell on the grid.

    Snake segments always sit on integer cells. Food may drift to fractional
    coordinates while a magnet pulls it, which is why the coordinates are not
    restricted to ``int``; :meth:`cell` snaps such a position back onto the
    grid.
    """

    x: float
    y: float

    def offset(self, direction: Direction) -> "Position":
        """Return the neighbouring cell in ``direction``."""

        dx, dy = direction.offset
        return Position(self.x + dx, self.y + dy)

    def distance_to(self, other: "Position") -> float:
        """Return the Euclidean distance between this position and ``other``."""

        return math.hypot(self.x - other.x, self.y - other.y)

    def cell(self) -> "Position":
        """Return the nearest integer cell, rounding halves up."""

        return Position(math.floor(self.x + 0.5), math.floor(self.y + 0.5))

    def in_bounds(self, grid_size: int) -> bool:
        return 0 <= self.x < grid_size and 0 <= self.y < grid_size

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, payload: dict) -> "Position":
        return cls(payload["x"], payload["y"])


def wrap(position: Position, grid_size: int) -> Position:
    """Wrap ``position`` onto the opposite edge when it left the grid."""

    x, y = position.x, position.y
    if x < 0:
        x = grid_size - 1
    elif x >= grid_size:
        x = 0
    if y < 0:
        y = grid_size - 1
    elif y >= grid_size:
        y = 0
    return Position(x, y)


def random_cell(grid_size: int, min_x: int = 0) -> Position:
    """Return a uniformly random integer cell with ``x >= min_x``."""

    return Position(random.randrange(min_x, grid_size), random.randrange(grid_size))


def place_non_overlapping(
    grid_size: int,
    existing: Iterable[Position],
    min_separation: int = constants.SPAWN_SEPARATION,
    min_x: int = 1,
) -> Position:
    """Pick a cell keeping a Chebyshev gap of ``min_separation`` to ``existing``.

    The search is bounded by :data:`constants.PLACEMENT_ATTEMPTS`; when every
    attempt is rejected the last candidate is returned anyway so a crowded
    grid never stalls the caller.
    """

    taken = list(existing)
    min_x = min(min_x, grid_size - 1)
    candidate = random_cell(grid_size, min_x)
    for _ in range(constants.PLACEMENT_ATTEMPTS):
        candidate = random_cell(grid_size, min_x)
        too_close = any(
            abs(pos.x - candidate.x) < min_separation and abs(pos.y - candidate.y) < min_separation
            for pos in taken
        )
        if not too_close:
            break
    return candidate
