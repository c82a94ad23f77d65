"""Collision helpers for the tick engine."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .player import Player
from .utils import Position


class DeathMarks:
    """Ordered record of players marked for death during one tick.

    A player may be marked several times; the first killer attribution that
    names somebody sticks, later ones are ignored.
    """

    def __init__(self) -> None:
        self._killers: Dict[str, Optional[str]] = {}

    def mark(self, victim: Player, killer: Optional[Player] = None) -> None:
        if victim.is_invincible:
            return
        if self._killers.get(victim.id) is not None:
            return
        self._killers[victim.id] = killer.id if killer is not None else None

    def items(self):
        return self._killers.items()

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._killers

    def __len__(self) -> int:
        return len(self._killers)


def detect_collisions(players: Iterable[Player], next_heads: Dict[str, Position], grid_size: int) -> DeathMarks:
    """Resolve all collisions of one tick at once.

    ``next_heads`` maps every moving player to the cell it is about to enter.
    Bodies are taken from before the move, so the result does not depend on
    the order in which players are examined.
    """

    living: List[Player] = [player for player in players if player.is_alive and player.snake]
    marks = DeathMarks()

    for mover in living:
        head = next_heads.get(mover.id)
        if head is None:
            continue

        if not mover.is_ghost and not head.in_bounds(grid_size):
            marks.mark(mover)

        for other in living:
            body = mover.snake[1:] if other is mover else other.snake
            if head in body:
                marks.mark(mover, None if other is mover else other)
                break

    movers = [player for player in living if player.id in next_heads]
    for index, first in enumerate(movers):
        for second in movers[index + 1:]:
            if next_heads[first.id] != next_heads[second.id]:
                continue
            if len(first.snake) > len(second.snake):
                marks.mark(second, first)
            elif len(second.snake) > len(first.snake):
                marks.mark(first, second)
            else:
                marks.mark(first)
                marks.mark(second)

    return marks
