"""Status effects and the rules for applying eaten food to a player."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import random
from typing import TYPE_CHECKING, ClassVar, FrozenSet, List

from . import constants
from .food import FOOD_TYPES, FoodType
from .protocol import Envelope
from .utils import Direction, place_non_overlapping

if TYPE_CHECKING:  # pragma: no cover
    from .player import Player
    from .room import Room


FREEZE = "freeze"
SPEED = "speed"
GHOST = "ghost"
INVINCIBLE = "invincible"
MAGNET = "magnet"
SHRINK = "shrink"
TELEPORT = "teleport"
REVIVE = "revive"
RANDOM = "random"
DASH = "dash"


@dataclass
class Effect:
    """A timed status on a player.

    Each subclass is one variant of a closed union and carries only the
    fields its kind needs. ``remaining_ms`` counts down by the tick interval.
    """

    remaining_ms: int
    kind: ClassVar[str] = ""

    def to_dict(self) -> dict:
        return {"type": self.kind, "duration": self.remaining_ms}


@dataclass
class FreezeEffect(Effect):
    kind: ClassVar[str] = FREEZE


@dataclass
class SpeedEffect(Effect):
    multiplier: float = 1.0
    kind: ClassVar[str] = SPEED

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["speedMultiplier"] = self.multiplier
        return payload


@dataclass
class GhostEffect(Effect):
    kind: ClassVar[str] = GHOST


@dataclass
class InvincibleEffect(Effect):
    kind: ClassVar[str] = INVINCIBLE


@dataclass
class MagnetEffect(Effect):
    kind: ClassVar[str] = MAGNET


_TIMED_EFFECTS = {
    FREEZE: FreezeEffect,
    GHOST: GhostEffect,
    INVINCIBLE: InvincibleEffect,
    MAGNET: MagnetEffect,
}


def apply_food_effect(
    player: "Player",
    food_type: FoodType,
    room: "Room",
    events: List[Envelope],
    emit_event: bool = True,
    award_score: bool = True,
    _visited: FrozenSet[str] = frozenset(),
) -> List[str]:
    """Apply ``food_type`` to ``player`` and return the triggered effect names.

    Growth from NORMAL food is not handled here: the tick keeps the tail of a
    snake that ate this tick, which is the only growth mechanism.
    """

    triggered: List[str] = []
    if award_score:
        player.score += food_type.score
    if emit_event:
        events.append(
            Envelope.to_room(room, "foodConsumed", {"playerId": player.id, "foodTypeId": food_type.id})
        )

    effect = food_type.effect
    if effect is None:
        return triggered

    if effect in _TIMED_EFFECTS:
        player.add_effect(_TIMED_EFFECTS[effect](remaining_ms=food_type.duration))
        triggered.append(effect)
    elif effect == SPEED:
        player.add_effect(SpeedEffect(remaining_ms=food_type.duration, multiplier=food_type.magnitude))
        triggered.append(effect)
    elif effect == SHRINK:
        _shrink(player, int(food_type.magnitude))
        triggered.append(effect)
    elif effect == TELEPORT:
        _teleport(player, room)
        triggered.append(effect)
    elif effect == REVIVE:
        player.revive_charges += 1
        triggered.append(effect)
    elif effect == RANDOM:
        visited = _visited | {RANDOM}
        choices = [
            t for t in FOOD_TYPES.values()
            if t.effect is not None and t.effect != RANDOM and t.effect not in visited
        ]
        if choices:
            nested = random.choice(choices)
            triggered.extend(
                apply_food_effect(
                    player, nested, room, events,
                    emit_event=False, award_score=False, _visited=visited | {nested.effect},
                )
            )
    else:
        logging.warning("Food type %s has unknown effect %r", food_type.key, effect)

    if emit_event and triggered:
        events.append(
            Envelope.to_room(room, "effectTriggered", {"playerId": player.id, "effects": list(triggered)})
        )
    return triggered


def _shrink(player: "Player", amount: int) -> None:
    removable = min(amount, len(player.snake) - constants.MIN_SNAKE_LENGTH)
    if removable > 0:
        del player.snake[-removable:]


def _teleport(player: "Player", room: "Room") -> None:
    occupied = list(room.snake_segments())
    head = place_non_overlapping(room.grid_size, occupied)
    player.spawn(head)
    player.direction = Direction.RIGHT
    player.pending_direction = Direction.RIGHT
