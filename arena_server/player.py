"""Player entity implementation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Type

from . import constants
from .effects import (
    FREEZE,
    GHOST,
    INVINCIBLE,
    MAGNET,
    Effect,
    SpeedEffect,
)
from .utils import Direction, Position


@dataclass
class Player:
    """Authoritative state of one room member and their snake."""

    id: str
    name: str
    color: str
    is_ready: bool = False
    snake: List[Position] = field(default_factory=list)
    direction: Direction = Direction.RIGHT
    pending_direction: Direction = Direction.RIGHT
    is_alive: bool = False
    score: int = 0
    effects: List[Effect] = field(default_factory=list)
    speed: float = constants.BASE_SPEED_FACTOR
    revive_charges: int = 0
    dash_available_at: int = 0
    last_tap_direction: Optional[Direction] = None
    last_tap_at: int = 0

    @property
    def head(self) -> Position:
        """The first snake segment."""

        return self.snake[0]

    def has_effect(self, kind: str) -> bool:
        return any(effect.kind == kind for effect in self.effects)

    @property
    def is_frozen(self) -> bool:
        return self.has_effect(FREEZE)

    @property
    def is_ghost(self) -> bool:
        return self.has_effect(GHOST)

    @property
    def is_invincible(self) -> bool:
        return self.has_effect(INVINCIBLE)

    @property
    def has_magnet(self) -> bool:
        return self.has_effect(MAGNET)

    def add_effect(self, effect: Effect) -> None:
        """Append ``effect``; same-kind effects accumulate as separate entries."""

        self.effects.append(effect)
        self.recalculate_speed()

    def effects_of(self, effect_type: Type[Effect]) -> List[Effect]:
        return [effect for effect in self.effects if isinstance(effect, effect_type)]

    def recalculate_speed(self) -> None:
        """Derive the speed factor from the strongest active speed effect."""

        multipliers = [effect.multiplier for effect in self.effects_of(SpeedEffect)]
        self.speed = constants.BASE_SPEED_FACTOR * max(multipliers, default=1.0)

    def decay_effects(self, elapsed_ms: int) -> None:
        """Count every effect down by ``elapsed_ms`` and drop the finished ones."""

        for effect in self.effects:
            effect.remaining_ms -= elapsed_ms
        self.effects = [effect for effect in self.effects if effect.remaining_ms > 0]
        self.recalculate_speed()

    def steer(self, direction: Direction, now: int) -> bool:
        """Queue ``direction`` for the next tick.

        Reversals and input while frozen are ignored. A second tap in the
        same direction inside the dash window, while the dash is off cooldown,
        grants a temporary speed boost. Returns ``True`` when a dash fired.
        """

        if not self.is_alive or self.is_frozen or direction is self.direction.opposite:
            return False

        dashed = (
            self.last_tap_direction is direction
            and now - self.last_tap_at <= constants.DASH_INPUT_WINDOW_MS
            and now >= self.dash_available_at
        )
        if dashed:
            self.add_effect(
                SpeedEffect(remaining_ms=constants.DASH_DURATION_MS, multiplier=constants.DASH_SPEED_MULTIPLIER)
            )
            self.dash_available_at = now + constants.DASH_COOLDOWN_MS

        self.pending_direction = direction
        self.last_tap_direction = direction
        self.last_tap_at = now
        return dashed

    def commit_direction(self) -> Direction:
        """Adopt the pending direction unless it would reverse the snake."""

        if self.pending_direction is not self.direction.opposite:
            self.direction = self.pending_direction
        return self.direction

    def spawn(self, head: Position) -> None:
        """Place a two segment snake with its tail one column left of ``head``."""

        self.snake = [head, Position(head.x - 1, head.y)]

    def reset_for_match(self, head: Position) -> None:
        self.spawn(head)
        self.direction = Direction.RIGHT
        self.pending_direction = Direction.RIGHT
        self.is_alive = True
        self.is_ready = False
        self.score = 0
        self.effects = []
        self.speed = constants.BASE_SPEED_FACTOR
        self.revive_charges = 0
        self.dash_available_at = 0
        self.last_tap_direction = None
        self.last_tap_at = 0

    def reset_to_lobby(self) -> None:
        self.is_ready = False
        self.is_alive = False
        self.snake = []
        self.effects = []
        self.speed = constants.BASE_SPEED_FACTOR
        self.revive_charges = 0

    def to_state(self) -> dict:
        """Fields tracked by the state delta encoder."""

        return {
            "id": self.id,
            "snake": [segment.to_dict() for segment in self.snake],
            "direction": self.direction.value,
            "isAlive": self.is_alive,
            "score": self.score,
            "effects": [effect.to_dict() for effect in self.effects],
            "reviveCharges": self.revive_charges,
            "color": self.color,
        }

    def to_dict(self) -> dict:
        """Public record used in membership and start payloads."""

        payload = self.to_state()
        payload.update({"name": self.name, "isReady": self.is_ready, "speed": self.speed})
        return payload
