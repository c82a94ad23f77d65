"""Incremental state encoding between consecutive broadcasts of a room."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from .utils import Position

if TYPE_CHECKING:  # pragma: no cover
    from .food import Food
    from .player import Player
    from .room import Room


@dataclass(frozen=True)
class PlayerSnapshot:
    """Value copy of the player fields clients mirror."""

    id: str
    snake: Tuple[Position, ...]
    direction: str
    is_alive: bool
    score: int
    effects: Tuple[dict, ...]
    revive_charges: int
    color: str

    @classmethod
    def capture(cls, player: "Player") -> "PlayerSnapshot":
        return cls(
            id=player.id,
            snake=tuple(player.snake),
            direction=player.direction.value,
            is_alive=player.is_alive,
            score=player.score,
            effects=tuple(effect.to_dict() for effect in player.effects),
            revive_charges=player.revive_charges,
            color=player.color,
        )


@dataclass(frozen=True)
class FoodSnapshot:
    """Value copy of a food's mutable fields."""

    id: str
    position: Position
    spawn_time: int
    custom_lifetime: Optional[int]
    is_corpse: bool
    corpse_color: Optional[str]

    @classmethod
    def capture(cls, food: "Food") -> "FoodSnapshot":
        return cls(
            id=food.id,
            position=food.position,
            spawn_time=food.spawn_time,
            custom_lifetime=food.custom_lifetime,
            is_corpse=food.is_corpse,
            corpse_color=food.corpse_color,
        )

    def differs_from(self, food: "Food") -> bool:
        return (
            self.position != food.position
            or self.spawn_time != food.spawn_time
            or self.custom_lifetime != food.custom_lifetime
            or self.is_corpse != food.is_corpse
            or self.corpse_color != food.corpse_color
        )


@dataclass
class RoomSnapshot:
    """What the clients of a room were last told."""

    players: Dict[str, PlayerSnapshot] = field(default_factory=dict)
    foods: Dict[str, FoodSnapshot] = field(default_factory=dict)

    def capture(self, room: "Room") -> None:
        """Replace the stored state with copies of the room's current state."""

        self.players = {player.id: PlayerSnapshot.capture(player) for player in room.players.values()}
        self.foods = {food.id: FoodSnapshot.capture(food) for food in room.foods.values()}

    def clear(self) -> None:
        self.players = {}
        self.foods = {}


def derive_movement(previous: Sequence[Position], current: Sequence[Position]) -> Optional[dict]:
    """Describe ``current`` as a slide of ``previous`` if it is one.

    A slide prepends one new head and drops zero or more tail segments.
    Returns ``{"head", "removedTail"}`` or ``None`` when the change has any
    other shape (or there is no change at all).
    """

    if not previous or not current:
        return None
    body = current[1:]
    if len(body) > len(previous) or tuple(body) != tuple(previous[: len(body)]):
        return None
    if tuple(current) == tuple(previous):
        return None
    return {"head": current[0].to_dict(), "removedTail": len(previous) + 1 - len(current)}


def build_player_delta(previous: Optional[PlayerSnapshot], player: "Player") -> Optional[dict]:
    """Return the changed fields of ``player`` or ``None`` when nothing changed."""

    if previous is None:
        return player.to_state()

    current = PlayerSnapshot.capture(player)
    delta: dict = {"id": player.id}
    if current.direction != previous.direction:
        delta["direction"] = current.direction
    if current.is_alive != previous.is_alive:
        delta["isAlive"] = current.is_alive
    if current.score != previous.score:
        delta["score"] = current.score
    if current.revive_charges != previous.revive_charges:
        delta["reviveCharges"] = current.revive_charges
    if current.color != previous.color:
        delta["color"] = current.color
    if current.effects != previous.effects:
        delta["effects"] = [dict(effect) for effect in current.effects]

    movement = derive_movement(previous.snake, current.snake)
    if movement is not None:
        delta["movement"] = movement
    elif current.snake != previous.snake:
        delta["fullSnake"] = [segment.to_dict() for segment in current.snake]

    return delta if len(delta) > 1 else None


def compute_state_delta(room: "Room") -> Optional[dict]:
    """Diff ``room`` against its snapshot, then refresh the snapshot.

    Returns ``None`` when neither players nor food changed; otherwise the
    room's tick counter is advanced and attached to the delta.
    """

    snapshot = room.snapshot

    player_deltas: List[dict] = []
    for player in room.players.values():
        delta = build_player_delta(snapshot.players.get(player.id), player)
        if delta is not None:
            player_deltas.append(delta)
    removed_players = [player_id for player_id in snapshot.players if player_id not in room.players]

    added_foods: List[dict] = []
    updated_foods: List[dict] = []
    for food in room.foods.values():
        previous = snapshot.foods.get(food.id)
        if previous is None:
            added_foods.append(food.to_dict())
        elif previous.differs_from(food):
            record = food.to_dict()
            del record["typeId"]
            updated_foods.append(record)
    removed_foods = [food_id for food_id in snapshot.foods if food_id not in room.foods]

    snapshot.capture(room)

    has_player_changes = bool(player_deltas or removed_players)
    has_food_changes = bool(added_foods or updated_foods or removed_foods)
    if not has_player_changes and not has_food_changes:
        return None

    room.tick += 1
    delta: dict = {"tick": room.tick}
    if has_player_changes:
        delta["players"] = player_deltas
        if removed_players:
            delta["removedPlayers"] = removed_players
    if has_food_changes:
        foods: dict = {}
        if added_foods:
            foods["added"] = added_foods
        if updated_foods:
            foods["updated"] = updated_foods
        if removed_foods:
            foods["removed"] = removed_foods
        delta["foods"] = foods
    return delta
