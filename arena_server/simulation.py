"""Fixed interval tick engine advancing one room."""

from __future__ import annotations

from dataclasses import dataclass, field
import time
from typing import Dict, List, Optional, Set

from . import constants
from .collision import DeathMarks, detect_collisions
from .delta import compute_state_delta
from .effects import GhostEffect, InvincibleEffect, apply_food_effect
from .food import Food
from .player import Player
from .protocol import Envelope
from .room import Room
from .utils import Position, wrap


@dataclass
class TickOutcome:
    """What happened during one call to :func:`advance`."""

    events: List[Envelope] = field(default_factory=list)
    delta: Optional[dict] = None
    game_over: bool = False
    winner: Optional[Player] = None


def now_ms() -> int:
    return int(time.time() * 1000)


def advance(room: Room, now: int, interval_ms: int = constants.TICK_INTERVAL_MS) -> TickOutcome:
    """Run one simulation step of ``room`` at wall clock time ``now``."""

    outcome = TickOutcome()
    events = outcome.events
    if not room.players:
        return outcome

    _sweep_expired_food(room, now)
    for player in room.players.values():
        player.decay_effects(interval_ms)

    magnet_meals = _resolve_magnets(room)

    next_heads = _plan_moves(room)
    marks = detect_collisions(room.players.values(), next_heads, room.grid_size)
    revived = _resolve_deaths(room, marks, now, events)
    _commit_moves(room, next_heads, revived, magnet_meals, now, events)

    if not room.alive_players():
        room.started = False
        outcome.game_over = True
        outcome.winner = pick_winner(room)
        events.append(
            Envelope.to_room(room, "gameOver", {"winner": outcome.winner.to_dict() if outcome.winner else None})
        )

    outcome.delta = compute_state_delta(room)
    if outcome.delta is not None:
        events.append(Envelope.to_room(room, "stateDelta", outcome.delta))
    return outcome


def pick_winner(room: Room) -> Optional[Player]:
    """Highest score wins; ties go to the player who joined first."""

    if not room.players:
        return None
    return max(room.players.values(), key=lambda player: player.score)


def _sweep_expired_food(room: Room, now: int) -> None:
    expired = [food for food in room.foods.values() if food.is_expired(now)]
    for food in expired:
        room.remove_food(food.id)
    for food in expired:
        if not food.is_corpse:
            room.spawn_food(now)


def _resolve_magnets(room: Room) -> Dict[str, List[Food]]:
    """Pull food toward magnet holders and take off the grid what reaches a head.

    Each food can be claimed by one player per tick, the first in join
    order. Claimed food is returned per player and eaten when moves are
    committed, so it follows the same growth rule as food eaten by moving.
    """

    claims: Dict[str, Player] = {}
    for player in room.alive_players():
        if not player.has_magnet or not player.snake:
            continue
        head = player.head
        for food in room.foods.values():
            if food.is_corpse or food.id in claims:
                continue
            distance = head.distance_to(food.position)
            if distance >= constants.MAGNET_RADIUS:
                continue
            if distance > constants.MAGNET_MIN_PULL_DISTANCE:
                step = min(constants.MAGNET_STEP, distance)
                food.position = Position(
                    food.position.x + (head.x - food.position.x) / distance * step,
                    food.position.y + (head.y - food.position.y) / distance * step,
                )
            if head.distance_to(food.position) <= constants.MAGNET_CAPTURE_DISTANCE:
                claims[food.id] = player

    meals: Dict[str, List[Food]] = {}
    for food_id, player in claims.items():
        food = room.remove_food(food_id)
        if food is not None:
            meals.setdefault(player.id, []).append(food)
    return meals


def _plan_moves(room: Room) -> Dict[str, Position]:
    next_heads: Dict[str, Position] = {}
    for player in room.alive_players():
        if player.is_frozen or not player.snake:
            continue
        direction = player.commit_direction()
        head = player.head.offset(direction)
        if player.is_ghost:
            head = wrap(head, room.grid_size)
        next_heads[player.id] = head
    return next_heads


def _resolve_deaths(room: Room, marks: DeathMarks, now: int, events: List[Envelope]) -> Set[str]:
    """Announce every marked player's death, then revive or kill them.

    A victim holding a revive charge spends it and stays alive; the move
    commit then shortens it to two cells. Returns the ids of revived players.
    """

    revived: Set[str] = set()
    for victim_id, killer_id in list(marks.items()):
        victim = room.players.get(victim_id)
        if victim is None:
            continue
        killer = room.players.get(killer_id) if killer_id is not None else None

        events.append(Envelope.to_room(room, "playerDied", {"playerId": victim_id, "killerId": killer_id}))
        if killer is not None:
            killer.revive_charges += 1
            events.append(
                Envelope.to_room(
                    room,
                    "killAnnouncement",
                    {
                        "killerId": killer.id,
                        "killerName": killer.name,
                        "victimId": victim.id,
                        "victimName": victim.name,
                        "timestamp": now,
                    },
                )
            )

        if victim.revive_charges > 0:
            victim.revive_charges -= 1
            victim.add_effect(InvincibleEffect(remaining_ms=constants.REVIVE_IMMUNITY_MS))
            victim.add_effect(GhostEffect(remaining_ms=constants.REVIVE_GHOST_MS))
            revived.add(victim_id)
            events.append(Envelope.to_room(room, "effectTriggered", {"playerId": victim_id, "effects": ["revive"]}))
            continue

        victim.is_alive = False
        for segment in victim.snake:
            room.add_food(Food.corpse(segment, victim.color, now))
        victim.snake = []
    return revived


def _commit_moves(
    room: Room,
    next_heads: Dict[str, Position],
    revived: Set[str],
    magnet_meals: Dict[str, List[Food]],
    now: int,
    events: List[Envelope],
) -> None:
    """Move the survivors and feed them.

    A snake that ate this tick, by moving onto food or through its magnet,
    keeps its tail; food effects apply after that growth. A revived snake
    becomes its new head plus its old head. Food claimed by a player who
    died this tick is wasted but still replaced.
    """

    pending = dict(next_heads)
    for player in list(room.players.values()):
        head = pending.pop(player.id, None)
        meals = list(magnet_meals.get(player.id, ()))
        if not player.is_alive:
            for _ in meals:
                room.spawn_food(now, avoid=pending.values())
            continue

        if head is not None:
            if player.id in revived:
                player.snake = [wrap(head, room.grid_size), player.head]
            else:
                player.snake.insert(0, head)
            food = room.food_at(player.head)
            if food is not None:
                room.remove_food(food.id)
                meals.append(food)
            if not meals and player.id not in revived:
                player.snake.pop()

        for food in meals:
            apply_food_effect(player, food.food_type, room, events)
            room.spawn_food(now, avoid=pending.values())
