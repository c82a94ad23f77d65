from __future__ import annotations

from arena_server import constants
from arena_server.effects import FreezeEffect, GhostEffect, SpeedEffect
from arena_server.player import Player
from arena_server.utils import Direction, Position

from conftest import cells, place


def make_player() -> Player:
    player = Player(id="p1", name="Ada", color="#22c55e", is_alive=True)
    return place(player, cells((5, 5), (4, 5)))


def test_reversal_is_ignored():
    player = make_player()
    player.steer(Direction.LEFT, now=0)
    assert player.pending_direction is Direction.RIGHT
    assert player.commit_direction() is Direction.RIGHT


def test_turn_is_applied_on_commit():
    player = make_player()
    player.steer(Direction.UP, now=0)
    assert player.direction is Direction.RIGHT
    assert player.commit_direction() is Direction.UP


def test_two_quick_turns_cannot_reverse_within_a_tick():
    player = make_player()
    player.steer(Direction.UP, now=0)
    player.steer(Direction.LEFT, now=10)
    # LEFT is checked against the committed heading, so it is dropped
    assert player.commit_direction() is Direction.UP


def test_frozen_player_ignores_input():
    player = make_player()
    player.add_effect(FreezeEffect(remaining_ms=1_000))
    player.steer(Direction.DOWN, now=0)
    assert player.pending_direction is Direction.RIGHT


def test_double_tap_triggers_dash_with_cooldown():
    player = make_player()
    assert not player.steer(Direction.RIGHT, now=1_000)
    assert player.steer(Direction.RIGHT, now=1_100)
    assert player.speed == constants.DASH_SPEED_MULTIPLIER
    assert not player.steer(Direction.RIGHT, now=1_200)


def test_slow_double_tap_does_not_dash():
    player = make_player()
    player.steer(Direction.UP, now=0)
    assert not player.steer(Direction.UP, now=constants.DASH_INPUT_WINDOW_MS + 1)


def test_speed_is_strongest_active_multiplier():
    player = make_player()
    player.add_effect(SpeedEffect(remaining_ms=500, multiplier=1.5))
    player.add_effect(SpeedEffect(remaining_ms=2_000, multiplier=2.0))
    assert player.speed == 2.0
    player.decay_effects(1_000)
    assert player.speed == 2.0
    player.decay_effects(1_000)
    assert player.speed == constants.BASE_SPEED_FACTOR
    assert player.effects == []


def test_effects_accumulate_and_decay_independently():
    player = make_player()
    player.add_effect(GhostEffect(remaining_ms=300))
    player.add_effect(GhostEffect(remaining_ms=600))
    player.decay_effects(250)
    assert [effect.remaining_ms for effect in player.effects] == [50, 350]
    player.decay_effects(250)
    assert [effect.remaining_ms for effect in player.effects] == [100]
    assert player.is_ghost


def test_reset_for_match_places_two_segments():
    player = make_player()
    player.score = 90
    player.revive_charges = 2
    player.reset_for_match(Position(8, 3))
    assert player.snake == cells((8, 3), (7, 3))
    assert player.direction is Direction.RIGHT
    assert player.is_alive and not player.is_ready
    assert player.score == 0 and player.revive_charges == 0


def test_public_record_fields():
    player = make_player()
    record = player.to_dict()
    assert record["name"] == "Ada"
    assert record["snake"] == [{"x": 5, "y": 5}, {"x": 4, "y": 5}]
    assert record["direction"] == "RIGHT"
    assert record["isReady"] is False
    assert record["speed"] == constants.BASE_SPEED_FACTOR
