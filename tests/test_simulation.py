from __future__ import annotations

from arena_server import food
from arena_server.effects import FreezeEffect, GhostEffect, MagnetEffect
from arena_server.food import Food
from arena_server.simulation import advance, pick_winner
from arena_server.utils import Direction, Position

from conftest import cells, make_room, place

NOW = 100_000


def started(room):
    room.snapshot.capture(room)
    return room


def put_food(room, x, y, food_type=food.NORMAL, spawn_time=NOW):
    return room.add_food(Food(Food.next_id(), Position(x, y), food_type, spawn_time))


def events_named(outcome, name):
    return [event for event in outcome.events if event.event == name]


def test_two_players_one_eats_and_grows():
    room = make_room(players=2)
    alice = place(room.players["p1"], cells((5, 5), (4, 5)))
    bob = place(room.players["p2"], cells((10, 10), (9, 10)))
    meal = put_food(room, 6, 5)
    started(room)

    outcome = advance(room, NOW)

    assert alice.snake == cells((6, 5), (5, 5), (4, 5))
    assert alice.score == 10
    assert bob.snake == cells((11, 10), (10, 10))
    assert meal.id not in room.foods
    assert len(room.foods) == 1
    (replacement,) = room.foods.values()
    assert replacement.position not in set(room.snake_segments())

    assert [event.payload for event in events_named(outcome, "foodConsumed")] == [
        {"playerId": "p1", "foodTypeId": 1}
    ]
    delta = outcome.delta
    assert delta["tick"] == 1
    by_id = {record["id"]: record for record in delta["players"]}
    assert by_id["p1"]["movement"] == {"head": {"x": 6, "y": 5}, "removedTail": 0}
    assert by_id["p1"]["score"] == 10
    assert by_id["p2"]["movement"] == {"head": {"x": 11, "y": 10}, "removedTail": 1}
    assert delta["foods"]["removed"] == [meal.id]
    assert [record["id"] for record in delta["foods"]["added"]] == [replacement.id]
    assert outcome.events[-1].event == "stateDelta"


def test_adjacent_players_only_the_eater_grows():
    room = make_room(grid_size=10, players=2)
    alice = place(room.players["p1"], cells((5, 5), (4, 5)))
    bob = place(room.players["p2"], cells((5, 6), (4, 6)))
    put_food(room, 6, 5)
    started(room)

    outcome = advance(room, NOW)

    assert alice.head == Position(6, 5) and len(alice.snake) == 3
    assert alice.score == 10
    assert bob.head == Position(6, 6) and len(bob.snake) == 2
    assert bob.score == 0
    assert not outcome.game_over


def test_solo_player_hitting_wall_ends_game():
    room = make_room(grid_size=10)
    player = place(room.players["p1"], cells((9, 5), (8, 5)))
    player.score = 30
    started(room)

    outcome = advance(room, NOW)

    assert not player.is_alive
    assert player.snake == []
    assert outcome.game_over
    assert outcome.winner is player
    assert not room.started
    assert events_named(outcome, "playerDied")[0].payload == {"playerId": "p1", "killerId": None}
    assert events_named(outcome, "gameOver")[0].payload["winner"]["id"] == "p1"
    corpses = [item for item in room.foods.values() if item.is_corpse]
    assert {item.position for item in corpses} == set(cells((9, 5), (8, 5)))


def test_corpses_are_not_edible():
    room = make_room(players=2)
    alice = place(room.players["p1"], cells((5, 5), (4, 5)))
    place(room.players["p2"], cells((10, 10), (9, 10)))
    room.add_food(Food.corpse(Position(6, 5), "#3b82f6", NOW))
    started(room)

    advance(room, NOW)

    assert alice.snake == cells((6, 5), (5, 5))
    assert alice.score == 0


def test_killer_gets_revive_charge_and_announcement():
    room = make_room(players=2)
    place(room.players["p1"], cells((5, 5), (4, 5)))
    killer = place(room.players["p2"], cells((6, 4), (6, 5), (6, 6)), Direction.UP)
    started(room)

    outcome = advance(room, NOW)

    assert not room.players["p1"].is_alive
    assert killer.revive_charges == 1
    (announcement,) = events_named(outcome, "killAnnouncement")
    assert announcement.payload["killerId"] == "p2"
    assert announcement.payload["victimName"] == "Player 1"
    assert not outcome.game_over


def test_revive_charge_saves_player_once():
    room = make_room(grid_size=10)
    player = place(room.players["p1"], cells((9, 5), (8, 5), (7, 5)))
    player.revive_charges = 1
    started(room)

    outcome = advance(room, NOW)

    assert player.is_alive
    assert player.revive_charges == 0
    # the revive ghost carries the new head through the wall
    assert player.snake == cells((0, 5), (9, 5))
    assert player.is_invincible and player.is_ghost
    assert [event.event for event in outcome.events][:2] == ["playerDied", "effectTriggered"]
    assert events_named(outcome, "playerDied")[0].payload == {"playerId": "p1", "killerId": None}
    assert events_named(outcome, "effectTriggered")[0].payload == {"playerId": "p1", "effects": ["revive"]}
    assert not outcome.game_over
    record = outcome.delta["players"][0]
    assert record["movement"] == {"head": {"x": 0, "y": 5}, "removedTail": 2}

    advance(room, NOW + 250)
    assert player.snake == cells((1, 5), (0, 5))


def test_revived_player_keeps_moving():
    room = make_room(players=2)
    victim = place(room.players["p1"], cells((5, 5), (4, 5), (3, 5)))
    victim.revive_charges = 1
    place(room.players["p2"], cells((6, 4), (6, 5), (6, 6)), Direction.UP)
    started(room)

    outcome = advance(room, NOW)

    assert victim.is_alive
    assert victim.snake == cells((6, 5), (5, 5))
    assert events_named(outcome, "playerDied")[0].payload == {"playerId": "p1", "killerId": "p2"}
    assert len(events_named(outcome, "killAnnouncement")) == 1


def test_revived_player_eats_food_at_new_head():
    room = make_room(grid_size=10)
    player = place(room.players["p1"], cells((8, 5), (7, 5), (7, 4), (8, 4), (9, 4), (9, 5)), Direction.RIGHT)
    player.revive_charges = 1
    put_food(room, 9, 5, food.NORMAL)
    started(room)

    advance(room, NOW)

    assert player.is_alive
    assert player.score == 10
    assert player.snake == cells((9, 5), (8, 5))


def test_revive_is_transferred_not_created():
    room = make_room(players=2)
    victim = place(room.players["p1"], cells((5, 5), (4, 5)))
    victim.revive_charges = 1
    killer = place(room.players["p2"], cells((6, 4), (6, 5), (6, 6)), Direction.UP)
    started(room)

    advance(room, NOW)

    assert victim.is_alive
    assert victim.revive_charges + killer.revive_charges == 1
    assert killer.revive_charges == 1


def test_shrink_food_eaten_at_length_four_leaves_two():
    room = make_room()
    player = place(room.players["p1"], cells((5, 5), (4, 5), (3, 5), (2, 5)))
    put_food(room, 6, 5, food.SHRINK)
    started(room)

    advance(room, NOW)

    assert player.snake == cells((6, 5), (5, 5))
    assert player.score == food.SHRINK.score


def test_frozen_snake_holds_position():
    room = make_room()
    player = place(room.players["p1"], cells((5, 5), (4, 5)))
    player.add_effect(FreezeEffect(remaining_ms=1_000))
    started(room)

    advance(room, NOW)

    assert player.snake == cells((5, 5), (4, 5))


def test_freeze_expires_after_enough_ticks():
    room = make_room()
    player = place(room.players["p1"], cells((5, 5), (4, 5)))
    player.add_effect(FreezeEffect(remaining_ms=500))
    started(room)

    advance(room, NOW, interval_ms=250)
    assert player.head == Position(5, 5)
    advance(room, NOW + 250, interval_ms=250)
    assert player.head == Position(6, 5)


def test_tick_counter_increases_monotonically():
    room = make_room()
    place(room.players["p1"], cells((1, 5), (0, 5)))
    started(room)

    ticks = []
    for step in range(5):
        outcome = advance(room, NOW + step * 250)
        ticks.append(outcome.delta["tick"])
    assert ticks == [1, 2, 3, 4, 5]


def test_expired_food_is_replaced():
    room = make_room()
    place(room.players["p1"], cells((1, 1), (0, 1)))
    stale = put_food(room, 15, 15, food.FREEZE, spawn_time=0)
    started(room)

    outcome = advance(room, NOW)

    assert stale.id not in room.foods
    assert len(room.foods) == 1
    assert outcome.delta["foods"]["removed"] == [stale.id]


def test_expired_corpse_is_not_replaced():
    room = make_room()
    place(room.players["p1"], cells((1, 1), (0, 1)))
    room.add_food(Food.corpse(Position(15, 15), "#22c55e", 0))
    started(room)

    advance(room, NOW)

    assert room.foods == {}


def test_magnet_pulls_nearby_food():
    room = make_room()
    player = place(room.players["p1"], cells((5, 5), (4, 5)))
    player.add_effect(MagnetEffect(remaining_ms=5_000))
    pulled = put_food(room, 5, 8)
    started(room)

    outcome = advance(room, NOW)

    assert pulled.position == Position(5, 7.5)
    assert outcome.delta["foods"]["updated"][0]["y"] == 7.5


def test_magnet_captures_food_next_to_head(monkeypatch):
    monkeypatch.setattr(food, "random_cell", lambda grid_size, min_x=0: Position(15, 15))
    room = make_room()
    player = place(room.players["p1"], cells((5, 5), (4, 5)))
    player.add_effect(MagnetEffect(remaining_ms=5_000))
    caught = put_food(room, 5, 5.3)
    started(room)

    advance(room, NOW)

    assert caught.id not in room.foods
    assert player.score == 10
    assert len(player.snake) == 3


def test_magnet_shrink_matches_eating_by_moving(monkeypatch):
    monkeypatch.setattr(food, "random_cell", lambda grid_size, min_x=0: Position(15, 15))
    room = make_room()
    player = place(room.players["p1"], cells((5, 5), (4, 5), (3, 5), (2, 5)))
    player.add_effect(MagnetEffect(remaining_ms=5_000))
    put_food(room, 5, 5.3, food.SHRINK)
    started(room)

    advance(room, NOW)

    assert player.snake == cells((6, 5), (5, 5))
    assert player.score == food.SHRINK.score


def test_magnet_teleport_leaves_two_segments(monkeypatch):
    monkeypatch.setattr(food, "random_cell", lambda grid_size, min_x=0: Position(15, 15))
    room = make_room()
    player = place(room.players["p1"], cells((5, 9), (4, 9), (3, 9)))
    player.add_effect(MagnetEffect(remaining_ms=5_000))
    put_food(room, 5, 9.3, food.TELEPORT)
    started(room)

    advance(room, NOW)

    head = player.head
    assert player.snake == [head, Position(head.x - 1, head.y)]
    assert player.direction is Direction.RIGHT


def test_magnet_food_goes_to_one_player_only(monkeypatch):
    monkeypatch.setattr(food, "random_cell", lambda grid_size, min_x=0: Position(15, 15))
    room = make_room(players=2)
    first = place(room.players["p1"], cells((5, 5), (4, 5)))
    second = place(room.players["p2"], cells((5, 6), (4, 6)))
    for player in (first, second):
        player.add_effect(MagnetEffect(remaining_ms=5_000))
    shared = put_food(room, 5, 5.5)
    started(room)

    outcome = advance(room, NOW)

    assert shared.id not in room.foods
    assert first.score == 10 and len(first.snake) == 3
    assert second.score == 0 and len(second.snake) == 2
    assert len(room.foods) == 1
    assert len(events_named(outcome, "foodConsumed")) == 1


def test_ghost_wraps_through_wall():
    room = make_room(grid_size=10)
    player = place(room.players["p1"], cells((9, 5), (8, 5)))
    player.add_effect(GhostEffect(remaining_ms=1_000))
    started(room)

    outcome = advance(room, NOW)

    assert player.is_alive
    assert player.snake == cells((0, 5), (9, 5))
    assert events_named(outcome, "playerDied") == []


def test_head_to_head_longer_snake_survives():
    room = make_room(players=2)
    winner = place(room.players["p1"], cells((4, 5), (3, 5), (2, 5)))
    loser = place(room.players["p2"], cells((6, 5), (7, 5)), Direction.LEFT)
    started(room)

    outcome = advance(room, NOW)

    assert winner.is_alive
    assert winner.snake == cells((5, 5), (4, 5), (3, 5))
    assert winner.revive_charges == 1
    assert not loser.is_alive and loser.snake == []
    assert events_named(outcome, "playerDied")[0].payload == {"playerId": "p2", "killerId": "p1"}
    assert not outcome.game_over


def test_pick_winner_prefers_first_joined_on_ties():
    room = make_room(players=3)
    room.players["p2"].score = 40
    room.players["p3"].score = 40
    assert pick_winner(room).id == "p2"
