"""Tests for the checkpoint registry."""

import pytest

from hunt.engine.checkpoints import (
    activate_checkpoint,
    get_checkpoint,
    list_checkpoints,
    register_checkpoint,
    set_checkpoint_active,
)
from hunt.engine.claims import claim_checkpoint
from hunt.engine.games import create_game, start_game
from hunt.engine.players import join_game, upsert_player
from hunt.errors import Conflict, InvalidArgument, NotFound
from hunt.models import Checkpoint, PlayerGame, Progress


@pytest.fixture
def game_code(run) -> str:
    return run(create_game, "Hunt").code


def test_register_checkpoint(run, game_code):
    checkpoint = run(
        register_checkpoint, game_code, "TAG1", "Library", 1, clue="Books"
    )
    assert checkpoint.tag_code == "TAG1"
    assert checkpoint.location_name == "Library"
    assert checkpoint.clue == "Books"
    assert checkpoint.order_index == 1
    assert not checkpoint.is_active
    assert checkpoint.activated_at is None


@pytest.mark.parametrize("order_index", [0, -1])
def test_register_rejects_order_below_one(run, store, game_code, order_index):
    with pytest.raises(InvalidArgument):
        run(register_checkpoint, game_code, "TAG1", "Library", order_index)
    assert store.count(Checkpoint) == 0


def test_register_unknown_game(run):
    with pytest.raises(NotFound):
        run(register_checkpoint, "GAME9999", "TAG1", "Library", 1)


def test_register_duplicate_tag(run, game_code):
    run(register_checkpoint, game_code, "TAG1", "Library", 1)
    with pytest.raises(Conflict, match="TAG1"):
        run(register_checkpoint, game_code, "TAG1", "Gym", 2)


def test_register_duplicate_order(run, game_code):
    run(register_checkpoint, game_code, "TAG1", "Library", 1)
    with pytest.raises(Conflict, match="Order 1"):
        run(register_checkpoint, game_code, "TAG2", "Gym", 1)


def test_same_tag_in_two_games(run, game_code):
    other = run(create_game, "Other").code
    first = run(register_checkpoint, game_code, "TAG1", "Library", 1)
    second = run(register_checkpoint, other, "TAG1", "Library", 1)
    assert first.id != second.id


def test_list_checkpoints_ordered(run, game_code):
    run(register_checkpoint, game_code, "C", "Gym", 3)
    run(register_checkpoint, game_code, "A", "Library", 1)
    run(register_checkpoint, game_code, "B", "Cafe", 2)
    assert [c.tag_code for c in run(list_checkpoints, game_code)] == ["A", "B", "C"]


def test_activate_new_checkpoint(run, game_code, clock):
    checkpoint = run(
        activate_checkpoint,
        game_code,
        "TAG1",
        1,
        clue="Look up",
        lat=51.5,
        lon=-0.12,
        accuracy_m=8,
        activated_by="organizer",
    )
    assert checkpoint.is_active
    assert checkpoint.clue == "Look up"
    assert (checkpoint.lat, checkpoint.lon, checkpoint.accuracy_m) == (51.5, -0.12, 8)
    assert checkpoint.activated_by == "organizer"
    assert checkpoint.activated_at == clock.issued[-1]


def test_activate_replaces_without_merging(run, store, game_code):
    """Reactivation keeps the id but drops every field not supplied again."""
    registered = run(
        register_checkpoint, game_code, "TAG1", "Library", 1, clue="Books"
    )
    activated = run(activate_checkpoint, game_code, "TAG1", 1, clue="New clue")

    assert activated.id == registered.id
    assert activated.is_active
    assert activated.clue == "New clue"
    assert activated.location_name is None
    assert store.count(Checkpoint) == 1


def test_activate_is_idempotent(run, store, game_code):
    run(activate_checkpoint, game_code, "TAG1", 1, clue="Books")
    again = run(activate_checkpoint, game_code, "TAG1", 1, clue="Books")
    assert again.is_active
    assert store.count(Checkpoint) == 1


def test_activate_can_change_order(run, game_code):
    run(activate_checkpoint, game_code, "TAG1", 1)
    moved = run(activate_checkpoint, game_code, "TAG1", 4)
    assert moved.order_index == 4


def test_activate_order_conflict(run, game_code):
    run(register_checkpoint, game_code, "TAG1", "Library", 1)
    with pytest.raises(Conflict):
        run(activate_checkpoint, game_code, "TAG2", 1)


def test_activate_rejects_order_zero(run, game_code):
    with pytest.raises(InvalidArgument):
        run(activate_checkpoint, game_code, "TAG1", 0)


def test_activate_unknown_game(run):
    with pytest.raises(NotFound):
        run(activate_checkpoint, "GAME9999", "TAG1", 1)


def test_activate_moves_tag_between_games(run, store, active_game):
    """A tag reactivated in another game loses the claims of its old game."""
    run(claim_checkpoint, "p1", active_game, "TAG1")
    other = run(create_game, "Other").code
    old_id = run(list_checkpoints, active_game)[0].id

    moved = run(activate_checkpoint, other, "TAG1", 1)

    assert moved.id == old_id
    assert [c.tag_code for c in run(list_checkpoints, other)] == ["TAG1"]
    assert [c.tag_code for c in run(list_checkpoints, active_game)] == ["TAG2", "TAG3"]
    assert store.count(Progress, checkpoint_id=old_id) == 0
    assert store.find_one(PlayerGame, player_id="p1").checkpoints_scanned == 0


def test_set_checkpoint_active(run, game_code):
    checkpoint = run(register_checkpoint, game_code, "TAG1", "Library", 1)
    assert run(set_checkpoint_active, checkpoint.id, True).is_active
    assert not run(set_checkpoint_active, checkpoint.id, False).is_active
    assert not run(get_checkpoint, checkpoint.id).is_active


def test_set_checkpoint_active_missing(run):
    with pytest.raises(NotFound):
        run(set_checkpoint_active, 999, True)


def test_get_checkpoint_missing(run):
    with pytest.raises(NotFound):
        run(get_checkpoint, 999)


def test_registered_checkpoint_can_be_claimed_once_enabled(run, store):
    code = run(create_game, "Hunt").code
    checkpoint = run(register_checkpoint, code, "TAG1", "Library", 1)
    run(start_game, code)
    run(upsert_player, "Alice", player_id="p1")
    run(join_game, code, "p1")
    run(set_checkpoint_active, checkpoint.id, True)

    result = run(claim_checkpoint, "p1", code, "TAG1")
    assert result.membership.next_required == 2


def test_reorder_carries_claims_along(run, store, active_game):
    """Claims stay with a checkpoint that moves to a new order index."""
    run(claim_checkpoint, "p1", active_game, "TAG1")
    checkpoint_id = run(list_checkpoints, active_game)[0].id

    moved = run(activate_checkpoint, active_game, "TAG1", 7, clue="Moved")

    assert moved.id == checkpoint_id
    progress = store.find_one(Progress, checkpoint_id=checkpoint_id)
    assert progress.order_index == 7
    assert store.find_one(PlayerGame, player_id="p1").checkpoints_scanned == 1
