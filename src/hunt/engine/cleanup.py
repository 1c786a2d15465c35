"""Cascading deletes for checkpoints, players and single claims."""

from collections.abc import Iterable

from ..errors import NotFound
from ..logging import get_logger
from ..models import Player, PlayerGame, Progress
from ..store import EntityStore
from .checkpoints import get_checkpoint
from .claims import remove_progress
from .games import CascadeReport, get_game
from .players import get_player

logger = get_logger(__name__)


def find_orphan_players(
    store: EntityStore, candidates: Iterable[str] | None = None
) -> list[Player]:
    """Players without a single claim left in any game.

    ``candidates`` narrows the check to the given player ids.
    """
    if candidates is None:
        players = list(store.iterate(Player))
    else:
        players = [p for p in (store.find(Player, pid) for pid in candidates) if p]

    orphans = []
    for player in players:
        if not store.count(Progress, player_id=player.id):
            orphans.append(player)
    return sorted(orphans, key=lambda p: p.id)


def delete_checkpoint(store: EntityStore, checkpoint_id: int) -> CascadeReport:
    checkpoint = get_checkpoint(store, checkpoint_id)
    report = CascadeReport(checkpoints=1)
    report.progress = remove_progress(
        store, store.iterate(Progress, checkpoint_id=checkpoint.id)
    )
    store.delete_row(checkpoint)
    logger.info(
        "checkpoint_deleted",
        checkpoint_id=checkpoint_id,
        tag_code=checkpoint.tag_code,
        progress=report.progress,
    )
    return report


def delete_player(
    store: EntityStore,
    player_id: str,
    game_code: str | None = None,
    remove_player: bool = False,
) -> CascadeReport:
    """Remove a player's claims and memberships.

    Scoped to one game when ``game_code`` is given, otherwise every game.
    The player row itself is only deleted with ``remove_player``, which
    always clears the player's rows in every game first.
    """
    player = get_player(store, player_id)
    criteria: dict = {"player_id": player_id}
    if game_code is not None:
        game = get_game(store, game_code)
        if not remove_player:
            criteria["game_id"] = game.id

    report = CascadeReport()
    for row in list(store.iterate(Progress, **criteria)):
        store.delete_row(row)
        report.progress += 1
    for row in list(store.iterate(PlayerGame, **criteria)):
        store.delete_row(row)
        report.memberships += 1

    if remove_player:
        store.delete_row(player)
        report.players = 1

    logger.info(
        "player_deleted",
        player_id=player_id,
        game_code=game_code,
        progress=report.progress,
        memberships=report.memberships,
        player_removed=remove_player,
    )
    return report


def delete_progress(
    store: EntityStore, game_code: str, player_id: str, checkpoint_id: int
) -> None:
    """Delete exactly one claim."""
    game = get_game(store, game_code)
    row = store.find(Progress, (game.id, player_id, checkpoint_id))
    if row is None:
        raise NotFound(
            f"No claim of checkpoint {checkpoint_id} by {player_id} in {game_code}"
        )
    remove_progress(store, [row])
    logger.info(
        "progress_deleted",
        game_code=game_code,
        player_id=player_id,
        checkpoint_id=checkpoint_id,
    )

