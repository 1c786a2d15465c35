"""Claim engine: sequential checkpoint claims and per-player cursors.

A player claims the checkpoints of a game in increasing ``order_index``.
Claiming checkpoint k requires every checkpoint of the game with a smaller
index to be claimed already; indices need not be contiguous. The
membership row (``PlayerGame``) is the player's cursor: it counts claims
and holds ``next_required``, and is only written from this module.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from ..errors import CheckpointInactive, GameNotActive, NotFound, NotMember, OutOfOrder
from ..logging import get_logger
from ..models import Checkpoint, Game, PlayerGame, Progress
from ..store import EntityStore
from .games import get_game

logger = get_logger(__name__)


@dataclass
class ClaimResult:
    progress: Progress
    membership: PlayerGame
    # True when the checkpoint had already been claimed and nothing changed
    replayed: bool = False


def get_membership(store: EntityStore, game: Game, player_id: str) -> PlayerGame:
    membership = store.find_one(PlayerGame, player_id=player_id, game_id=game.id)
    if membership is None:
        raise NotMember(f"Player {player_id} has not joined {game.code}")
    return membership


def _first_missing_predecessor(
    store: EntityStore, checkpoint: Checkpoint, player_id: str
) -> Checkpoint | None:
    claimed = {
        row.checkpoint_id
        for row in store.iterate(
            Progress, game_id=checkpoint.game_id, player_id=player_id
        )
    }
    predecessors = store.iterate(
        Checkpoint,
        lambda c: c.order_index < checkpoint.order_index,
        game_id=checkpoint.game_id,
    )
    for candidate in sorted(predecessors, key=lambda c: c.order_index):
        if candidate.id not in claimed:
            return candidate
    return None


def claim_checkpoint(
    store: EntityStore,
    player_id: str,
    game_code: str,
    tag_code: str,
    client_token: str | None = None,
) -> ClaimResult:
    """Record that a player reached a checkpoint.

    Claiming a checkpoint the player already holds succeeds without writing
    anything, so clients can retry and players can rescan freely.
    """
    game = get_game(store, game_code)
    if not game.is_active:
        raise GameNotActive(f"Game {game_code} is not active")

    checkpoint = store.find_one(Checkpoint, game_id=game.id, tag_code=tag_code)
    if checkpoint is None:
        raise NotFound(f"Tag {tag_code} not found in {game_code}")
    if not checkpoint.is_active:
        raise CheckpointInactive(f"Tag {tag_code} is not active")

    membership = get_membership(store, game, player_id)

    existing = store.find(Progress, (game.id, player_id, checkpoint.id))
    if existing is not None:
        logger.debug(
            "claim_replayed",
            game_code=game_code,
            player_id=player_id,
            tag_code=tag_code,
        )
        return ClaimResult(progress=existing, membership=membership, replayed=True)

    missing = _first_missing_predecessor(store, checkpoint, player_id)
    if missing is not None:
        raise OutOfOrder(
            f"You must claim checkpoint {missing.order_index} first",
            missing_order_index=missing.order_index,
        )

    progress = store.insert(
        Progress(
            game_id=game.id,
            player_id=player_id,
            checkpoint_id=checkpoint.id,
            order_index=checkpoint.order_index,
            timestamp=store.timestamp,
            client_token=client_token,
        )
    )
    membership = store.update(
        PlayerGame,
        membership.id,
        checkpoints_scanned=membership.checkpoints_scanned + 1,
        last_scan_at=store.timestamp,
        next_required=max(membership.next_required, checkpoint.order_index + 1),
    )
    logger.info(
        "checkpoint_claimed",
        game_code=game_code,
        player_id=player_id,
        tag_code=tag_code,
        order_index=checkpoint.order_index,
        checkpoints_scanned=membership.checkpoints_scanned,
    )
    return ClaimResult(progress=progress, membership=membership)


def resync_membership(store: EntityStore, membership: PlayerGame) -> PlayerGame:
    """Recount claims after cleanup removed progress rows.

    ``next_required`` is left alone; it never moves backwards.
    """
    scanned = store.count(
        Progress, game_id=membership.game_id, player_id=membership.player_id
    )
    if scanned == membership.checkpoints_scanned:
        return membership
    return store.update(PlayerGame, membership.id, checkpoints_scanned=scanned)


def remove_progress(store: EntityStore, rows: Iterable[Progress]) -> int:
    """Delete claim rows and recount the cursors they belonged to."""
    rows = list(rows)
    owners = {(row.game_id, row.player_id) for row in rows}
    for row in rows:
        store.delete_row(row)
    for game_id, player_id in owners:
        membership = store.find_one(PlayerGame, player_id=player_id, game_id=game_id)
        if membership is not None:
            resync_membership(store, membership)
    return len(rows)
