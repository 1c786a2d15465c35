"""Read-only views: leaderboard and a player's own progress."""

import datetime as dt
from dataclasses import dataclass, field

from ..models import Checkpoint, Player, PlayerGame, Progress
from ..store import EntityStore
from .claims import get_membership
from .games import get_game


@dataclass
class Standing:
    player_id: str
    display_name: str
    team: str | None
    checkpoints_scanned: int
    last_scan_at: dt.datetime | None


@dataclass
class PlayerProgress:
    membership: PlayerGame
    claimed: list[Progress] = field(default_factory=list)
    total_checkpoints: int = 0
    active_checkpoints: int = 0
    next_checkpoint: Checkpoint | None = None

    @property
    def finished(self) -> bool:
        return self.total_checkpoints > 0 and self.next_checkpoint is None


def _rank_key(standing: Standing):
    # Most claims first; ties go to whoever got there earlier
    reached = float("inf")
    if standing.last_scan_at is not None:
        # SQLite hands datetimes back without tzinfo; they are stored as UTC
        last = standing.last_scan_at
        if last.tzinfo is None:
            last = last.replace(tzinfo=dt.UTC)
        reached = last.timestamp()
    return (-standing.checkpoints_scanned, reached, standing.player_id)


def leaderboard(store: EntityStore, game_code: str) -> list[Standing]:
    game = get_game(store, game_code)
    standings = []
    for membership in store.iterate(PlayerGame, game_id=game.id):
        player = store.find(Player, membership.player_id)
        standings.append(
            Standing(
                player_id=membership.player_id,
                display_name=player.display_name if player else membership.player_id,
                team=player.team if player else None,
                checkpoints_scanned=membership.checkpoints_scanned,
                last_scan_at=membership.last_scan_at,
            )
        )
    return sorted(standings, key=_rank_key)


def player_progress(
    store: EntityStore, game_code: str, player_id: str
) -> PlayerProgress:
    game = get_game(store, game_code)
    membership = get_membership(store, game, player_id)

    claimed = sorted(
        store.iterate(Progress, game_id=game.id, player_id=player_id),
        key=lambda p: p.order_index,
    )
    claimed_ids = {p.checkpoint_id for p in claimed}
    checkpoints = sorted(
        store.iterate(Checkpoint, game_id=game.id), key=lambda c: c.order_index
    )
    remaining = [c for c in checkpoints if c.id not in claimed_ids]

    return PlayerProgress(
        membership=membership,
        claimed=claimed,
        total_checkpoints=len(checkpoints),
        active_checkpoints=sum(1 for c in checkpoints if c.is_active),
        next_checkpoint=remaining[0] if remaining else None,
    )
