"""Game lifecycle: setup -> active -> ended, plus game-scoped deletion."""

from dataclasses import dataclass

from ..errors import InvalidState, NotFound
from ..logging import get_logger
from ..models import Checkpoint, Game, GameStatus, Player, PlayerGame, Progress
from ..store import EntityStore

logger = get_logger(__name__)

GAME_CODE_FORMAT = "GAME{:04d}"


@dataclass
class CascadeReport:
    """Rows removed by a cascading delete."""

    games: int = 0
    checkpoints: int = 0
    memberships: int = 0
    progress: int = 0
    players: int = 0


def get_game(store: EntityStore, game_code: str) -> Game:
    game = store.find_one(Game, code=game_code)
    if game is None:
        raise NotFound(f"Game {game_code} not found")
    return game


def list_games(store: EntityStore) -> list[Game]:
    return sorted(store.iterate(Game), key=lambda g: g.id)


def create_game(store: EntityStore, name: str) -> Game:
    """Create a game in setup, with the next ``GAMEnnnn`` code."""
    game_id = store.next_id("game")
    game = store.insert(
        Game(
            id=game_id,
            code=GAME_CODE_FORMAT.format(game_id),
            name=name,
            status=GameStatus.SETUP,
            created_at=store.timestamp,
        )
    )
    logger.info("game_created", game_code=game.code, name=name)
    return game


def reset_game(store: EntityStore, name: str) -> Game:
    """Wipe every game, checkpoint, player and claim, then create a fresh game.

    Code numbering continues from the last game ever created.
    """
    removed = store.wipe(Progress, PlayerGame, Checkpoint, Player, Game)
    logger.info("database_wiped", **removed)
    return create_game(store, name)


def _transition(
    store: EntityStore,
    game_code: str,
    expected: GameStatus,
    target: GameStatus,
    stamp_field: str,
) -> Game:
    game = get_game(store, game_code)
    if game.status != expected:
        raise InvalidState(
            f"Game {game_code} is {game.status}, expected {expected}"
        )
    game = store.update(
        Game, game.id, status=target, **{stamp_field: store.timestamp}
    )
    logger.info("game_status_changed", game_code=game_code, status=str(target))
    return game


def start_game(store: EntityStore, game_code: str) -> Game:
    return _transition(
        store, game_code, GameStatus.SETUP, GameStatus.ACTIVE, "started_at"
    )


def end_game(store: EntityStore, game_code: str) -> Game:
    return _transition(
        store, game_code, GameStatus.ACTIVE, GameStatus.ENDED, "ended_at"
    )


def delete_game(
    store: EntityStore, game_code: str, cascade_orphans: bool = False
) -> CascadeReport:
    """Delete a game with its checkpoints, memberships and claims.

    With ``cascade_orphans``, players who took part in this game and are
    left without a claim anywhere are deleted too, together with their
    memberships of other games.
    """
    from .cleanup import find_orphan_players

    game = get_game(store, game_code)
    report = CascadeReport(games=1)

    progress = list(store.iterate(Progress, game_id=game.id))
    memberships = list(store.iterate(PlayerGame, game_id=game.id))
    affected = {p.player_id for p in progress} | {m.player_id for m in memberships}

    for row in progress:
        store.delete_row(row)
    report.progress = len(progress)
    for row in memberships:
        store.delete_row(row)
    report.memberships = len(memberships)

    checkpoints = list(store.iterate(Checkpoint, game_id=game.id))
    for row in checkpoints:
        store.delete_row(row)
    report.checkpoints = len(checkpoints)
    store.delete_row(game)

    if cascade_orphans:
        for player in find_orphan_players(store, candidates=affected):
            for row in list(store.iterate(PlayerGame, player_id=player.id)):
                store.delete_row(row)
                report.memberships += 1
            store.delete_row(player)
            report.players += 1

    logger.info(
        "game_deleted",
        game_code=game_code,
        checkpoints=report.checkpoints,
        memberships=report.memberships,
        progress=report.progress,
        players=report.players,
    )
    return report
