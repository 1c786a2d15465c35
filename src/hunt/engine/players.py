"""Player registration and game membership."""

from ..errors import InvalidState, NotFound
from ..logging import get_logger
from ..models import GameStatus, Player, PlayerGame
from ..store import EntityStore
from .games import get_game

logger = get_logger(__name__)

PLAYER_ID_FORMAT = "P{:06d}"


def get_player(store: EntityStore, player_id: str) -> Player:
    player = store.find(Player, player_id)
    if player is None:
        raise NotFound(f"Player {player_id} not found")
    return player


def upsert_player(
    store: EntityStore,
    display_name: str,
    player_id: str | None = None,
    team: str | None = None,
) -> Player:
    """Register a player, or update name and team if the id is known."""
    if player_id is not None:
        player = store.find(Player, player_id)
        if player is not None:
            player = store.update(
                Player, player_id, display_name=display_name, team=team
            )
            logger.debug("player_updated", player_id=player_id)
            return player
    else:
        player_id = PLAYER_ID_FORMAT.format(store.next_id("player"))

    player = store.insert(
        Player(
            id=player_id,
            display_name=display_name,
            team=team,
            created_at=store.timestamp,
        )
    )
    logger.info("player_created", player_id=player_id, team=team)
    return player


def join_game(store: EntityStore, game_code: str, player_id: str) -> PlayerGame:
    """Make a registered player a member of a game.

    Joining twice returns the existing membership untouched.
    """
    game = get_game(store, game_code)
    get_player(store, player_id)
    if game.status == GameStatus.ENDED:
        raise InvalidState(f"Game {game_code} has ended")

    membership = store.find_one(PlayerGame, player_id=player_id, game_id=game.id)
    if membership is not None:
        return membership

    membership = store.insert(
        PlayerGame(
            id=store.next_id("player_game"),
            player_id=player_id,
            game_id=game.id,
            joined_at=store.timestamp,
            checkpoints_scanned=0,
            last_scan_at=None,
            next_required=1,
        )
    )
    logger.info("player_joined", game_code=game_code, player_id=player_id)
    return membership
