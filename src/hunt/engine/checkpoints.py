"""Checkpoint registry: registration, activation and the active flag."""

from ..errors import Conflict, InvalidArgument, NotFound
from ..logging import get_logger
from ..models import Checkpoint, Progress
from ..store import EntityStore
from .claims import remove_progress
from .games import get_game

logger = get_logger(__name__)


def _check_order_index(order_index: int) -> None:
    if order_index < 1:
        raise InvalidArgument(
            f"Order index must be 1 or greater, got {order_index}"
        )


def get_checkpoint(store: EntityStore, checkpoint_id: int) -> Checkpoint:
    checkpoint = store.find(Checkpoint, checkpoint_id)
    if checkpoint is None:
        raise NotFound(f"Checkpoint {checkpoint_id} not found")
    return checkpoint


def list_checkpoints(store: EntityStore, game_code: str) -> list[Checkpoint]:
    game = get_game(store, game_code)
    return sorted(
        store.iterate(Checkpoint, game_id=game.id), key=lambda c: c.order_index
    )


def register_checkpoint(
    store: EntityStore,
    game_code: str,
    tag_code: str,
    location_name: str | None,
    order_index: int,
    clue: str | None = None,
) -> Checkpoint:
    """Add an inactive checkpoint to a game.

    Both the tag code and the order index must be unused within the game.
    """
    _check_order_index(order_index)
    game = get_game(store, game_code)

    for existing in store.iterate(Checkpoint, game_id=game.id):
        if existing.tag_code == tag_code:
            raise Conflict(f"Tag {tag_code} already exists in {game_code}")
        if existing.order_index == order_index:
            raise Conflict(
                f"Order {order_index} is already taken by tag "
                f"{existing.tag_code} in {game_code}"
            )

    checkpoint = store.insert(
        Checkpoint(
            id=store.next_id("checkpoint"),
            game_id=game.id,
            tag_code=tag_code,
            order_index=order_index,
            location_name=location_name,
            clue=clue,
            is_active=False,
            created_at=store.timestamp,
        )
    )
    logger.info(
        "checkpoint_registered",
        game_code=game_code,
        tag_code=tag_code,
        order_index=order_index,
    )
    return checkpoint


def activate_checkpoint(
    store: EntityStore,
    game_code: str,
    tag_code: str,
    order_index: int,
    clue: str | None = None,
    lat: float | None = None,
    lon: float | None = None,
    accuracy_m: int | None = None,
    activated_by: str | None = None,
    location_name: str | None = None,
) -> Checkpoint:
    """Upsert a checkpoint as active by replacing it outright.

    An existing checkpoint with this tag code, in any game, is deleted and
    inserted again under the same id with exactly the attributes given
    here. Nothing from the old row is merged in: callers resupply every
    field they want to keep.

    Claims of the checkpoint in the same game are kept and follow it to a
    new order index. Claims are not re-checked against the new order.
    """
    _check_order_index(order_index)
    game = get_game(store, game_code)

    existing = store.find_one(
        Checkpoint, game_id=game.id, tag_code=tag_code
    ) or store.find_one(Checkpoint, tag_code=tag_code)
    for other in store.iterate(Checkpoint, game_id=game.id, order_index=order_index):
        if existing is None or other.id != existing.id:
            raise Conflict(
                f"Order {order_index} is already taken by tag "
                f"{other.tag_code} in {game_code}"
            )

    if existing is not None:
        checkpoint_id = existing.id
        if existing.game_id != game.id:
            moved = remove_progress(
                store, store.iterate(Progress, checkpoint_id=existing.id)
            )
            logger.info(
                "checkpoint_moved",
                tag_code=tag_code,
                game_code=game_code,
                progress_removed=moved,
            )
        elif existing.order_index != order_index:
            for row in list(store.iterate(Progress, checkpoint_id=existing.id)):
                store.update(
                    Progress,
                    (row.game_id, row.player_id, row.checkpoint_id),
                    order_index=order_index,
                )
        store.delete_row(existing)
    else:
        checkpoint_id = store.next_id("checkpoint")

    checkpoint = store.insert(
        Checkpoint(
            id=checkpoint_id,
            game_id=game.id,
            tag_code=tag_code,
            order_index=order_index,
            location_name=location_name,
            clue=clue,
            is_active=True,
            lat=lat,
            lon=lon,
            accuracy_m=accuracy_m,
            activated_by=activated_by,
            activated_at=store.timestamp,
            created_at=store.timestamp,
        )
    )
    logger.info(
        "checkpoint_activated",
        game_code=game_code,
        tag_code=tag_code,
        order_index=order_index,
        replaced=existing is not None,
        has_location=lat is not None and lon is not None,
        activated_by=activated_by,
    )
    return checkpoint


def set_checkpoint_active(
    store: EntityStore, checkpoint_id: int, active: bool
) -> Checkpoint:
    checkpoint = store.update(Checkpoint, checkpoint_id, is_active=active)
    logger.info(
        "checkpoint_toggled",
        checkpoint_id=checkpoint_id,
        tag_code=checkpoint.tag_code,
        active=active,
    )
    return checkpoint
