"""Named remote procedures over the game-state engine.

Each call runs one engine operation inside one store transaction and comes
back as a ``Result``: either a value or an error code with a message for the
caller. Engine errors roll the transaction back and never escape ``call``.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from .engine import checkpoints, claims, cleanup, games, players, standings
from .errors import HuntError
from .logging import get_logger
from .store import Clock, EntityStore, utcnow

logger = get_logger(__name__)

PROCEDURES: dict[str, Callable[..., Any]] = {
    "create_game": games.create_game,
    "reset_game": games.reset_game,
    "get_game": games.get_game,
    "list_games": games.list_games,
    "start_game": games.start_game,
    "end_game": games.end_game,
    "delete_game": games.delete_game,
    "register_checkpoint": checkpoints.register_checkpoint,
    "activate_checkpoint": checkpoints.activate_checkpoint,
    "set_checkpoint_active": checkpoints.set_checkpoint_active,
    "list_checkpoints": checkpoints.list_checkpoints,
    "delete_checkpoint": cleanup.delete_checkpoint,
    "upsert_player": players.upsert_player,
    "join_game": players.join_game,
    "claim_checkpoint": claims.claim_checkpoint,
    "delete_player": cleanup.delete_player,
    "delete_progress": cleanup.delete_progress,
    "leaderboard": standings.leaderboard,
    "player_progress": standings.player_progress,
}


class UnknownProcedure(LookupError):
    pass


@dataclass(frozen=True)
class Result:
    value: Any = None
    error: str | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None) -> "Result":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str, message: str) -> "Result":
        return cls(error=error, message=message)


class Procedures:
    """Dispatches procedure calls, one session and transaction per call."""

    def __init__(self, engine: Engine, clock: Clock = utcnow):
        self.engine = engine
        self.clock = clock

    def call(self, name: str, /, **kwargs: Any) -> Result:
        procedure = PROCEDURES.get(name)
        if procedure is None:
            raise UnknownProcedure(name)

        with Session(self.engine, expire_on_commit=False) as session:
            store = EntityStore(session, self.clock)
            try:
                with store.transaction():
                    value = procedure(store, **kwargs)
            except HuntError as exc:
                logger.info(
                    "procedure_rejected",
                    procedure=name,
                    error=exc.code,
                    message=exc.message,
                )
                return Result.failure(exc.code, exc.message)
            except SQLAlchemyError:
                logger.exception("procedure_failed", procedure=name)
                return Result.failure(
                    "storage_error", "The game server could not save your request"
                )

        logger.debug("procedure_completed", procedure=name)
        return Result.success(value)
