"""Database models for the scavenger hunt.

Rows reference each other by id only. There are no ORM relationships and no
database cascades: deleting a parent is always explicit engine work.
"""

import datetime as dt
import enum

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class GameStatus(enum.StrEnum):
    SETUP = "setup"
    ACTIVE = "active"
    ENDED = "ended"


class Sequence(SQLModel, table=True):
    """Monotonic id counter, one row per entity kind."""

    __tablename__ = "id_sequence"

    kind: str = Field(primary_key=True)
    value: int = 0


class Game(SQLModel, table=True):
    id: int = Field(primary_key=True)
    code: str = Field(unique=True, index=True)
    name: str
    status: GameStatus = GameStatus.SETUP
    created_at: dt.datetime
    started_at: dt.datetime | None = None
    ended_at: dt.datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == GameStatus.ACTIVE


class Checkpoint(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("game_id", "tag_code", name="uq_checkpoint_tag"),
        UniqueConstraint("game_id", "order_index", name="uq_checkpoint_order"),
    )

    id: int = Field(primary_key=True)
    game_id: int = Field(index=True)
    tag_code: str = Field(index=True)
    order_index: int
    location_name: str | None = None
    clue: str | None = None
    is_active: bool = False
    # Stored as reported by the organizer's device, never validated
    lat: float | None = None
    lon: float | None = None
    accuracy_m: int | None = None
    activated_by: str | None = None
    activated_at: dt.datetime | None = None
    created_at: dt.datetime


class Player(SQLModel, table=True):
    id: str = Field(primary_key=True)
    display_name: str
    team: str | None = None
    created_at: dt.datetime


class PlayerGame(SQLModel, table=True):
    """A player's membership in one game and their claim cursor."""

    __table_args__ = (
        UniqueConstraint("player_id", "game_id", name="uq_player_game"),
    )

    id: int = Field(primary_key=True)
    player_id: str = Field(index=True)
    game_id: int = Field(index=True)
    joined_at: dt.datetime
    checkpoints_scanned: int = 0
    last_scan_at: dt.datetime | None = None
    next_required: int = 1


class Progress(SQLModel, table=True):
    """One claimed checkpoint. A player claims a checkpoint at most once."""

    game_id: int = Field(primary_key=True)
    player_id: str = Field(primary_key=True, index=True)
    checkpoint_id: int = Field(primary_key=True, index=True)
    order_index: int
    timestamp: dt.datetime
    client_token: str | None = None
