"""Shared test fixtures for the scavenger hunt."""

import datetime as dt
from pathlib import Path

import pytest
from sqlmodel import Session, SQLModel

from hunt.app import create_app, create_db_engine
from hunt.config import Config
from hunt.engine.checkpoints import activate_checkpoint
from hunt.engine.games import create_game, start_game
from hunt.engine.players import join_game, upsert_player
from hunt.procedures import Procedures
from hunt.store import EntityStore

ORGANIZER_FINGERPRINT = "organizer-fingerprint-0001"
PLAYER_FINGERPRINT = "test-fingerprint-abc123"


class FakeClock:
    """Hands out a new minute for every transaction."""

    def __init__(self):
        self.current = dt.datetime(2025, 6, 1, 12, 0, tzinfo=dt.UTC)
        self.issued: list[dt.datetime] = []

    def __call__(self) -> dt.datetime:
        value = self.current
        self.issued.append(value)
        self.current += dt.timedelta(minutes=1)
        return value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db_engine(tmp_path: Path):
    engine = create_db_engine(f"sqlite:///{tmp_path}/test.db")
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine):
    with Session(db_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def store(db_session: Session, clock: FakeClock) -> EntityStore:
    return EntityStore(db_session, clock)


@pytest.fixture
def run(store: EntityStore):
    """Run one engine operation in its own transaction."""

    def _run(operation, *args, **kwargs):
        with store.transaction():
            return operation(store, *args, **kwargs)

    return _run


@pytest.fixture
def procedures(db_engine, clock: FakeClock) -> Procedures:
    return Procedures(db_engine, clock)


@pytest.fixture
def active_game(run) -> str:
    """A started game with tags TAG1..TAG3 and player p1 joined."""
    game = run(create_game, "Campus Hunt")
    for order in (1, 2, 3):
        run(
            activate_checkpoint,
            game.code,
            f"TAG{order}",
            order,
            clue=f"Clue {order}",
        )
    run(start_game, game.code)
    run(upsert_player, "Alice", player_id="p1", team="Red")
    run(join_game, game.code, "p1")
    return game.code


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    return Config(
        database_url=f"sqlite:///{tmp_path}/test.db",
        organizers=frozenset({ORGANIZER_FINGERPRINT}),
    )


@pytest.fixture
def app(test_config: Config):
    app = create_app(test_config)
    SQLModel.metadata.create_all(app.state.engine)
    return app


@pytest.fixture
def client(app):
    from xitzin.testing import test_app

    with test_app(app) as client:
        yield client


@pytest.fixture
def auth_client(client):
    return client.with_certificate(PLAYER_FINGERPRINT)


@pytest.fixture
def organizer_client(client):
    return client.with_certificate(ORGANIZER_FINGERPRINT)
