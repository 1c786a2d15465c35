"""Xitzin application factory for the scavenger hunt."""

from pathlib import Path

from sqlalchemy import Engine
from sqlmodel import SQLModel, create_engine
from xitzin import Xitzin

from .config import Config
from .logging import get_logger
from .procedures import Procedures

logger = get_logger(__name__)


def create_db_engine(database_url: str) -> Engine:
    """Engine whose transactions run with serializable isolation."""
    return create_engine(database_url, isolation_level="SERIALIZABLE")


def create_app(config: Config | None = None) -> Xitzin:
    """Create and configure the Xitzin application."""
    config = config or Config.from_env()

    templates_dir = Path(__file__).parent / "templates"

    app = Xitzin(
        title="Scavenger Hunt",
        version="0.1.0",
        templates_dir=templates_dir,
    )

    engine = create_db_engine(config.database_url)
    app.state.engine = engine
    app.state.config = config
    app.state.procedures = Procedures(engine)

    @app.on_startup
    async def startup():
        """Create the game tables."""
        SQLModel.metadata.create_all(engine)
        logger.debug("database_setup_complete")
        logger.info(
            "startup_complete",
            organizers=len(config.organizers),
            single_game=config.single_game,
        )

    from .routes import admin, home, play

    home.register_routes(app)
    play.register_routes(app)
    admin.register_routes(app)

    return app
