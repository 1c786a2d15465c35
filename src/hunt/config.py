"""Configuration for the scavenger hunt server."""

import os
from dataclasses import dataclass, field
from pathlib import Path


def _flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes")


@dataclass
class Config:
    """Application configuration."""

    database_url: str = "sqlite:///./hunt.db"
    host: str = "localhost"
    port: int = 1965
    certfile: Path | None = None
    keyfile: Path | None = None
    log_level: str = "INFO"
    log_file: Path | None = None
    json_logs: bool = False
    hash_fingerprints: bool = True
    # Certificate fingerprints allowed to use the /admin routes
    organizers: frozenset[str] = field(default_factory=frozenset)
    # Organizer "new game" wipes everything first (one game at a time)
    single_game: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        certfile = os.getenv("HUNT_CERTFILE")
        keyfile = os.getenv("HUNT_KEYFILE")
        log_file = os.getenv("HUNT_LOG_FILE")
        organizers = os.getenv("HUNT_ORGANIZERS", "")

        return cls(
            database_url=os.getenv("HUNT_DATABASE_URL", cls.database_url),
            host=os.getenv("HUNT_HOST", cls.host),
            port=int(os.getenv("HUNT_PORT", str(cls.port))),
            certfile=Path(certfile) if certfile else None,
            keyfile=Path(keyfile) if keyfile else None,
            log_level=os.getenv("HUNT_LOG_LEVEL", cls.log_level),
            log_file=Path(log_file) if log_file else None,
            json_logs=_flag("HUNT_JSON_LOGS", False),
            hash_fingerprints=_flag("HUNT_HASH_FINGERPRINTS", True),
            organizers=frozenset(
                fp.strip() for fp in organizers.split(",") if fp.strip()
            ),
            single_game=_flag("HUNT_SINGLE_GAME", False),
        )
