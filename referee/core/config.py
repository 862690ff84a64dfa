"""
Settings for the referee service.
"""

import os
from dataclasses import dataclass
from typing import Self

from referee.core.shared_types import TimeControl


# Seconds on each player's clock.
TIME_CONTROL_BUDGETS: dict[TimeControl, int] = {
    TimeControl.BLITZ: 60 * 60,
    TimeControl.RAPID: 7 * 60 * 60,
    TimeControl.CLASSICAL: 7 * 24 * 60 * 60,
}


@dataclass(frozen=True)
class Settings:
    """Configuration of the service and persistence layers.

    Defaults are good enough for local development. Use `from_env()` to override them.
    """

    database_url: str = "sqlite:///referee.db"
    """SQLAlchemy connection string"""

    sql_echo: bool = False
    """Log every SQL statement emitted by the engine"""

    challenge_window_seconds: int = 0
    """Time after the end of a game during which the dispute service may contest the result"""

    @classmethod
    def from_env(cls) -> Self:
        """Read REFEREE_* environment variables, falling back to the defaults."""
        defaults = cls()
        return cls(
            database_url=os.environ.get("REFEREE_DATABASE_URL", defaults.database_url),
            sql_echo=os.environ.get("REFEREE_SQL_ECHO", "0").lower() in {"1", "true", "yes"},
            challenge_window_seconds=int(
                os.environ.get(
                    "REFEREE_CHALLENGE_WINDOW_SECONDS", defaults.challenge_window_seconds
                )
            ),
        )
