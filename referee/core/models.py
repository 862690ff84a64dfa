"""
Boundary layer data model(s).

These objects can be used to communicate with the Service.
Hence, the API layer (higher) and domain/db layers (lower) will use model(s) defined here to send to/receive from the Service
(Decouples the data model specific to the DB layer, API layer, or domain layer from the information needed to send across boundaries)
"""

from dataclasses import dataclass, field
from typing import Optional

# Type aliases to make GameModel easier to read
PieceColor = str
PlayerName = str


@dataclass
class GameModel:
    """Transport-safe representation of a refereed chess game used between API, Service, DB, and Game layers."""

    current_fen: str
    history_fen: list[str]
    moves_uci: list[str]
    registered_players: dict[PieceColor, PlayerName]
    status: str
    stake: int = 0
    mode: str = "friendly"
    time_control: str = "classical"
    clocks: dict[PieceColor, float] = field(default_factory=dict)
    clock_started_at: Optional[float] = None
    draw_offered_by: Optional[PieceColor] = None
    winner: Optional[PieceColor] = None
    end_reason: Optional[str] = None
    outcome_overridden: bool = False
    ended_at: Optional[float] = None
    prize_claimed_by: list[PieceColor] = field(default_factory=list)
