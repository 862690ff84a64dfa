"""Requests and Response models"""

from string import ascii_letters, digits
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from referee.core.exceptions import InvalidRequestError
from referee.core.shared_types import (
    Color,
    EndReason,
    GameMode,
    PieceType,
    Status,
    TimeControl,
)

PieceColor = str
PlayerName = str


# --- REQUEST MODELS ---
class CreateGameRequest(BaseModel):
    player_name: str
    color: Color = Color.WHITE
    stake: int = 0
    mode: GameMode = GameMode.FRIENDLY
    time_control: TimeControl = TimeControl.CLASSICAL
    starting_fen: Optional[str] = None

    @field_validator("starting_fen")
    @classmethod
    def validate_starting_fen(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value

        parts = value.strip().split(" ")
        if len(parts) != 6:
            raise InvalidRequestError(
                "FEN string must contain 6 space-separated parts."
            )
        return value.strip()

    @field_validator("stake")
    @classmethod
    def validate_stake(cls, value: int) -> int:
        if value < 0:
            raise InvalidRequestError(f"Stake cannot be negative: {value}")
        return value


class JoinGameRequest(BaseModel):
    game_id: UUID
    player_name: str
    stake: int = 0


class PlayerActionRequest(BaseModel):
    """resign / draw offers and claims / timeout claim / prize claim / legal moves: who does what in which game"""

    game_id: UUID
    player_name: str


class MoveRequest(BaseModel):
    game_id: UUID
    player_name: str
    from_square: str
    to_square: str
    promote_to: Optional[PieceType] = None

    @field_validator("from_square", "to_square")
    @classmethod
    def validate_square(cls, value: str) -> str:
        """File letter + rank digit. Whether the square is on the board is up to the chess layer."""
        if len(value) != 2 or not (value[0] in ascii_letters and value[1] in digits):
            raise InvalidRequestError(
                f"Cannot interpret {value!r} as a valid square name."
            )
        return value.lower()


class OverrideOutcomeRequest(BaseModel):
    """Dispute verdict: name of the player that should be recorded as winner, None for a draw."""

    game_id: UUID
    winner: Optional[PlayerName] = None


class GetGameRequest(BaseModel):
    game_id: UUID


class DeleteGameRequest(BaseModel):
    game_id: UUID


# --- RESPONSE MODELS ---
class GameResponse(BaseModel):
    game_id: UUID
    players: dict[PieceColor, PlayerName]
    fen_state: str
    starting_state: str
    move_history: list[str]
    status: Status
    mode: GameMode
    time_control: TimeControl
    stake: int
    clocks: dict[PieceColor, float]
    draw_offered_by: Optional[PieceColor] = None
    winner: Optional[PlayerName] = None
    end_reason: Optional[EndReason] = None
    outcome_overridden: bool = False
    half_moves_since_progress: int = 0
    max_repetitions: int = 1


class LegalMovesResponse(BaseModel):
    game_id: UUID
    player_name: str
    color: Color
    legal_moves: list[str]


class BoardResponse(BaseModel):
    """Immutable snapshot of the board for rendering: grid[rank][file], signed piece codes (0 = empty)."""

    game_id: UUID
    grid: tuple[tuple[int, ...], ...]


class PrizeResponse(BaseModel):
    game_id: UUID
    player_name: PlayerName
    amount: int
