"""
Custom exceptions raised by the domain, persistence and service layers.

All of them derive from GameError, so callers (API layer / tests) can catch the whole family at once,
while the specific types tell *why* an action got rejected.
"""

from __future__ import annotations

from enum import StrEnum


class IllegalMoveReason(StrEnum):
    """Sub-reasons for a move that fails the rules of chess."""

    NO_PIECE_OF_YOURS = "no piece of yours on the origin square"
    INVALID_DESTINATION = "piece cannot move to the destination square"
    BLOCKED_PATH = "path is blocked"
    LEAVES_KING_IN_CHECK = "move leaves your king in check"
    INVALID_CASTLING = "castling not allowed"
    INVALID_EN_PASSANT = "en passant not allowed"
    MISSING_PROMOTION = "pawn reaching the last rank must choose a promotion piece"
    SPURIOUS_PROMOTION = "promotion choice given for a move that does not promote"


# Malformed input: rejected in every game mode, never counted as an illegal move attempt.
INVALID_INPUT_REASONS: frozenset[IllegalMoveReason] = frozenset(
    {IllegalMoveReason.MISSING_PROMOTION, IllegalMoveReason.SPURIOUS_PROMOTION}
)


class GameError(Exception):
    """Base class of every error the referee surfaces to a caller."""


# --- INPUT ERRORS ---
class InvalidCoordinatesError(GameError):
    """A square outside of the 0-7 range was supplied."""


class InvalidFENError(GameError):
    """String cannot be interpreted as FEN."""


class InvalidRequestError(GameError):
    """Request model failed validation.

    NOTE: deliberately not a ValueError, so pydantic lets it propagate instead of wrapping it in a ValidationError.
    """


# --- WHO IS ASKING ---
class NotAParticipantError(GameError):
    """The caller is not one of the two registered players."""


class NotYourTurnError(GameError):
    """The caller tried to act while it is the opponent's turn."""


# --- LIFECYCLE ---
class GameStateError(GameError):
    """The action does not fit the game's current status."""


class GameNotActiveError(GameStateError):
    """Action requires a game in progress."""


class ClockExpiredError(GameStateError):
    """The mover's time budget is used up. Only a timeout claim can end the game now."""


class NoDrawOfferError(GameStateError):
    """There is no (matching) draw offer to accept, decline or cancel."""


class ChallengeWindowOpenError(GameStateError):
    """The dispute challenge window has not yet elapsed."""


class AlreadySettledError(GameStateError):
    """The game has already been settled."""


class StakeMismatchError(GameError):
    """Joining player did not put up the same stake as the creator."""


# --- RULES ---
class IllegalMoveError(GameError):
    """The move breaks the rules of chess."""

    def __init__(self, reason: IllegalMoveReason, move: str = "") -> None:
        self.reason = reason
        self.move = move
        message = f"Move not allowed: {move} ({reason})" if move else f"Move not allowed ({reason})"
        super().__init__(message)


class DrawConditionNotMetError(GameError):
    """A draw was claimed before the repetition / fifty-move threshold was reached."""


class TimeoutNotYetElapsedError(GameError):
    """Opponent still has time left on the clock."""


# --- PERSISTENCE ---
class RepositoryError(GameError):
    """Record could not be found / stored."""
