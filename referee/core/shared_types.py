"""
Type definitions used across layers
"""

from enum import StrEnum


class Status(StrEnum):
    CREATED = "created"
    ACTIVE = "active"
    CHECKMATE = "checkmate"
    STALEMATE_DRAW = "stalemate draw"
    AGREED_DRAW = "agreed draw"
    REPETITION_DRAW = "repetition draw"
    FIFTY_MOVE_DRAW = "fifty move draw"
    RESIGNED = "resigned"
    TIMED_OUT = "timed out"
    SETTLED = "settled"


class GameMode(StrEnum):
    """Tournament: an illegal move loses the game. Friendly: an illegal move is simply rejected."""

    TOURNAMENT = "tournament"
    FRIENDLY = "friendly"


class TimeControl(StrEnum):
    """Clock budget tiers: short, medium, long."""

    BLITZ = "blitz"
    RAPID = "rapid"
    CLASSICAL = "classical"


class EndReason(StrEnum):
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    AGREEMENT = "agreement"
    REPETITION = "threefold repetition"
    FIFTY_MOVE_RULE = "fifty move rule"
    RESIGNATION = "resignation"
    ILLEGAL_MOVE = "illegal move"
    TIMEOUT = "timeout"


# --- Color and PieceType DO NOT carry the signed piece codes the board uses. Those live in referee/chess/pieces.py
# --- NOTE Same names on purpose, the imports show which version is used in what part of the code


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"


class PieceType(StrEnum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"
