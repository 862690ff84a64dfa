"""
Defines the types of chess pieces and their signed piece codes.

A square on the board holds a single integer:
* 0 for an empty square
* magnitude 1-6 for pawn / knight / bishop / rook / queen / king
* the sign for the side: positive for White, negative for Black
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Self

EMPTY = 0


class PieceType(IntEnum):
    PAWN = 1
    KNIGHT = 2
    BISHOP = 3
    ROOK = 4
    QUEEN = 5
    KING = 6


class Color(Enum):
    WHITE = 1
    BLACK = -1

    @property
    def opponent(self) -> Color:
        return Color.BLACK if self == Color.WHITE else Color.WHITE

    @property
    def forward(self) -> int:
        """White moves UP the board, black moves DOWN"""
        return self.value


AVAILABLE_COLOR_NAMES = [color.name for color in Color]


FEN_TO_PIECE: dict[str, PieceType] = {
    "p": PieceType.PAWN,
    "n": PieceType.KNIGHT,
    "b": PieceType.BISHOP,
    "r": PieceType.ROOK,
    "q": PieceType.QUEEN,
    "k": PieceType.KING,
}

PIECE_TO_FEN: dict[PieceType, str] = {value: key for key, value in FEN_TO_PIECE.items()}


PROMOTION_OPTIONS: tuple[PieceType, ...] = (
    PieceType.KNIGHT,
    PieceType.BISHOP,
    PieceType.ROOK,
    PieceType.QUEEN,
)


def encode(piece_type: PieceType, color: Color) -> int:
    return int(piece_type) * color.value


def color_of(code: int) -> Optional[Color]:
    if code == EMPTY:
        return None
    return Color.WHITE if code > 0 else Color.BLACK


def type_of(code: int) -> Optional[PieceType]:
    if code == EMPTY:
        return None
    return PieceType(abs(code))


@dataclass(frozen=True)
class Piece:
    """Readable view on a (non-empty) piece code"""

    type: PieceType
    color: Color

    @classmethod
    def from_code(cls, code: int) -> Self:
        piece_type = type_of(code)
        color = color_of(code)
        if piece_type is None or color is None:
            raise ValueError("An empty square does not hold a piece.")
        return cls(piece_type, color)

    @classmethod
    def from_fen(cls, character: str) -> Self:
        # lower case: Black pieces, upper case: White pieces
        color = Color.WHITE if character.isupper() else Color.BLACK
        piece_type = FEN_TO_PIECE[character.lower()]
        return cls(piece_type, color)

    @property
    def code(self) -> int:
        return encode(self.type, self.color)

    def to_fen(self) -> str:
        return (
            PIECE_TO_FEN[self.type].upper()
            if self.color == Color.WHITE
            else PIECE_TO_FEN[self.type]
        )
