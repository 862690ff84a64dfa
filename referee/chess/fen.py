"""
Representation of a single position on the board. The part that can be encoded in a FEN string.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from string import ascii_lowercase, digits
from typing import Optional, Self

from referee.chess.board import Board
from referee.chess.castling import CASTLING_ORDER, CastlingDirection
from referee.chess.pieces import FEN_TO_PIECE, Color
from referee.chess.square import BOARD_DIMENSIONS, Square
from referee.core.exceptions import InvalidFENError

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


def castling_from_fen(castle_fen: str) -> dict[CastlingDirection, bool]:
    """parse the part of the FEN string that encodes castling rights"""
    return {
        direction: (direction.value in castle_fen) for direction in CastlingDirection
    }


def castling_to_fen(castling_rights: dict[CastlingDirection, bool]) -> str:
    """create the part of the FEN string that encodes castling rights"""
    castling_chars = "".join(
        [direction.value for direction in CASTLING_ORDER if castling_rights[direction]]
    )
    return castling_chars or "-"


def is_valid_fen(fen: str) -> bool:
    """
    Check if given string follows proper FEN notation.
    """

    # there should be 6 parts to the string
    parts = fen.split(" ")
    if len(parts) != 6:
        return False

    position, color, castling, en_passant, half_move_counter, full_move_counter = parts
    return (
        is_valid_position(position)
        and is_valid_color_code(color)
        and is_valid_castling_rights(castling)
        and is_valid_en_passant(en_passant)
        and is_valid_move_counter(half_move_counter)
        and is_valid_move_counter(full_move_counter)
    )


def is_valid_position(position: str) -> bool:
    """Only check the part of the FEN encoding for the board position: 8 ranks of exactly 8 squares each."""
    num_files, num_ranks = BOARD_DIMENSIONS
    rank_fens = position.split("/")
    return len(rank_fens) == num_ranks and all(
        _rank_width(rank_fen) == num_files for rank_fen in rank_fens
    )


def _rank_width(rank_fen: str) -> Optional[int]:
    """Number of squares described by a single rank, None for unknown characters"""
    width = 0
    for character in rank_fen:
        if character in digits:
            width += int(character)
        elif character.lower() in FEN_TO_PIECE:
            width += 1
        else:
            return None
    return width


def is_valid_color_code(color: str) -> bool:
    return color in {"w", "b"}


def is_valid_castling_rights(castling: str) -> bool:
    """Either '-' or a subset of KQkq, written in that order without repeats"""
    if castling == "-":
        return True
    return bool(castling) and castling_to_fen(castling_from_fen(castling)) == castling


def is_valid_en_passant(en_passant: str) -> bool:
    """Valid en passant square encoding should be a square on the 3rd or 6th rank, or a '-'"""
    return (en_passant == "-") or (
        is_valid_square(en_passant) and en_passant[1] in {"3", "6"}
    )


def is_valid_square(square: str) -> bool:
    """Valid square should be a letter for the file + a number for the rank"""
    num_files, num_ranks = BOARD_DIMENSIONS
    if len(square) != 2:
        return False

    file_char, rank_char = square[0], square[1]
    if file_char not in ascii_lowercase[:num_files]:
        return False

    if rank_char not in digits:
        return False

    return 1 <= int(rank_char) <= num_ranks


def is_valid_move_counter(counter: str) -> bool:
    return counter.isascii() and counter.isdigit()


@dataclass(frozen=True)
class Rights:
    """
    Everything beyond the placement of the pieces that decides which moves are available.

    * castling: per direction, whether king and rook involved are still unmoved.
    * en_passant: the square a pawn skipped over on the previous half-move. Only valid for the very next reply.
    """

    castling: dict[CastlingDirection, bool] = field(
        default_factory=lambda: {direction: True for direction in CastlingDirection}
    )
    en_passant: Optional[Square] = None

    def can_castle(self, direction: CastlingDirection) -> bool:
        return self.castling[direction]

    def revoke(self, *directions: CastlingDirection) -> Rights:
        castling = dict(self.castling)
        for direction in directions:
            castling[direction] = False
        return replace(self, castling=castling)

    def with_en_passant(self, square: Optional[Square]) -> Rights:
        return replace(self, en_passant=square)

    def castling_to_fen(self) -> str:
        return castling_to_fen(self.castling)

    def en_passant_to_fen(self) -> str:
        return self.en_passant.to_algebraic() if self.en_passant is not None else "-"


@dataclass
class PositionState:
    """
    Data that can be constructed from a FEN string.
    ----

    FEN, or Forsyth-Edwards Notation, is a standard notation for describing a particular board position of a chess game.
    The purpose of FEN is to provide all the necessary information to restart a game from a particular position.

    <board position string><active color><castling rights><en passant square><# half move clock><number turns played>

    * The string to describe the board position is described in the Board class
    * The active color is either "w" or "b"
    * Castling rights are denoted as "k" for king-side or "q" for queen-side. Capital letters for the white pieces, small letters for the black pieces.
        In the starting position: KQkq (all rights available). When all rights have been revoked a "-" is used.
    * The en passant square indicates the square a pawn can take on. If not available a "-" is used.
    * The half move clock counts the number of half-moves made since the last pawn move or capture. (Used for the fifty-move rule)
    * The number of turns starts at 1 and increments after every move black makes.

    ex) The standard starting position has a FEN
    rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1
    i.e. it is white to move, all castling options available, no en passant square, no half moves and we are in the first turn.
    """

    board: Board
    color_to_move: Color
    rights: Rights
    half_move_clock: int
    num_turns: int

    @classmethod
    def from_fen(cls, fen: str) -> Self:
        """Parse the FEN into data"""

        # raise an exception if invalid FEN:
        if not is_valid_fen(fen):
            raise InvalidFENError(f"Cannot interpret supplied string as FEN: {fen}")

        # extract the different components. FEN is space separated
        (
            position,
            active_color,
            castling_str,
            en_passant_algebraic,
            half_move_clock,
            num_turns,
        ) = fen.split(" ")

        en_passant_square = (
            Square.from_algebraic(en_passant_algebraic)
            if en_passant_algebraic != "-"
            else None
        )
        return cls(
            board=Board.from_fen(position),
            color_to_move=Color.WHITE if active_color == "w" else Color.BLACK,
            rights=Rights(castling_from_fen(castling_str), en_passant_square),
            half_move_clock=int(half_move_clock),
            num_turns=int(num_turns),
        )

    @classmethod
    def starting_position(cls) -> Self:
        return cls.from_fen(STARTING_FEN)

    def to_fen(self) -> str:
        """reverse operation: write a FEN from the given data"""
        return f"{self.repetition_key()} {self.half_move_clock} {self.num_turns}"

    def repetition_key(self) -> str:
        """
        Canonical key used to count repeated positions.

        Placement + side to move + castling rights + en passant square, i.e. the first four fields of the FEN.
        Same placement with different rights is a different position.
        """
        active_color = "w" if self.color_to_move == Color.WHITE else "b"
        return f"{self.board.to_fen()} {active_color} {self.rights.castling_to_fen()} {self.rights.en_passant_to_fen()}"

    def copy(self) -> PositionState:
        return replace(self, board=self.board.copy())


def repetition_key_from_fen(fen: str) -> str:
    """Drop the two move counters"""
    return " ".join(fen.split(" ")[:4])
