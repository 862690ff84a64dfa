"""The Game board: an 8x8 grid of signed piece codes (see pieces.py)"""

from __future__ import annotations

from string import digits
from typing import Self

from referee.chess.pieces import (
    EMPTY,
    Color,
    Piece,
    PieceType,
    color_of,
    encode,
)
from referee.chess.square import BOARD_DIMENSIONS, Square
from referee.core.exceptions import InvalidFENError

Grid = tuple[tuple[int, ...], ...]


class Board:
    """
    Position of the pieces.

    grid[rank][file] holds the piece code, rank 0 is White's back rank.
    """

    __slots__ = ("grid",)

    def __init__(self, grid: list[list[int]]) -> None:
        self.grid = grid

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Board) and self.grid == other.grid

    def __repr__(self) -> str:
        return f"Board({self.to_fen()!r})"

    @classmethod
    def empty(cls) -> Self:
        num_files, num_ranks = BOARD_DIMENSIONS
        return cls([[EMPTY] * num_files for _ in range(num_ranks)])

    @classmethod
    def from_fen(cls, fen_str: str) -> Self:
        """Construct a board using a given FEN string.

        That is, we supply the first part of the FEN string that denotes the board position
        ex. standard starting position:
        rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR
        means:
        * black pieces are on the 8th rank, starting with rook on a8, knight on b8, etc.
        * pawns cover 7th rank entirely
        * ranks 6 through 3 have 8 consecutive empty squares
        * rank 2 are the white pawns (capital letters)
        * 1st rank are the white pieces.
        """
        board = cls.empty()
        fen_by_ranks = fen_str.split("/")
        if len(fen_by_ranks) != BOARD_DIMENSIONS[1]:
            raise InvalidFENError(f"Expected 8 ranks in board FEN: {fen_str}")

        for rank_idx, fen_one_rank in enumerate(fen_by_ranks):
            # FEN string is read from top rank (8th) to bottom rank (1st)
            rank = BOARD_DIMENSIONS[1] - 1 - rank_idx
            # ... but the first character is the a-file, so reads in normal direction
            file = 0
            for character in fen_one_rank:
                if character in digits:
                    # A number denotes the amount of empty squares after each other
                    file += int(character)
                    continue
                if file >= BOARD_DIMENSIONS[0]:
                    raise InvalidFENError(f"Rank overflows the board: {fen_one_rank}")
                try:
                    board.grid[rank][file] = Piece.from_fen(character).code
                except KeyError as e:
                    raise InvalidFENError(
                        f"Unknown piece character {character!r} in {fen_str}"
                    ) from e
                file += 1
            if file != BOARD_DIMENSIONS[0]:
                raise InvalidFENError(f"Rank does not cover 8 files: {fen_one_rank}")
        return board

    def to_fen(self) -> str:
        """Ranks are separated by slashes in FEN string."""
        return "/".join(
            self._rank_to_fen(rank) for rank in range(BOARD_DIMENSIONS[1] - 1, -1, -1)
        )

    def _rank_to_fen(self, rank: int) -> str:
        """FEN string of a single rank"""
        fen_characters: list[str] = []
        empty_count = 0
        for code in self.grid[rank]:
            if code != EMPTY:
                if empty_count > 0:
                    fen_characters.append(str(empty_count))
                    empty_count = 0
                fen_characters.append(Piece.from_code(code).to_fen())
            else:
                empty_count += 1

        # if the entire rank is empty, then we still place this number in the string
        if empty_count > 0:
            fen_characters.append(str(empty_count))
        return "".join(fen_characters)

    def copy(self) -> Board:
        """Scratch copy to simulate moves on"""
        return Board([list(rank) for rank in self.grid])

    def to_grid(self) -> Grid:
        """Read-only snapshot (for rendering / external viewers)."""
        return tuple(tuple(rank) for rank in self.grid)

    # --- QUERIES ---
    def piece(self, square: Square) -> int:
        return self.grid[square.rank][square.file]

    def is_empty(self, square: Square) -> bool:
        return self.piece(square) == EMPTY

    def is_any_occupied(self, squares: list[Square]) -> bool:
        return any(not self.is_empty(square) for square in squares)

    def squares(self) -> list[Square]:
        num_files, num_ranks = BOARD_DIMENSIONS
        return [Square(file, rank) for rank in range(num_ranks) for file in range(num_files)]

    def locate_pieces(self, piece_type: PieceType, color: Color) -> list[Square]:
        code = encode(piece_type, color)
        return [square for square in self.squares() if self.piece(square) == code]

    def locate_color(self, color: Color) -> list[Square]:
        return [square for square in self.squares() if color_of(self.piece(square)) == color]

    def king_square(self, color: Color) -> Square | None:
        kings = self.locate_pieces(PieceType.KING, color)
        return kings[0] if kings else None

    def count_kings(self, color: Color) -> int:
        return len(self.locate_pieces(PieceType.KING, color))

    # --- UPDATES ---
    def place_piece(self, code: int, square: Square) -> None:
        self.grid[square.rank][square.file] = code

    def remove_piece(self, square: Square) -> int:
        code = self.piece(square)
        self.grid[square.rank][square.file] = EMPTY
        return code

    def move_piece(self, from_square: Square, to_square: Square) -> int:
        """Update the position on the board. Returns the code of whatever stood on the target square."""
        captured = self.piece(to_square)
        self.grid[to_square.rank][to_square.file] = self.remove_piece(from_square)
        return captured
