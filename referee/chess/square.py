"""
A square on the board

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass
from string import digits

from referee.core.exceptions import InvalidCoordinatesError

# Chess board is always 8x8. Files and ranks are counted from 0: a1 is (0, 0), h8 is (7, 7)
BOARD_DIMENSIONS = (8, 8)
FILE_NAMES = "abcdefgh"


@dataclass(frozen=True)
class Square:
    file: int
    rank: int

    @classmethod
    def from_algebraic(cls, sq: str) -> Square:
        """Algebraic notation: 'a1' - 'h8' get converted to (0,0) - (7,7)"""
        if len(sq) != 2 or sq[0] not in FILE_NAMES or sq[1] not in digits:
            raise InvalidCoordinatesError(f"Cannot interpret {sq!r} as a square.")
        return cls.from_coordinates(FILE_NAMES.index(sq[0]), int(sq[1]) - 1)

    @classmethod
    def from_coordinates(cls, file: int, rank: int) -> Square:
        """Untrusted coordinates (as submitted by a player) must stay on the board."""
        square = cls(file, rank)
        if not square.is_within_bounds():
            raise InvalidCoordinatesError(
                f"Coordinates ({file}, {rank}) are outside of the 0-7 range."
            )
        return square

    def to_algebraic(self) -> str:
        return f"{FILE_NAMES[self.file]}{self.rank + 1}"

    def is_within_bounds(self) -> bool:
        return (0 <= self.file < BOARD_DIMENSIONS[0]) and (
            0 <= self.rank < BOARD_DIMENSIONS[1]
        )

    def offset(self, df: int, dr: int) -> Square:
        """Neighbouring square (may fall off the board, check with is_within_bounds)."""
        return Square(self.file + df, self.rank + dr)
