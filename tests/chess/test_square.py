"""Unit tests for /referee/chess/square.py"""

from string import ascii_lowercase

import pytest

from referee.chess.square import BOARD_DIMENSIONS, Square
from referee.core.exceptions import InvalidCoordinatesError


@pytest.mark.parametrize(
    "file, rank, notation",
    [
        (file, rank, f"{ascii_lowercase[file]}{rank + 1}")
        for file in range(8)
        for rank in range(8)
    ],
)
def test_creating_from_algebraic(file: int, rank: int, notation: str) -> None:
    """Simply checks if the notation for 'a1' indeed maps to file 0, rank 0, etc."""
    square = Square.from_algebraic(notation)
    assert square.file == file
    assert square.rank == rank
    assert square.to_algebraic() == notation


@pytest.mark.parametrize("notation", ["i1", "a9", "a0", "e", "e22", "11", "E4", ""])
def test_invalid_algebraic_notation(notation: str) -> None:
    with pytest.raises(InvalidCoordinatesError):
        Square.from_algebraic(notation)


def test_square_within_bounds() -> None:
    """happy case: pieces within the dimensions of the board"""
    for file in range(BOARD_DIMENSIONS[0]):
        for rank in range(BOARD_DIMENSIONS[1]):
            assert Square(file, rank).is_within_bounds()


def test_square_out_of_bounds() -> None:
    assert not Square(BOARD_DIMENSIONS[0], 0).is_within_bounds()
    assert not Square(0, BOARD_DIMENSIONS[1]).is_within_bounds()
    assert not Square(-1, -1).is_within_bounds()


@pytest.mark.parametrize("file, rank", [(8, 0), (0, 8), (-1, 3), (3, -1), (100, 100)])
def test_untrusted_coordinates_are_rejected(file: int, rank: int) -> None:
    """Submitted coordinates outside of the 0-7 range never make it into a Square"""
    with pytest.raises(InvalidCoordinatesError):
        Square.from_coordinates(file, rank)


def test_offset() -> None:
    e4 = Square.from_algebraic("e4")
    assert e4.offset(1, 1) == Square.from_algebraic("f5")
    assert e4.offset(-4, -3) == Square.from_algebraic("a1")
    assert not e4.offset(4, 0).is_within_bounds()


@pytest.mark.parametrize("name", ["e²", "e٣", "e８"])
def test_non_ascii_rank_digit(name: str) -> None:
    """Unicode digits are not ranks"""
    with pytest.raises(InvalidCoordinatesError):
        Square.from_algebraic(name)
