"""
Geometry/Base movement and capturing/attacking rules

Key idea: the piece types form a closed set, so a single `match` over PieceType picks the movement / attack pattern.

Everything here is pseudo-legal: whether the move leaves your own king in check is decided later by the rules engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Self

from referee.chess.board import Board
from referee.chess.pieces import (
    FEN_TO_PIECE,
    PIECE_TO_FEN,
    Color,
    PieceType,
    color_of,
    encode,
    type_of,
)
from referee.chess.square import BOARD_DIMENSIONS, Square
from referee.core.exceptions import InvalidCoordinatesError

Vector = tuple[int, int]

KNIGHT_DELTAS: list[Vector] = [
    (2, 1),
    (2, -1),
    (-2, 1),
    (-2, -1),
    (1, 2),
    (1, -2),
    (-1, 2),
    (-1, -2),
]
KING_DELTAS: list[Vector] = [
    (0, 1),
    (0, -1),
    (1, 0),
    (-1, 0),
    (1, 1),
    (1, -1),
    (-1, 1),
    (-1, -1),
]
DIAGONALS: list[Vector] = [(1, 1), (-1, 1), (1, -1), (-1, -1)]
STRAIGHTS: list[Vector] = [(1, 0), (-1, 0), (0, 1), (0, -1)]


@dataclass(frozen=True)
class Move:
    """basic definition of a move to be made: nothing else is taken from the player"""

    from_square: Square
    to_square: Square
    promote_to: Optional[PieceType] = None

    @classmethod
    def from_uci(cls, uci: str) -> Self:
        """
        Universal Chess Interface:
        ---
        One of the standard chess notations for moves

        examples:
        * "e2e4": move the piece that was on e2 to e4
        * "e7e8q" : (pawn) moves from e7 to e8 and promotes to a queen (the q)
        * "e1g1": the king castles king side

        NOTE: Whether it is castling / en passant is derived by the rules engine
        """
        if len(uci) not in (4, 5):
            raise InvalidCoordinatesError(f"Cannot interpret {uci!r} as a UCI move.")
        from_sq = Square.from_algebraic(uci[:2])
        to_sq = Square.from_algebraic(uci[2:4])
        promote_to = None
        if len(uci) == 5:
            if uci[4] not in FEN_TO_PIECE:
                raise InvalidCoordinatesError(f"Unknown promotion piece in {uci!r}.")
            promote_to = FEN_TO_PIECE[uci[4]]
        return cls(from_sq, to_sq, promote_to)

    def to_uci(self) -> str:
        """Convert into UCI notation"""
        piece_char = PIECE_TO_FEN[self.promote_to] if self.promote_to else ""
        return f"{self.from_square.to_algebraic()}{self.to_square.to_algebraic()}{piece_char}"


# --- MOVEMENT RULES ---
def raycasting_move(
    square: Square, board: Board, directions: list[Vector]
) -> list[Square]:
    """
    Raycasting algorithm
    -----

    ---
    The main trick we use to check the 'line of sight of a piece'.
    We define move directions and move along them until we hit another piece or
    the edge of the board.
    """
    player_color = color_of(board.piece(square))

    destinations: list[Square] = []
    for df, dr in directions:
        target_square = square.offset(df, dr)
        while target_square.is_within_bounds():
            occupant = board.piece(target_square)
            if occupant:
                # only need to add the first occupied square found if it is the opponent's: then it can be captured.
                if color_of(occupant) != player_color:
                    destinations.append(target_square)
                break

            destinations.append(target_square)
            target_square = target_square.offset(df, dr)
    return destinations


def single_step_move(square: Square, board: Board, deltas: list[Vector]) -> list[Square]:
    """Raycasting is for sliding pieces. This is the equivalent for kings and knights that just jump/step once along a direction"""
    player_color = color_of(board.piece(square))
    destinations: list[Square] = []
    for df, dr in deltas:
        target_square = square.offset(df, dr)
        if not target_square.is_within_bounds():
            continue

        if color_of(board.piece(target_square)) != player_color:
            destinations.append(target_square)
    return destinations


def pawn_start_rank(color: Color) -> int:
    return 1 if color == Color.WHITE else BOARD_DIMENSIONS[1] - 2


def promotion_rank(color: Color) -> int:
    return BOARD_DIMENSIONS[1] - 1 if color == Color.WHITE else 0


def candidate_pawn_moves(
    square: Square, board: Board, en_passant: Optional[Square] = None
) -> list[Square]:
    """
    A pawn:
    - moves by a single square forward, onto an empty square.
    - can move by two from its starting rank, if both squares are empty
    - takes diagonally, an opponent's piece or on the live en passant square
    """
    color = color_of(board.piece(square))
    assert color is not None
    forward = color.forward

    destinations: list[Square] = []
    one_step = square.offset(0, forward)
    if one_step.is_within_bounds() and board.is_empty(one_step):
        destinations.append(one_step)
        two_steps = one_step.offset(0, forward)
        if square.rank == pawn_start_rank(color) and board.is_empty(two_steps):
            destinations.append(two_steps)

    for df in (-1, 1):
        target_square = square.offset(df, forward)
        if not target_square.is_within_bounds():
            continue
        is_opponent_piece = color_of(board.piece(target_square)) == color.opponent
        if is_opponent_piece or target_square == en_passant:
            destinations.append(target_square)
    return destinations


def pseudo_legal_destinations(
    board: Board, square: Square, en_passant: Optional[Square] = None
) -> list[Square]:
    """
    Squares the piece on `square` could reach according to its movement pattern.

    Does not include castling (a compound king + rook move, handled by the rules engine).
    """
    match type_of(board.piece(square)):
        case PieceType.PAWN:
            return candidate_pawn_moves(square, board, en_passant)
        case PieceType.KNIGHT:
            return single_step_move(square, board, KNIGHT_DELTAS)
        case PieceType.BISHOP:
            return raycasting_move(square, board, DIAGONALS)
        case PieceType.ROOK:
            return raycasting_move(square, board, STRAIGHTS)
        case PieceType.QUEEN:
            return raycasting_move(square, board, DIAGONALS + STRAIGHTS)
        case PieceType.KING:
            return single_step_move(square, board, KING_DELTAS)
        case None:
            return []


def squares_between(from_square: Square, to_square: Square) -> Optional[list[Square]]:
    """
    Squares strictly between two squares on the same rank, file or diagonal.

    Returns None when the squares do not share a line (so no piece could slide from one to the other).
    """
    df = to_square.file - from_square.file
    dr = to_square.rank - from_square.rank
    if (df, dr) == (0, 0) or not (df == 0 or dr == 0 or abs(df) == abs(dr)):
        return None

    step_f = (df > 0) - (df < 0)
    step_r = (dr > 0) - (dr < 0)
    between: list[Square] = []
    square = from_square.offset(step_f, step_r)
    while square != to_square:
        between.append(square)
        square = square.offset(step_f, step_r)
    return between


# --- CAPTURING RULES / ATTACKING RULES ---
def raycasting_attack(
    square: Square,
    by_code: int,
    board: Board,
    directions: list[Vector],
) -> bool:
    """
    Raycasting algorithm for attacks.
    ---

    Where `raycasting_move()` determines
    _"What is the line-of-sight of the piece standing on the specified square?"_

    This function determines:
    _"Is the specified square in the line-of-sight of the given piece (code) moving along the given directions?"_

    ---
    Returns TRUE if the first piece encountered along any direction is the specified piece.
    """
    for df, dr in directions:
        target_square = square.offset(df, dr)
        while target_square.is_within_bounds():
            occupant = board.piece(target_square)
            if occupant:
                if occupant == by_code:
                    return True
                break
            target_square = target_square.offset(df, dr)
    return False


def single_step_attack(
    square: Square,
    by_code: int,
    board: Board,
    deltas: list[Vector],
) -> bool:
    """
    Equivalent for pawns, kings, and knights: they only reach a single square along a direction.
    """
    for df, dr in deltas:
        target_square = square.offset(df, dr)
        if target_square.is_within_bounds() and board.piece(target_square) == by_code:
            return True
    return False


def is_attacked_by(
    square: Square, piece_type: PieceType, by_color: Color, board: Board
) -> bool:
    """
    Could a piece of this type and color take on the specified square?

    NOTE: Pawn moves are not symmetric. To check IF a white pawn could take on your square -->
    Must look one rank DOWN the board ("Could a white pawn, that moves UP the board, take on the specified square?")
    """
    by_code = encode(piece_type, by_color)
    match piece_type:
        case PieceType.PAWN:
            behind = -by_color.forward
            return single_step_attack(square, by_code, board, [(1, behind), (-1, behind)])
        case PieceType.KNIGHT:
            return single_step_attack(square, by_code, board, KNIGHT_DELTAS)
        case PieceType.BISHOP:
            return raycasting_attack(square, by_code, board, DIAGONALS)
        case PieceType.ROOK:
            return raycasting_attack(square, by_code, board, STRAIGHTS)
        case PieceType.QUEEN:
            return raycasting_attack(square, by_code, board, DIAGONALS + STRAIGHTS)
        case PieceType.KING:
            return single_step_attack(square, by_code, board, KING_DELTAS)


def is_square_attacked(board: Board, square: Square, by_color: Color) -> bool:
    """A square is attacked by a side if any of its pieces could take on it."""
    return any(
        is_attacked_by(square, piece_type, by_color, board) for piece_type in PieceType
    )


def is_any_under_attack(board: Board, squares: list[Square], by_color: Color) -> bool:
    return any(is_square_attacked(board, square, by_color) for square in squares)


def is_check(board: Board, color: Color) -> bool:
    """Is the king of the given color under attack?"""
    king = board.king_square(color)
    if king is None:
        return False
    return is_square_attacked(board, king, color.opponent)
