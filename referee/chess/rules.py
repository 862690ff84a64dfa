"""
Move legality engine.

`validate()` is a pure function of (position, rights, side to move, proposed move):
the state passed in is never modified, the resulting position is computed on a scratch copy.
It does not know about players, clocks, or game modes. That is the Game's business.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Iterator, Optional, Union

from referee.chess.castling import (
    CASTLING_RULES,
    CastlingDirection,
    castling_direction_for,
    directions_for,
)
from referee.chess.fen import PositionState, Rights
from referee.chess.moves import (
    Move,
    is_any_under_attack,
    is_check,
    pawn_start_rank,
    promotion_rank,
    pseudo_legal_destinations,
    squares_between,
)
from referee.chess.pieces import (
    EMPTY,
    PROMOTION_OPTIONS,
    Color,
    Piece,
    PieceType,
    color_of,
    encode,
    type_of,
)
from referee.chess.square import Square
from referee.core.exceptions import (
    INVALID_INPUT_REASONS,
    IllegalMoveError,
    IllegalMoveReason,
)


class MoveKind(StrEnum):
    NORMAL = "normal"
    DOUBLE_STEP = "double step"
    CASTLING = "castling"
    EN_PASSANT = "en passant"
    PROMOTION = "promotion"


@dataclass(frozen=True)
class LegalMove:
    """Verdict for an accepted move, with everything derived from it."""

    move: Move
    kind: MoveKind
    moving_piece: int
    captured_piece: int
    resulting_state: PositionState
    gives_check: bool
    is_checkmate: bool
    is_stalemate: bool

    @property
    def is_capture(self) -> bool:
        return self.captured_piece != EMPTY

    @property
    def resets_progress(self) -> bool:
        """Pawn moves and captures reset the fifty-move counter"""
        return self.is_capture or type_of(self.moving_piece) == PieceType.PAWN

    def flags(self) -> tuple[str, ...]:
        flags: list[str] = []
        if self.kind != MoveKind.NORMAL:
            flags.append(str(self.kind))
        if self.is_capture:
            flags.append("capture")
        if self.is_checkmate:
            flags.append("checkmate")
        elif self.gives_check:
            flags.append("check")
        elif self.is_stalemate:
            flags.append("stalemate")
        return tuple(flags)


@dataclass(frozen=True)
class IllegalMove:
    """Verdict for a rejected move."""

    move: Move
    reason: IllegalMoveReason

    @property
    def is_invalid_input(self) -> bool:
        """Malformed rather than against the rules (missing / spurious promotion choice)"""
        return self.reason in INVALID_INPUT_REASONS

    def to_error(self) -> IllegalMoveError:
        return IllegalMoveError(self.reason, self.move.to_uci())


Verdict = Union[LegalMove, IllegalMove]


@dataclass(frozen=True)
class _Outcome:
    """Intermediate result: the move fits the rules, flags about the opponent not yet computed"""

    kind: MoveKind
    moving_piece: int
    captured_piece: int
    resulting_state: PositionState


# --- PUBLIC API ---
def validate(state: PositionState, move: Move) -> Verdict:
    """
    Decide whether the side to move may play `move` in the given position.

    1. origin must hold a piece of the side to move
    2. destination must be reachable (sliding pieces blocked by anything in between)
    3. castling: rights, empty squares between king and rook, not in check, king does not cross attacked squares
    4. en passant: only onto the live en passant square
    5. the move may not leave your own king in check
    6. a pawn reaching the last rank must name a promotion piece, any other move must not

    On success, the opponent's situation (check / checkmate / stalemate) is derived from the resulting position.
    """
    result = _check_move(state, move)
    if isinstance(result, IllegalMove):
        return result

    after = result.resulting_state
    opponent = after.color_to_move
    gives_check = is_check(after.board, opponent)
    has_reply = has_legal_move(after)
    return LegalMove(
        move=move,
        kind=result.kind,
        moving_piece=result.moving_piece,
        captured_piece=result.captured_piece,
        resulting_state=after,
        gives_check=gives_check,
        is_checkmate=gives_check and not has_reply,
        is_stalemate=(not gives_check) and not has_reply,
    )


def legal_moves(state: PositionState) -> list[Move]:
    """All legal moves for the side to move. Pawn pushes to the last rank are expanded for every promotion choice."""
    return [
        move
        for move in _candidate_moves(state)
        if not isinstance(_check_move(state, move), IllegalMove)
    ]


def has_legal_move(state: PositionState) -> bool:
    return any(
        not isinstance(_check_move(state, move), IllegalMove)
        for move in _candidate_moves(state, expand_promotions=False)
    )


def in_check(state: PositionState) -> bool:
    """Is the side to move in check?"""
    return is_check(state.board, state.color_to_move)


def replay(moves: list[Move], starting_state: PositionState) -> PositionState:
    """Play a list of moves from the given starting position. Raises IllegalMoveError on the first illegal move."""
    state = starting_state
    for move in moves:
        verdict = validate(state, move)
        if isinstance(verdict, IllegalMove):
            raise verdict.to_error()
        state = verdict.resulting_state
    return state


# --- MOVE CHECKS ---
def _check_move(state: PositionState, move: Move) -> Union[_Outcome, IllegalMove]:
    board = state.board
    color = state.color_to_move
    moving_piece = board.piece(move.from_square)

    # 1. You can only move your own pieces
    if color_of(moving_piece) != color:
        return IllegalMove(move, IllegalMoveReason.NO_PIECE_OF_YOURS)
    piece_type = type_of(moving_piece)

    # 3. Castling is the king's compound move
    if piece_type == PieceType.KING:
        direction = castling_direction_for(move.from_square, move.to_square)
        if direction is not None and direction.color == color:
            return _check_castling(state, move, direction)

    # 2. Geometry + occupancy
    en_passant = live_en_passant_square(state)
    if move.to_square not in pseudo_legal_destinations(board, move.from_square, en_passant):
        return IllegalMove(move, _unreachable_reason(state, move))

    kind = _move_kind(move, piece_type, color, en_passant)

    # 5. Simulate and look at your own king
    after, captured = apply_move(state, move, kind)
    if is_check(after.board, color):
        return IllegalMove(move, IllegalMoveReason.LEAVES_KING_IN_CHECK)

    # 6. Promotion choice (only judged for moves that are otherwise legal)
    if kind == MoveKind.PROMOTION and move.promote_to not in PROMOTION_OPTIONS:
        return IllegalMove(move, IllegalMoveReason.MISSING_PROMOTION)
    if kind != MoveKind.PROMOTION and move.promote_to is not None:
        return IllegalMove(move, IllegalMoveReason.SPURIOUS_PROMOTION)

    return _Outcome(kind, moving_piece, captured, after)


def _check_castling(
    state: PositionState, move: Move, direction: CastlingDirection
) -> Union[_Outcome, IllegalMove]:
    """
    You are allowed to castle if
    * neither king nor rook have moved (the castling right is still there) and the rook is actually there
    * every square between king and rook is empty
    * you are not in check (you cannot castle out of check)
    * the king does not cross, or land on, a square under attack
    """
    board = state.board
    color = state.color_to_move
    squares = CASTLING_RULES[direction]
    invalid = IllegalMove(move, IllegalMoveReason.INVALID_CASTLING)

    if not state.rights.can_castle(direction):
        return invalid
    if board.piece(squares.rook_from) != encode(PieceType.ROOK, color):
        return invalid
    if board.is_any_occupied(squares.between):
        return invalid
    if is_check(board, color):
        return invalid
    if is_any_under_attack(board, squares.king_path, color.opponent):
        return invalid
    if move.promote_to is not None:
        return IllegalMove(move, IllegalMoveReason.SPURIOUS_PROMOTION)

    after, _ = apply_move(state, move, MoveKind.CASTLING)
    return _Outcome(MoveKind.CASTLING, board.piece(move.from_square), EMPTY, after)


def _unreachable_reason(state: PositionState, move: Move) -> IllegalMoveReason:
    """Explain why the destination is not in the piece's pseudo-legal set"""
    board = state.board
    moving_piece = board.piece(move.from_square)
    piece_type = type_of(moving_piece)
    color = color_of(moving_piece)
    assert piece_type is not None and color is not None

    df = move.to_square.file - move.from_square.file
    dr = move.to_square.rank - move.from_square.rank

    if piece_type == PieceType.PAWN:
        is_double_step = dr == 2 * color.forward and move.from_square.rank == pawn_start_rank(color)
        if df == 0 and (dr == color.forward or is_double_step):
            # straight ahead: the path (destination included) must be empty
            path = (squares_between(move.from_square, move.to_square) or []) + [move.to_square]
            if board.is_any_occupied(path):
                return IllegalMoveReason.BLOCKED_PATH
        if abs(df) == 1 and dr == color.forward and board.is_empty(move.to_square):
            return IllegalMoveReason.INVALID_EN_PASSANT
        return IllegalMoveReason.INVALID_DESTINATION

    if piece_type in (PieceType.BISHOP, PieceType.ROOK, PieceType.QUEEN):
        between = squares_between(move.from_square, move.to_square)
        fits_pattern = between is not None and (
            piece_type == PieceType.QUEEN
            or (piece_type == PieceType.BISHOP and df != 0 and dr != 0)
            or (piece_type == PieceType.ROOK and (df == 0 or dr == 0))
        )
        if fits_pattern and between and board.is_any_occupied(between):
            return IllegalMoveReason.BLOCKED_PATH

    return IllegalMoveReason.INVALID_DESTINATION


def _move_kind(
    move: Move, piece_type: Optional[PieceType], color: Color, en_passant: Optional[Square]
) -> MoveKind:
    if piece_type != PieceType.PAWN:
        return MoveKind.NORMAL
    if move.to_square.rank == promotion_rank(color):
        return MoveKind.PROMOTION
    if abs(move.to_square.rank - move.from_square.rank) == 2:
        return MoveKind.DOUBLE_STEP
    if move.to_square == en_passant and move.to_square.file != move.from_square.file:
        return MoveKind.EN_PASSANT
    return MoveKind.NORMAL


# --- EN PASSANT ---
def live_en_passant_square(state: PositionState) -> Optional[Square]:
    """
    The en passant square recorded in the rights, but only if it can actually be taken on this half-move:
    on the correct rank for the side to move, empty, with the opponent's pawn that just double-stepped behind it.
    """
    square = state.rights.en_passant
    if square is None:
        return None
    color = state.color_to_move
    # White takes on the 6th rank, black on the 3rd
    expected_rank = 5 if color == Color.WHITE else 2
    if square.rank != expected_rank or not state.board.is_empty(square):
        return None
    pawn_square = square.offset(0, -color.forward)
    if state.board.piece(pawn_square) != encode(PieceType.PAWN, color.opponent):
        return None
    return square


# --- APPLYING A MOVE ---
def apply_move(
    state: PositionState, move: Move, kind: MoveKind
) -> tuple[PositionState, int]:
    """
    Resulting position after the (already checked) move. Works on a copy, `state` is left untouched.

    Returns the new state and the code of the captured piece (EMPTY if none).
    """
    after = state.copy()
    board = after.board
    color = state.color_to_move
    moving_piece = board.piece(move.from_square)

    match kind:
        case MoveKind.CASTLING:
            # castling move must displace two pieces on the board
            direction = castling_direction_for(move.from_square, move.to_square)
            assert direction is not None
            squares = CASTLING_RULES[direction]
            board.move_piece(squares.king_from, squares.king_to)
            board.move_piece(squares.rook_from, squares.rook_to)
            captured = EMPTY
        case MoveKind.EN_PASSANT:
            # the pawn taken stands on the en passant file, on the rank the moving pawn started from
            board.move_piece(move.from_square, move.to_square)
            captured = board.remove_piece(Square(move.to_square.file, move.from_square.rank))
        case _:
            captured = board.move_piece(move.from_square, move.to_square)
            if kind == MoveKind.PROMOTION and move.promote_to in PROMOTION_OPTIONS:
                assert move.promote_to is not None
                board.place_piece(encode(move.promote_to, color), move.to_square)

    en_passant = (
        move.from_square.offset(0, color.forward) if kind == MoveKind.DOUBLE_STEP else None
    )
    after.rights = _revoke_castling_rights_if_needed(state.rights, move).with_en_passant(en_passant)

    is_pawn_move = type_of(moving_piece) == PieceType.PAWN
    after.half_move_clock = 0 if (is_pawn_move or captured != EMPTY) else state.half_move_clock + 1
    if color == Color.BLACK:
        after.num_turns = state.num_turns + 1
    after.color_to_move = color.opponent
    return after, captured


def _revoke_castling_rights_if_needed(rights: Rights, move: Move) -> Rights:
    """
    A castling right is gone as soon as anything moves from, or lands on, the king's or the rook's starting square:
    * you moved (or castled with) your king --> both of your rights
    * you moved your rook --> the right in that rook's direction
    * your rook got captured on its starting square --> the right in that rook's direction
    """
    touched = {move.from_square, move.to_square}
    revoked = [
        direction
        for direction, squares in CASTLING_RULES.items()
        if rights.can_castle(direction)
        and touched & {squares.king_from, squares.rook_from}
    ]
    return rights.revoke(*revoked) if revoked else rights


# --- CANDIDATE GENERATION ---
def _candidate_moves(
    state: PositionState, expand_promotions: bool = True
) -> Iterator[Move]:
    """Pseudo-legal moves for the side to move (incl. castling attempts). Legality is checked by the caller."""
    board = state.board
    color = state.color_to_move
    en_passant = live_en_passant_square(state)
    for square in board.locate_color(color):
        is_pawn = type_of(board.piece(square)) == PieceType.PAWN
        for destination in pseudo_legal_destinations(board, square, en_passant):
            if is_pawn and destination.rank == promotion_rank(color):
                choices = PROMOTION_OPTIONS if expand_promotions else (PieceType.QUEEN,)
                for piece_type in choices:
                    yield Move(square, destination, piece_type)
            else:
                yield Move(square, destination)

    for direction in directions_for(color):
        if state.rights.can_castle(direction):
            squares = CASTLING_RULES[direction]
            if board.piece(squares.king_from) == encode(PieceType.KING, color):
                yield Move(squares.king_from, squares.king_to)


def describe_piece(code: int) -> Optional[str]:
    """Human readable piece name, e.g. 'black knight' (None for an empty square)"""
    if code == EMPTY:
        return None
    piece = Piece.from_code(code)
    return f"{piece.color.name.lower()} {piece.type.name.lower()}"
