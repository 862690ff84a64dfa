"""Unit tests for /referee/chess/rules.py"""

import pytest

from referee.chess.castling import CastlingDirection
from referee.chess.fen import STARTING_FEN, PositionState
from referee.chess.moves import Move
from referee.chess.pieces import EMPTY, Color, PieceType, encode
from referee.chess.rules import (
    IllegalMove,
    LegalMove,
    MoveKind,
    Verdict,
    describe_piece,
    has_legal_move,
    in_check,
    legal_moves,
    replay,
    validate,
)
from referee.chess.square import Square
from referee.core.exceptions import IllegalMoveError, IllegalMoveReason

FOOLS_MATE = ["f2f3", "e7e5", "g2g4", "d8h4"]


def sq(name: str) -> Square:
    return Square.from_algebraic(name)


def play(state: PositionState, *ucis: str) -> PositionState:
    """Play a series of moves that are expected to be legal"""
    for uci in ucis:
        verdict = validate(state, Move.from_uci(uci))
        assert isinstance(verdict, LegalMove), f"{uci}: {verdict}"
        state = verdict.resulting_state
    return state


def expect_illegal(verdict: Verdict, reason: IllegalMoveReason) -> None:
    assert isinstance(verdict, IllegalMove)
    assert verdict.reason == reason


@pytest.fixture
def start() -> PositionState:
    return PositionState.starting_position()


# --- BASIC MOVES ---
def test_twenty_legal_moves_in_starting_position(start: PositionState) -> None:
    moves = legal_moves(start)
    assert len(moves) == 20
    assert Move.from_uci("e2e4") in moves
    assert Move.from_uci("g1f3") in moves
    assert has_legal_move(start)


def test_legal_move_updates_state(start: PositionState) -> None:
    verdict = validate(start, Move.from_uci("e2e4"))
    assert isinstance(verdict, LegalMove)
    assert verdict.kind == MoveKind.DOUBLE_STEP
    assert verdict.captured_piece == EMPTY
    assert verdict.resets_progress
    assert verdict.flags() == ("double step",)

    after = verdict.resulting_state
    assert after.to_fen() == "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 1"


def test_turn_counters() -> None:
    state = play(PositionState.starting_position(), "g1f3", "g8f6")
    assert state.half_move_clock == 2
    assert state.num_turns == 2
    assert state.color_to_move == Color.WHITE


@pytest.mark.parametrize(
    "uci, reason",
    [
        ("e7e5", IllegalMoveReason.NO_PIECE_OF_YOURS),  # black piece on white's turn
        ("e4e5", IllegalMoveReason.NO_PIECE_OF_YOURS),  # empty square
        ("e2e5", IllegalMoveReason.INVALID_DESTINATION),
        ("b1b3", IllegalMoveReason.INVALID_DESTINATION),
        ("c1c3", IllegalMoveReason.INVALID_DESTINATION),
        ("a1a3", IllegalMoveReason.BLOCKED_PATH),
        ("f1c4", IllegalMoveReason.BLOCKED_PATH),
        ("d1d2", IllegalMoveReason.INVALID_DESTINATION),  # own piece
        ("e2d3", IllegalMoveReason.INVALID_EN_PASSANT),  # diagonal onto an empty square
        ("e2e4q", IllegalMoveReason.SPURIOUS_PROMOTION),
    ],
)
def test_illegal_moves_in_starting_position(
    start: PositionState, uci: str, reason: IllegalMoveReason
) -> None:
    expect_illegal(validate(start, Move.from_uci(uci)), reason)


def test_pawn_push_blocked() -> None:
    state = PositionState.from_fen("4k3/8/8/8/8/4n3/4P3/4K3 w - - 0 1")
    expect_illegal(validate(state, Move.from_uci("e2e4")), IllegalMoveReason.BLOCKED_PATH)
    expect_illegal(validate(state, Move.from_uci("e2e3")), IllegalMoveReason.BLOCKED_PATH)


# --- KING SAFETY ---
def test_pinned_piece_cannot_move() -> None:
    """Knight on e2 shields the king from the rook on e8"""
    state = PositionState.from_fen("4r1k1/8/8/8/8/8/4N3/4K3 w - - 0 1")
    expect_illegal(validate(state, Move.from_uci("e2c3")), IllegalMoveReason.LEAVES_KING_IN_CHECK)


def test_king_cannot_walk_into_check() -> None:
    state = PositionState.from_fen("3r2k1/8/8/8/8/8/8/4K3 w - - 0 1")
    expect_illegal(validate(state, Move.from_uci("e1d1")), IllegalMoveReason.LEAVES_KING_IN_CHECK)
    assert isinstance(validate(state, Move.from_uci("e1f1")), LegalMove)


def test_must_answer_check() -> None:
    state = PositionState.from_fen("4r1k1/8/8/8/8/8/P7/4K3 w - - 0 1")
    assert in_check(state)
    expect_illegal(validate(state, Move.from_uci("a2a3")), IllegalMoveReason.LEAVES_KING_IN_CHECK)
    assert all(move.from_square == sq("e1") for move in legal_moves(state))


# --- CASTLING ---
def test_castling_king_side() -> None:
    state = PositionState.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    verdict = validate(state, Move.from_uci("e1g1"))
    assert isinstance(verdict, LegalMove)
    assert verdict.kind == MoveKind.CASTLING

    board = verdict.resulting_state.board
    assert board.piece(sq("g1")) == encode(PieceType.KING, Color.WHITE)
    assert board.piece(sq("f1")) == encode(PieceType.ROOK, Color.WHITE)
    assert board.is_empty(sq("e1")) and board.is_empty(sq("h1"))
    assert verdict.resulting_state.rights.castling_to_fen() == "kq"


def test_castling_queen_side_for_black() -> None:
    state = PositionState.from_fen("r3k2r/8/8/8/8/8/8/R3K2R b KQkq - 0 1")
    after = play(state, "e8c8")
    assert after.board.piece(sq("c8")) == encode(PieceType.KING, Color.BLACK)
    assert after.board.piece(sq("d8")) == encode(PieceType.ROOK, Color.BLACK)
    assert after.rights.castling_to_fen() == "KQ"


def test_no_castling_out_of_check() -> None:
    state = PositionState.from_fen("4r1k1/8/8/8/8/8/8/R3K2R w KQ - 0 1")
    expect_illegal(validate(state, Move.from_uci("e1g1")), IllegalMoveReason.INVALID_CASTLING)
    expect_illegal(validate(state, Move.from_uci("e1c1")), IllegalMoveReason.INVALID_CASTLING)


def test_no_castling_through_attacked_square() -> None:
    state = PositionState.from_fen("5rk1/8/8/8/8/8/8/R3K2R w KQ - 0 1")
    expect_illegal(validate(state, Move.from_uci("e1g1")), IllegalMoveReason.INVALID_CASTLING)
    assert isinstance(validate(state, Move.from_uci("e1c1")), LegalMove)


def test_queen_side_castling_with_attacked_b_file() -> None:
    """The king never crosses b1, so it may be attacked"""
    state = PositionState.from_fen("1r4k1/8/8/8/8/8/8/R3K2R w KQ - 0 1")
    assert isinstance(validate(state, Move.from_uci("e1c1")), LegalMove)


def test_no_castling_with_pieces_in_between(start: PositionState) -> None:
    expect_illegal(validate(start, Move.from_uci("e1g1")), IllegalMoveReason.INVALID_CASTLING)
    state = PositionState.from_fen("r3k2r/8/8/8/8/8/8/RN2K2R w KQkq - 0 1")
    expect_illegal(validate(state, Move.from_uci("e1c1")), IllegalMoveReason.INVALID_CASTLING)


def test_no_castling_without_rights() -> None:
    state = PositionState.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w Qkq - 0 1")
    expect_illegal(validate(state, Move.from_uci("e1g1")), IllegalMoveReason.INVALID_CASTLING)


def test_rook_move_revokes_one_right() -> None:
    state = PositionState.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    after = play(state, "h1h2")
    assert not after.rights.can_castle(CastlingDirection.WHITE_KING_SIDE)
    assert after.rights.can_castle(CastlingDirection.WHITE_QUEEN_SIDE)


def test_king_move_revokes_both_rights() -> None:
    state = PositionState.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    after = play(state, "e1e2", "e8d8")
    assert after.rights.castling_to_fen() == "-"


def test_capturing_a_rook_revokes_its_right() -> None:
    state = PositionState.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    after = play(state, "a1a8")
    assert after.rights.castling_to_fen() == "Kk"


# --- EN PASSANT ---
def test_en_passant_on_the_very_next_move(start: PositionState) -> None:
    state = play(start, "e2e4", "a7a6", "e4e5", "d7d5")
    verdict = validate(state, Move.from_uci("e5d6"))
    assert isinstance(verdict, LegalMove)
    assert verdict.kind == MoveKind.EN_PASSANT
    assert verdict.captured_piece == encode(PieceType.PAWN, Color.BLACK)
    assert verdict.resulting_state.board.is_empty(sq("d5"))
    assert "en passant" in verdict.flags() and "capture" in verdict.flags()


def test_en_passant_expires_after_one_move(start: PositionState) -> None:
    state = play(start, "e2e4", "a7a6", "e4e5", "d7d5", "h2h3", "a6a5")
    expect_illegal(validate(state, Move.from_uci("e5d6")), IllegalMoveReason.INVALID_EN_PASSANT)


def test_en_passant_square_from_fen_needs_a_pawn_behind_it() -> None:
    """A stale / invented en passant square in a FEN does not enable a capture"""
    state = PositionState.from_fen("4k3/8/8/4P3/8/8/8/4K3 w - d6 0 1")
    expect_illegal(validate(state, Move.from_uci("e5d6")), IllegalMoveReason.INVALID_EN_PASSANT)


# --- PROMOTION ---
def test_promotion() -> None:
    state = PositionState.from_fen("8/P6k/8/8/8/8/8/K7 w - - 0 1")
    expect_illegal(validate(state, Move.from_uci("a7a8")), IllegalMoveReason.MISSING_PROMOTION)

    verdict = validate(state, Move.from_uci("a7a8n"))
    assert isinstance(verdict, LegalMove)
    assert verdict.kind == MoveKind.PROMOTION
    assert verdict.resulting_state.board.piece(sq("a8")) == encode(PieceType.KNIGHT, Color.WHITE)


def test_promotion_to_king_is_not_an_option() -> None:
    state = PositionState.from_fen("8/P6k/8/8/8/8/8/K7 w - - 0 1")
    expect_illegal(validate(state, Move.from_uci("a7a8k")), IllegalMoveReason.MISSING_PROMOTION)


def test_pinned_pawn_promotion_is_judged_on_king_safety_first() -> None:
    """Missing promotion choice on a move that exposes the king: the rule violation wins"""
    state = PositionState.from_fen("2b5/1P6/K7/8/8/8/8/7k w - - 0 1")
    expect_illegal(validate(state, Move.from_uci("b7b8")), IllegalMoveReason.LEAVES_KING_IN_CHECK)
    expect_illegal(validate(state, Move.from_uci("b7c8")), IllegalMoveReason.MISSING_PROMOTION)
    assert isinstance(validate(state, Move.from_uci("b7c8q")), LegalMove)


def test_legal_moves_expand_promotions() -> None:
    state = PositionState.from_fen("8/P6k/8/8/8/8/8/K7 w - - 0 1")
    promotions = [move for move in legal_moves(state) if move.from_square == sq("a7")]
    assert {move.promote_to for move in promotions} == {
        PieceType.KNIGHT,
        PieceType.BISHOP,
        PieceType.ROOK,
        PieceType.QUEEN,
    }


# --- END OF GAME FLAGS ---
def test_fools_mate(start: PositionState) -> None:
    state = play(start, *FOOLS_MATE[:-1])
    verdict = validate(state, Move.from_uci(FOOLS_MATE[-1]))
    assert isinstance(verdict, LegalMove)
    assert verdict.gives_check
    assert verdict.is_checkmate
    assert not verdict.is_stalemate
    assert verdict.flags() == ("checkmate",)
    assert not has_legal_move(verdict.resulting_state)


def test_stalemate() -> None:
    state = PositionState.from_fen("7k/4Q3/6K1/8/8/8/8/8 w - - 0 1")
    verdict = validate(state, Move.from_uci("e7f7"))
    assert isinstance(verdict, LegalMove)
    assert verdict.is_stalemate
    assert not verdict.is_checkmate
    assert verdict.flags() == ("stalemate",)
    assert legal_moves(verdict.resulting_state) == []


def test_check_flag(start: PositionState) -> None:
    state = play(start, "e2e4", "f7f6")
    verdict = validate(state, Move.from_uci("d1h5"))
    assert isinstance(verdict, LegalMove)
    assert verdict.gives_check and not verdict.is_checkmate
    assert verdict.flags() == ("check",)


# --- PURITY / REPLAY ---
def test_validate_is_pure_and_deterministic(start: PositionState) -> None:
    before = start.to_fen()
    first = validate(start, Move.from_uci("e2e4"))
    second = validate(start, Move.from_uci("e2e4"))
    assert start.to_fen() == before == STARTING_FEN
    assert isinstance(first, LegalMove) and isinstance(second, LegalMove)
    assert first.resulting_state.to_fen() == second.resulting_state.to_fen()

    validate(start, Move.from_uci("e2e5"))
    assert start.to_fen() == STARTING_FEN


def test_replay_reproduces_position(start: PositionState) -> None:
    moves = [Move.from_uci(uci) for uci in FOOLS_MATE]
    assert replay(moves, start).to_fen() == play(start, *FOOLS_MATE).to_fen()


def test_replay_stops_at_illegal_move(start: PositionState) -> None:
    moves = [Move.from_uci(uci) for uci in ["e2e4", "e7e5", "e4e5"]]
    with pytest.raises(IllegalMoveError) as exc_info:
        replay(moves, start)
    assert exc_info.value.reason == IllegalMoveReason.BLOCKED_PATH


def test_one_king_per_side_after_every_move(start: PositionState) -> None:
    state = start
    for uci in ["e2e4", "e7e5", "g1f3", "b8c6", "f1c4", "g8f6", "e1g1", "f8c5"]:
        state = play(state, uci)
        assert state.board.count_kings(Color.WHITE) == 1
        assert state.board.count_kings(Color.BLACK) == 1


def test_describe_piece() -> None:
    assert describe_piece(encode(PieceType.KNIGHT, Color.BLACK)) == "black knight"
    assert describe_piece(EMPTY) is None
