"""Unit tests for /referee/chess/draw.py"""

import pytest

from referee.chess.draw import (
    FIFTY_MOVE_THRESHOLD,
    REPETITION_THRESHOLD,
    DrawRuleStatus,
    DrawTracker,
)
from referee.chess.fen import STARTING_FEN, repetition_key_from_fen

KEY = repetition_key_from_fen(STARTING_FEN)
OTHER_KEY = "8/8/8/8/8/8/8/K6k w - - "


def test_thresholds() -> None:
    assert REPETITION_THRESHOLD == 3
    assert FIFTY_MOVE_THRESHOLD == 100


def test_repetition_claim_needs_three_occurrences() -> None:
    tracker = DrawTracker()
    tracker.record_move(KEY, resets_progress=False)
    tracker.record_move(KEY, resets_progress=False)
    assert not tracker.can_claim_repetition(KEY)

    tracker.record_move(KEY, resets_progress=False)
    assert tracker.can_claim_repetition(KEY)
    assert not tracker.can_claim_repetition(OTHER_KEY)


@pytest.mark.parametrize("half_moves, can_claim", [(0, False), (99, False), (100, True), (130, True)])
def test_fifty_move_rule(half_moves: int, can_claim: bool) -> None:
    tracker = DrawTracker()
    for _ in range(half_moves):
        tracker.record_move(OTHER_KEY, resets_progress=False)
    assert tracker.can_claim_fifty_move_rule() == can_claim


def test_progress_resets_the_counter() -> None:
    tracker = DrawTracker(half_moves_since_progress=99)
    tracker.record_move(KEY, resets_progress=True)
    assert tracker.half_moves_since_progress == 0
    assert not tracker.can_claim_fifty_move_rule()


def test_rebuild_from_fen_history() -> None:
    """Starting position counts once, move counters are ignored, half-move clock is taken from the last FEN"""
    fens = [
        STARTING_FEN,
        "rnbqkbnr/pppppppp/8/8/8/5N2/PPPPPPPP/RNBQKB1R b KQkq - 1 1",
        "rnbqkbnr/pppppppp/5n2/8/8/5N2/PPPPPPPP/RNBQKB1R w KQkq - 2 2",
        "rnbqkbnr/pppppppp/5n2/8/8/8/PPPPPPPP/RNBQKBNR b KQkq - 3 2",
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 4 3",
    ]
    tracker = DrawTracker.from_fen_history(fens)
    assert tracker.occurrences[KEY] == 2
    assert tracker.half_moves_since_progress == 4
    assert tracker.status() == DrawRuleStatus(half_moves=4, max_repetitions=2)


def test_empty_tracker_status() -> None:
    assert DrawTracker().status() == DrawRuleStatus(half_moves=0, max_repetitions=0)
