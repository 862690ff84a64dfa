"""
Bookkeeping for the draws a player has to *claim*: threefold repetition and the fifty-move rule.

(Stalemate needs no bookkeeping, the rules engine flags it on the move that causes it.)
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Self

from referee.chess.fen import repetition_key_from_fen

REPETITION_THRESHOLD = 3
FIFTY_MOVE_THRESHOLD = 100  # half-moves


@dataclass(frozen=True)
class DrawRuleStatus:
    half_moves: int
    max_repetitions: int


@dataclass
class DrawTracker:
    """
    * occurrences: how often each canonical position (see PositionState.repetition_key) has been reached
    * half_moves_since_progress: half-moves since the last capture or pawn move
    """

    occurrences: Counter[str] = field(default_factory=Counter)
    half_moves_since_progress: int = 0

    @classmethod
    def from_fen_history(cls, fens: list[str]) -> Self:
        """Rebuild the tracker from every FEN the game went through (the current one last)."""
        tracker = cls()
        for fen in fens:
            tracker.occurrences[repetition_key_from_fen(fen)] += 1
        if fens:
            tracker.half_moves_since_progress = int(fens[-1].split(" ")[4])
        return tracker

    def record_move(self, key: str, resets_progress: bool) -> None:
        """Call after every half-move with the key of the position reached."""
        self.occurrences[key] += 1
        if resets_progress:
            self.half_moves_since_progress = 0
        else:
            self.half_moves_since_progress += 1

    def can_claim_repetition(self, current_key: str) -> bool:
        return self.occurrences[current_key] >= REPETITION_THRESHOLD

    def can_claim_fifty_move_rule(self) -> bool:
        return self.half_moves_since_progress >= FIFTY_MOVE_THRESHOLD

    def status(self) -> DrawRuleStatus:
        return DrawRuleStatus(
            half_moves=self.half_moves_since_progress,
            max_repetitions=max(self.occurrences.values(), default=0),
        )
