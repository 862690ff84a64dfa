"""Chess clock without a ticking timer.

Time is only charged when something happens (a move, a timeout claim), using the `now` supplied by the caller.
Only the clock of the side to move is running.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Self

from referee.chess.pieces import Color
from referee.core.config import TIME_CONTROL_BUDGETS
from referee.core.shared_types import TimeControl


@dataclass
class GameClock:
    """Dual chess clock tracking remaining seconds for both players."""

    remaining: dict[Color, float] = field(default_factory=dict)
    running_since: Optional[float] = None

    @classmethod
    def for_time_control(cls, time_control: TimeControl) -> Self:
        budget = float(TIME_CONTROL_BUDGETS[time_control])
        return cls(remaining={Color.WHITE: budget, Color.BLACK: budget})

    @property
    def is_running(self) -> bool:
        return self.running_since is not None

    def start(self, now: float) -> None:
        """Start the clock of whoever moves first."""
        self.running_since = now

    def elapsed(self, now: float) -> float:
        """Seconds the side to move has spent on the current move so far."""
        if self.running_since is None:
            return 0.0
        return max(0.0, now - self.running_since)

    def remaining_for(self, color: Color, color_to_move: Color, now: float) -> float:
        """Live remaining time: the side to move has its elapsed thinking time deducted."""
        if color == color_to_move:
            return max(0.0, self.remaining[color] - self.elapsed(now))
        return self.remaining[color]

    def is_flag_fallen(self, color_to_move: Color, now: float) -> bool:
        return self.is_running and self.elapsed(now) >= self.remaining[color_to_move]

    def switch(self, color_to_move: Color, now: float) -> None:
        """The side to move finished its move: charge its clock and start the opponent's."""
        self._consume_elapsed(color_to_move, now)
        self.running_since = now

    def stop(self, color_to_move: Color, now: float) -> None:
        if self.is_running:
            self._consume_elapsed(color_to_move, now)
            self.running_since = None

    def _consume_elapsed(self, color: Color, now: float) -> None:
        self.remaining[color] = max(0.0, self.remaining[color] - self.elapsed(now))
