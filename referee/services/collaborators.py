"""
Protocols of the external systems the referee hands work to.

The referee never moves funds, computes ratings or decides disputes itself. It only tells these collaborators
what happened, keyed by game ID (so a retried handoff can be recognised on their side).
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol
from uuid import UUID

from referee.core.events import GameEvent

logger = logging.getLogger(__name__)

# Type aliases
PieceColor = str
PlayerName = str


@dataclass(frozen=True)
class GameOutcome:
    """Final result of a game, as handed to collaborators."""

    game_id: UUID
    players: dict[PieceColor, PlayerName]
    winner: Optional[PlayerName]  # None means draw
    reason: str
    stake: int
    overridden: bool = False


@dataclass(frozen=True)
class PublishedEvent:
    """Event emitted by a game, tagged with the game it belongs to."""

    game_id: UUID
    event: GameEvent


class Escrow(Protocol):
    def lock(self, game_id: UUID, participant: PlayerName, amount: int) -> None:
        """Hold the participant's stake for the duration of the game."""
        ...

    def release(self, game_id: UUID, outcome: GameOutcome) -> None:
        """Pay out the locked stakes according to the outcome."""
        ...


class DisputeService(Protocol):
    def open_challenge(self, game_id: UUID, outcome: GameOutcome) -> None:
        """A game ended: its result may be contested until the challenge window closes."""
        ...


class RatingService(Protocol):
    def record(self, participants: dict[PieceColor, PlayerName], outcome: GameOutcome) -> None: ...


class EventSink(Protocol):
    def publish(self, event: PublishedEvent) -> None: ...


class LoggingEventSink:
    """Default sink: events only end up in the log."""

    def publish(self, event: PublishedEvent) -> None:
        logger.info("[%s] %s", event.game_id, event.event)
