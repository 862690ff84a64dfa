"""
Observable events emitted by a Game.

The Game only records them (it knows nothing about who listens). The service layer attaches the game ID
and hands them to whatever EventSink was configured.
All events are frozen, so consumers cannot tamper with them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class GameCreated:
    creator: str
    color: str
    stake: int
    mode: str
    time_control: str


@dataclass(frozen=True)
class PlayerJoined:
    player: str
    color: str
    stake: int


@dataclass(frozen=True)
class MoveMade:
    player: str
    origin: str
    destination: str
    uci: str
    captured_piece: Optional[str]
    flags: tuple[str, ...]  # e.g. ("capture", "check"), ("castling",), ("checkmate",)


@dataclass(frozen=True)
class GameEnded:
    reason: str
    winner: Optional[str]  # None means draw


@dataclass(frozen=True)
class DrawOffered:
    player: str


@dataclass(frozen=True)
class DrawAccepted:
    player: str


@dataclass(frozen=True)
class DrawDeclined:
    player: str


@dataclass(frozen=True)
class DrawOfferCancelled:
    player: str


@dataclass(frozen=True)
class OutcomeOverridden:
    winner: Optional[str]


@dataclass(frozen=True)
class PrizeClaimed:
    player: str
    amount: int


GameEvent = Union[
    GameCreated,
    PlayerJoined,
    MoveMade,
    GameEnded,
    DrawOffered,
    DrawAccepted,
    DrawDeclined,
    DrawOfferCancelled,
    OutcomeOverridden,
    PrizeClaimed,
]
