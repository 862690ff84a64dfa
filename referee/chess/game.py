"""
The Game class is the entrypoint into the domain layer for the service layer.

It is the per-game state machine: it owns the position, rights, clocks, draw bookkeeping and status of a single game,
asks the rules engine (rules.py) for a verdict and only then changes its own state.
Every public method either fully applies an action or raises before touching anything.

    created --join--> active --move / resign / draw / claim / timeout--> <terminal> --settle--> settled
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Self

from referee.chess.clock import GameClock
from referee.chess.draw import DrawRuleStatus, DrawTracker
from referee.chess.fen import PositionState
from referee.chess.moves import Move, is_check
from referee.chess.pieces import AVAILABLE_COLOR_NAMES, Color, PieceType
from referee.chess.rules import (
    IllegalMove,
    LegalMove,
    Verdict,
    describe_piece,
    legal_moves,
    validate,
)
from referee.chess.square import Square
from referee.core import events
from referee.core.events import GameEvent
from referee.core.exceptions import (
    AlreadySettledError,
    ChallengeWindowOpenError,
    ClockExpiredError,
    DrawConditionNotMetError,
    GameNotActiveError,
    GameStateError,
    InvalidFENError,
    NoDrawOfferError,
    NotAParticipantError,
    NotYourTurnError,
    StakeMismatchError,
    TimeoutNotYetElapsedError,
)
from referee.core.models import GameModel
from referee.core.shared_types import EndReason, GameMode, TimeControl

logger = logging.getLogger(__name__)


class Status(Enum):
    CREATED = auto()
    ACTIVE = auto()
    CHECKMATE = auto()
    STALEMATE_DRAW = auto()
    AGREED_DRAW = auto()
    REPETITION_DRAW = auto()
    FIFTY_MOVE_DRAW = auto()
    RESIGNED = auto()
    TIMED_OUT = auto()
    SETTLED = auto()


# Game is over, waiting for settlement
TERMINAL_STATUSES: frozenset[Status] = frozenset(
    {
        Status.CHECKMATE,
        Status.STALEMATE_DRAW,
        Status.AGREED_DRAW,
        Status.REPETITION_DRAW,
        Status.FIFTY_MOVE_DRAW,
        Status.RESIGNED,
        Status.TIMED_OUT,
    }
)


@dataclass
class Outcome:
    """Who won (None for a draw) and why. A dispute may later flip the winner: `overridden` is then set."""

    winner: Optional[Color]
    reason: EndReason
    overridden: bool = False

    @property
    def is_draw(self) -> bool:
        return self.winner is None


@dataclass
class Game:
    # --- DOMAIN LAYER API CALLED BY SERVICE---

    state: PositionState
    moves: list[Move]
    history: list[str]  # list of FEN strings, the position before every move
    players: dict[Color, str]
    status: Status
    stake: int = 0
    mode: GameMode = GameMode.FRIENDLY
    time_control: TimeControl = TimeControl.CLASSICAL
    clock: GameClock = field(default_factory=lambda: GameClock.for_time_control(TimeControl.CLASSICAL))
    draw_offered_by: Optional[Color] = None
    outcome: Optional[Outcome] = None
    ended_at: Optional[float] = None
    prize_claimed_by: set[Color] = field(default_factory=set)
    tracker: DrawTracker = field(default_factory=DrawTracker)
    events: list[GameEvent] = field(default_factory=list)

    # --- CONSTRUCTION ---
    @classmethod
    def new_game(
        cls,
        player: str,
        color: str = "white",
        stake: int = 0,
        mode: GameMode = GameMode.FRIENDLY,
        time_control: TimeControl = TimeControl.CLASSICAL,
        starting_fen: Optional[str] = None,
    ) -> Self:
        """To start a new game with the player using the pieces with the indicated color."""
        if color.upper() not in AVAILABLE_COLOR_NAMES:
            raise GameStateError(
                f"Cannot create new game. Color {color} not in {','.join([c.lower() for c in AVAILABLE_COLOR_NAMES])}."
            )
        if stake < 0:
            raise StakeMismatchError(f"Stake cannot be negative: {stake}")

        state = (
            PositionState.from_fen(starting_fen)
            if starting_fen
            else PositionState.starting_position()
        )
        _assert_playable(state)

        player_color = Color[color.upper()]
        game = cls(
            state=state,
            moves=[],
            history=[],
            players={player_color: player},
            status=Status.CREATED,
            stake=stake,
            mode=mode,
            time_control=time_control,
            clock=GameClock.for_time_control(time_control),
            tracker=DrawTracker.from_fen_history([state.to_fen()]),
        )
        game._emit(
            events.GameCreated(
                creator=player,
                color=player_color.name.lower(),
                stake=stake,
                mode=str(mode),
                time_control=str(time_control),
            )
        )
        logger.info("New %s game (%s) created by %s, stake %d", mode, time_control, player, stake)
        return game

    @classmethod
    def from_model(cls, model: GameModel) -> Self:
        """Define how to construct a Game from the information the Service layer actually has"""

        # Validation
        status_name = model.status.replace(" ", "_").upper()
        if status_name not in Status.__members__:
            raise GameStateError(
                f"Invalid status code: {model.status!r}. \nPick one from {','.join([status.name.lower() for status in Status])}"
            )

        time_control = TimeControl(model.time_control)
        clock = GameClock.for_time_control(time_control)
        for color_name, seconds in model.clocks.items():
            clock.remaining[Color[color_name.upper()]] = seconds
        clock.running_since = model.clock_started_at

        outcome = None
        if model.end_reason is not None:
            outcome = Outcome(
                winner=Color[model.winner.upper()] if model.winner else None,
                reason=EndReason(model.end_reason),
                overridden=model.outcome_overridden,
            )

        return cls(
            state=PositionState.from_fen(model.current_fen),
            moves=[Move.from_uci(uci) for uci in model.moves_uci],
            history=list(model.history_fen),
            players={
                color: model.registered_players[color.name.lower()]
                for color in Color
                if color.name.lower() in model.registered_players
            },
            status=Status[status_name],
            stake=model.stake,
            mode=GameMode(model.mode),
            time_control=time_control,
            clock=clock,
            draw_offered_by=Color[model.draw_offered_by.upper()] if model.draw_offered_by else None,
            outcome=outcome,
            ended_at=model.ended_at,
            prize_claimed_by={Color[name.upper()] for name in model.prize_claimed_by},
            tracker=DrawTracker.from_fen_history(model.history_fen + [model.current_fen]),
        )

    def to_model(self) -> GameModel:
        """Encode back into a format the Service layer uses"""
        return GameModel(
            current_fen=self.state.to_fen(),
            history_fen=list(self.history),
            moves_uci=[move.to_uci() for move in self.moves],
            registered_players={
                color.name.lower(): player for color, player in self.players.items()
            },
            status=self.status.name.lower().replace("_", " "),
            stake=self.stake,
            mode=str(self.mode),
            time_control=str(self.time_control),
            clocks={color.name.lower(): seconds for color, seconds in self.clock.remaining.items()},
            clock_started_at=self.clock.running_since,
            draw_offered_by=self.draw_offered_by.name.lower() if self.draw_offered_by else None,
            winner=self.outcome.winner.name.lower() if self.outcome and self.outcome.winner else None,
            end_reason=str(self.outcome.reason) if self.outcome else None,
            outcome_overridden=self.outcome.overridden if self.outcome else False,
            ended_at=self.ended_at,
            prize_claimed_by=[color.name.lower() for color in Color if color in self.prize_claimed_by],
        )

    # --- READ ONLY ---
    @property
    def is_over(self) -> bool:
        return self.status in TERMINAL_STATUSES or self.status == Status.SETTLED

    def player_color(self, player: str) -> Color:
        color = next((color for color, name in self.players.items() if name == player), None)
        if color is None:
            raise NotAParticipantError(f"{player} is not playing in this game.")
        return color

    @property
    def winner(self) -> Optional[str]:
        """Name of the winning player, None for a draw or a game still in progress"""
        if self.outcome is None or self.outcome.winner is None:
            return None
        return self.players[self.outcome.winner]

    def clock_status(self, now: float) -> dict[Color, float]:
        """Remaining seconds per player, with the running clock charged up to `now`"""
        if self.status != Status.ACTIVE:
            return dict(self.clock.remaining)
        return {
            color: self.clock.remaining_for(color, self.state.color_to_move, now)
            for color in Color
        }

    def draw_rule_status(self) -> DrawRuleStatus:
        return self.tracker.status()

    def legal_moves(self, player: str) -> list[str]:
        """Legal moves of the player to move, in UCI notation (e.g. for displaying to the user)"""
        self._assert_active()
        self._assert_your_turn(player)
        return [move.to_uci() for move in legal_moves(self.state)]

    def pop_events(self) -> list[GameEvent]:
        """Hand the events recorded so far to the caller, and forget them."""
        emitted, self.events = self.events, []
        return emitted

    # --- LIFECYCLE: JOIN ---
    def register_player(self, player: str, stake: int, now: float) -> None:
        """Registering the 2nd player to an open game: starts the clock of white."""
        if self.status != Status.CREATED:
            raise GameStateError(
                f"Cannot join this game. Game is not accepting new players. status: {self.status}"
            )
        if player in self.players.values():
            raise GameStateError("Cannot join your own game.")
        if stake != self.stake:
            raise StakeMismatchError(
                f"Please put up the same stake as your opponent: {self.stake} (got {stake})."
            )

        creator_color = next(iter(self.players))
        player_color = creator_color.opponent
        self.players[player_color] = player
        self.clock.start(now)
        self._change_status(Status.ACTIVE)
        self._emit(events.PlayerJoined(player, player_color.name.lower(), stake))

    # --- LIFECYCLE: MOVES ---
    def submit_move(
        self,
        player: str,
        origin: tuple[int, int],
        destination: tuple[int, int],
        promote_to: Optional[PieceType],
        now: float,
    ) -> Verdict:
        """Move given as raw (file, rank) coordinates, each in the 0-7 range."""
        move = Move(
            Square.from_coordinates(*origin),
            Square.from_coordinates(*destination),
            promote_to,
        )
        return self.make_move(move, player, now)

    def make_move(self, move: Move, player: str, now: float) -> Verdict:
        """
        Attempt to make a move
        -----

        1. game must be in progress, it must be your turn and your clock may not have run out
        2. ask the rules engine for a verdict
        3. illegal? --> friendly game: raise, nothing changes. tournament game: you lose the game (board untouched).
        4. legal? --> update position, history, draw bookkeeping, clocks, and end the game on checkmate / stalemate
        """
        self._assert_active()
        self._assert_your_turn(player)
        mover = self.state.color_to_move
        if self.clock.is_flag_fallen(mover, now):
            raise ClockExpiredError(
                "Your time is up. Your opponent can claim the victory by timeout."
            )

        verdict = validate(self.state, move)
        if isinstance(verdict, IllegalMove):
            self._handle_illegal_move(verdict, player, now)
            return verdict

        self._apply(verdict, player, now)
        return verdict

    def _handle_illegal_move(self, verdict: IllegalMove, player: str, now: float) -> None:
        """Malformed input is always just rejected. A real rule violation costs the game in tournament mode."""
        if verdict.is_invalid_input or self.mode == GameMode.FRIENDLY:
            logger.info("Rejected move %s by %s: %s", verdict.move.to_uci(), player, verdict.reason)
            raise verdict.to_error()

        logger.warning(
            "Illegal move %s by %s in tournament game (%s): forfeit",
            verdict.move.to_uci(),
            player,
            verdict.reason,
        )
        mover = self.state.color_to_move
        self._end_game(Status.RESIGNED, mover.opponent, EndReason.ILLEGAL_MOVE, now)

    def _apply(self, verdict: LegalMove, player: str, now: float) -> None:
        mover = self.state.color_to_move
        # the FEN history gets the position *before* the move
        self.history.append(self.state.to_fen())
        self.state = verdict.resulting_state
        self.moves.append(verdict.move)
        self.tracker.record_move(self.state.repetition_key(), verdict.resets_progress)
        self.clock.switch(mover, now)
        # a move counters any pending draw offer
        self.draw_offered_by = None

        self._emit(
            events.MoveMade(
                player=player,
                origin=verdict.move.from_square.to_algebraic(),
                destination=verdict.move.to_square.to_algebraic(),
                uci=verdict.move.to_uci(),
                captured_piece=describe_piece(verdict.captured_piece),
                flags=verdict.flags(),
            )
        )
        logger.debug("%s played %s %s", player, verdict.move.to_uci(), verdict.flags())

        if verdict.is_checkmate:
            self._end_game(Status.CHECKMATE, mover, EndReason.CHECKMATE, now)
        elif verdict.is_stalemate:
            self._end_game(Status.STALEMATE_DRAW, None, EndReason.STALEMATE, now)

    # --- LIFECYCLE: RESIGN / DRAW ---
    def resign(self, player: str, now: float) -> None:
        self._assert_active()
        color = self.player_color(player)
        self._end_game(Status.RESIGNED, color.opponent, EndReason.RESIGNATION, now)

    def offer_draw(self, player: str) -> None:
        """The offer stands until it is accepted, declined, cancelled, countered by a move, or the game ends."""
        self._assert_active()
        color = self.player_color(player)
        if self.draw_offered_by == color:
            raise GameStateError("You already offered a draw.")
        if self.draw_offered_by == color.opponent:
            raise GameStateError("Your opponent already offered a draw. Accept it instead.")
        self.draw_offered_by = color
        self._emit(events.DrawOffered(player))

    def accept_draw(self, player: str, now: float) -> None:
        self._assert_active()
        color = self.player_color(player)
        self._assert_offer_by(color.opponent)
        self._emit(events.DrawAccepted(player))
        self._end_game(Status.AGREED_DRAW, None, EndReason.AGREEMENT, now)

    def decline_draw(self, player: str) -> None:
        self._assert_active()
        color = self.player_color(player)
        self._assert_offer_by(color.opponent)
        self.draw_offered_by = None
        self._emit(events.DrawDeclined(player))

    def cancel_draw_offer(self, player: str) -> None:
        self._assert_active()
        color = self.player_color(player)
        self._assert_offer_by(color)
        self.draw_offered_by = None
        self._emit(events.DrawOfferCancelled(player))

    def claim_draw_by_repetition(self, player: str, now: float) -> None:
        """Either player may claim once the current position occurred three times."""
        self._assert_active()
        self.player_color(player)
        if not self.tracker.can_claim_repetition(self.state.repetition_key()):
            raise DrawConditionNotMetError(
                "The current position has not occurred three times."
            )
        self._end_game(Status.REPETITION_DRAW, None, EndReason.REPETITION, now)

    def claim_draw_by_fifty_move_rule(self, player: str, now: float) -> None:
        """Either player may claim after 100 half-moves without capture or pawn move."""
        self._assert_active()
        self.player_color(player)
        if not self.tracker.can_claim_fifty_move_rule():
            raise DrawConditionNotMetError(
                f"Only {self.tracker.half_moves_since_progress} half-moves since the last capture or pawn move."
            )
        self._end_game(Status.FIFTY_MOVE_DRAW, None, EndReason.FIFTY_MOVE_RULE, now)

    # --- LIFECYCLE: TIMEOUT ---
    def claim_victory_by_timeout(self, player: str, now: float) -> None:
        """You win if your opponent is to move and has used up its remaining time since your last move."""
        self._assert_active()
        color = self.player_color(player)
        if self.state.color_to_move == color:
            raise TimeoutNotYetElapsedError(
                "Your own clock is running. Only the player waiting for a move can claim a timeout."
            )
        if not self.clock.is_flag_fallen(color.opponent, now):
            remaining = self.clock.remaining_for(color.opponent, color.opponent, now)
            raise TimeoutNotYetElapsedError(
                f"Your opponent still has {remaining:.0f} seconds left."
            )
        self._end_game(Status.TIMED_OUT, color, EndReason.TIMEOUT, now)

    # --- SETTLEMENT ---
    def assert_settleable(self, now: float, challenge_window: float = 0) -> None:
        """Game must be over and the dispute challenge window must have passed."""
        if self.status == Status.SETTLED:
            raise AlreadySettledError("Game has already been settled.")
        if self.status not in TERMINAL_STATUSES:
            raise GameNotActiveError(
                f"Game has not ended yet. status: {self.status}"
            )
        assert self.ended_at is not None
        if now < self.ended_at + challenge_window:
            raise ChallengeWindowOpenError(
                f"The result can still be challenged for {self.ended_at + challenge_window - now:.0f} seconds."
            )

    def settle(self, now: float, challenge_window: float = 0) -> bool:
        """Mark the game as settled. Idempotent: returns False if it already was."""
        if self.status == Status.SETTLED:
            return False
        self.assert_settleable(now, challenge_window)
        self._change_status(Status.SETTLED)
        return True

    def claim_prize(self, player: str, now: float, challenge_window: float = 0) -> int:
        """
        The winner (either player after a draw) claims the prize. The first claim settles the game.

        Returns the amount due to the player: both stakes for the winner, their own stake back after a draw.
        Every entitled player claims once, also after the game got settled by someone else.
        """
        color = self.player_color(player)
        if color in self.prize_claimed_by:
            raise AlreadySettledError("You already claimed your prize.")
        if self.status != Status.SETTLED:
            self.assert_settleable(now, challenge_window)
        assert self.outcome is not None
        if not (self.outcome.is_draw or self.outcome.winner == color):
            raise GameStateError("Only the winner can claim the prize.")

        amount = self.stake if self.outcome.is_draw else 2 * self.stake
        self.prize_claimed_by.add(color)
        self.settle(now, challenge_window)
        self._emit(events.PrizeClaimed(player, amount))
        return amount

    def override_outcome(self, winner: Optional[Color]) -> None:
        """Dispute verdict: replace the winner of a finished game. The game never goes back to being active."""
        if self.status == Status.SETTLED:
            raise AlreadySettledError("Game has already been settled, its outcome is final.")
        if self.status not in TERMINAL_STATUSES or self.outcome is None:
            raise GameStateError("Only the outcome of a finished game can be overridden.")
        self.outcome = Outcome(winner=winner, reason=self.outcome.reason, overridden=True)
        self._emit(events.OutcomeOverridden(self.winner))
        logger.warning("Outcome overridden, winner now: %s", self.winner or "draw")

    # -- PRIVATE HELPERS ---
    def _emit(self, event: GameEvent) -> None:
        self.events.append(event)

    def _change_status(self, new_status: Status) -> None:
        logger.info("Game status %s -> %s", self.status.name, new_status.name)
        self.status = new_status

    def _end_game(
        self, status: Status, winner: Optional[Color], reason: EndReason, now: float
    ) -> None:
        self.clock.stop(self.state.color_to_move, now)
        self.draw_offered_by = None
        self.outcome = Outcome(winner=winner, reason=reason)
        self.ended_at = now
        self._change_status(status)
        self._emit(events.GameEnded(reason=str(reason), winner=self.winner))

    def _assert_active(self) -> None:
        if self.status != Status.ACTIVE:
            raise GameNotActiveError(f"Game is not in progress. status: {self.status}")

    def _assert_offer_by(self, color: Color) -> None:
        if self.draw_offered_by != color:
            raise NoDrawOfferError("There is no matching draw offer.")

    def _get_turn_player(self) -> str:
        return self.players[self.state.color_to_move]

    def _assert_your_turn(self, player: str) -> None:
        """You must wait for your turn before calculating legal moves / making a move."""
        self.player_color(player)
        player_to_move = self._get_turn_player()
        if player != player_to_move:
            raise NotYourTurnError(
                f"It is not your turn. Waiting for player {player_to_move} to make a move first."
            )


def _assert_playable(state: PositionState) -> None:
    """Exactly one king per side, and the side that just moved cannot be in check."""
    for color in Color:
        if state.board.count_kings(color) != 1:
            raise InvalidFENError(f"Position needs exactly one {color.name.lower()} king.")
    if is_check(state.board, state.color_to_move.opponent):
        raise InvalidFENError("The side not to move cannot be in check.")
