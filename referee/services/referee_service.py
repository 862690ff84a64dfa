"""Orchestration of communication from API router to business logic and persistence layers (and the reverse direction)."""

import logging
import time
from typing import Callable, Optional
from uuid import UUID

from referee.api.models import (
    BoardResponse,
    CreateGameRequest,
    DeleteGameRequest,
    GameResponse,
    GetGameRequest,
    JoinGameRequest,
    LegalMovesResponse,
    MoveRequest,
    OverrideOutcomeRequest,
    PlayerActionRequest,
    PrizeResponse,
)
from referee.chess.game import Game, Status
from referee.chess.moves import Move
from referee.chess.pieces import PieceType as ChessPieceType
from referee.chess.square import Square
from referee.core.config import Settings
from referee.core.exceptions import GameStateError, RepositoryError
from referee.core.models import GameModel
from referee.core.shared_types import Color, EndReason, GameMode, TimeControl
from referee.core.shared_types import Status as StatusCode
from referee.db.repository import GameRepository
from referee.services.collaborators import (
    DisputeService,
    Escrow,
    EventSink,
    GameOutcome,
    LoggingEventSink,
    PublishedEvent,
    RatingService,
)

logger = logging.getLogger(__name__)

# Games in these states can be removed without leaving a protocol half-way
DELETABLE_STATUSES = frozenset({Status.CREATED, Status.SETTLED})


class RefereeService:
    """Orchestration of layers for refereed chess games."""

    def __init__(
        self,
        repository: GameRepository,
        escrow: Optional[Escrow] = None,
        dispute_service: Optional[DisputeService] = None,
        rating_service: Optional[RatingService] = None,
        event_sink: Optional[EventSink] = None,
        settings: Optional[Settings] = None,
        now: Callable[[], float] = time.time,
    ) -> None:
        self.repo = repository
        self.escrow = escrow
        self.dispute_service = dispute_service
        self.rating_service = rating_service
        self.event_sink = event_sink or LoggingEventSink()
        self.settings = settings or Settings()
        self.now = now

    # -- API routes logic ---
    def create_game(self, request: CreateGameRequest) -> GameResponse:
        """First player requested to create a new game."""

        # Use info in CreateGameRequest to create a new Game, and convert into GameModel
        new_game = Game.new_game(
            player=request.player_name,
            color=str(request.color),
            stake=request.stake,
            mode=request.mode,
            time_control=request.time_control,
            starting_fen=request.starting_fen,
        )

        # Store the GameModel in the repository
        _, game_id = self.repo.create_game(new_game.to_model())

        # The creator's stake is held until the game is settled
        if self.escrow is not None and request.stake > 0:
            try:
                self.escrow.lock(game_id, request.player_name, request.stake)
            except Exception:
                logger.error("Could not lock stake of %s, dropping game %s", request.player_name, game_id)
                self.repo.delete_game(game_id)
                raise

        self._publish(game_id, new_game)
        return self._create_game_response(game_id, new_game)

    def join_game(self, request: JoinGameRequest) -> GameResponse:
        """Second player requested to join a game."""

        # Retrieve persisted GameModel from repository, create a new Game instance from it
        stored = self._fetch_game(request.game_id)
        game = Game.from_model(stored)

        # Register the requested player (starts the clock)
        game.register_player(request.player_name, request.stake, self.now())

        # Store first: a failing commit must not leave a stake locked for a game nobody joined
        if self.repo.update_game(request.game_id, game.to_model()) is None:
            raise RepositoryError(f"Game with game_id={request.game_id} not found.")

        if self.escrow is not None and request.stake > 0:
            try:
                self.escrow.lock(request.game_id, request.player_name, request.stake)
            except Exception:
                logger.error("Could not lock stake of %s, game %s stays open", request.player_name, request.game_id)
                self.repo.update_game(request.game_id, stored)
                raise

        self._publish(request.game_id, game)
        return self._create_game_response(request.game_id, game)

    def get_game_state(self, request: GetGameRequest) -> GameResponse:
        """
        Retrieve current game state.
        ----
        Used in "polling" loop by frontend to check when it is the player's turn for instance.
        """
        game = self._load_game(request.game_id)
        return self._create_game_response(request.game_id, game)

    def get_board(self, request: GetGameRequest) -> BoardResponse:
        """Board snapshot for rendering"""
        game = self._load_game(request.game_id)
        return BoardResponse(game_id=request.game_id, grid=game.state.board.to_grid())

    def legal_moves(self, request: PlayerActionRequest) -> LegalMovesResponse:
        """retrieve set of legal moves."""

        game = self._load_game(request.game_id)
        legal_moves = game.legal_moves(request.player_name)
        return LegalMovesResponse(
            game_id=request.game_id,
            player_name=request.player_name,
            color=Color[game.player_color(request.player_name).name],
            legal_moves=legal_moves,
        )

    def make_move(self, request: MoveRequest) -> GameResponse:
        """Make a move attempt."""

        # Parse data in MoveRequest (raises for squares off the board)
        move = Move(
            from_square=Square.from_algebraic(request.from_square),
            to_square=Square.from_algebraic(request.to_square),
            promote_to=ChessPieceType[request.promote_to.name] if request.promote_to else None,
        )

        # Attempt the move. NOTE: a tournament game also gets stored when the move lost the game
        game = self._act(request.game_id, lambda game: game.make_move(move, request.player_name, self.now()))
        return self._create_game_response(request.game_id, game)

    def resign(self, request: PlayerActionRequest) -> GameResponse:
        game = self._act(request.game_id, lambda game: game.resign(request.player_name, self.now()))
        return self._create_game_response(request.game_id, game)

    def offer_draw(self, request: PlayerActionRequest) -> GameResponse:
        game = self._act(request.game_id, lambda game: game.offer_draw(request.player_name))
        return self._create_game_response(request.game_id, game)

    def accept_draw(self, request: PlayerActionRequest) -> GameResponse:
        game = self._act(request.game_id, lambda game: game.accept_draw(request.player_name, self.now()))
        return self._create_game_response(request.game_id, game)

    def decline_draw(self, request: PlayerActionRequest) -> GameResponse:
        game = self._act(request.game_id, lambda game: game.decline_draw(request.player_name))
        return self._create_game_response(request.game_id, game)

    def cancel_draw_offer(self, request: PlayerActionRequest) -> GameResponse:
        game = self._act(request.game_id, lambda game: game.cancel_draw_offer(request.player_name))
        return self._create_game_response(request.game_id, game)

    def claim_draw_by_repetition(self, request: PlayerActionRequest) -> GameResponse:
        game = self._act(
            request.game_id,
            lambda game: game.claim_draw_by_repetition(request.player_name, self.now()),
        )
        return self._create_game_response(request.game_id, game)

    def claim_draw_by_fifty_move_rule(self, request: PlayerActionRequest) -> GameResponse:
        game = self._act(
            request.game_id,
            lambda game: game.claim_draw_by_fifty_move_rule(request.player_name, self.now()),
        )
        return self._create_game_response(request.game_id, game)

    def claim_victory_by_timeout(self, request: PlayerActionRequest) -> GameResponse:
        game = self._act(
            request.game_id,
            lambda game: game.claim_victory_by_timeout(request.player_name, self.now()),
        )
        return self._create_game_response(request.game_id, game)

    def settle_game(self, request: GetGameRequest) -> GameResponse:
        """
        Hand the final result over to escrow and rating service, then mark the game as settled.

        Settling a settled game changes nothing. If a collaborator fails, the game stays unsettled and can be retried.
        """
        game = self._load_game(request.game_id)
        if game.status == Status.SETTLED:
            logger.info("Game %s already settled", request.game_id)
            return self._create_game_response(request.game_id, game)

        now = self.now()
        window = self.settings.challenge_window_seconds
        game.assert_settleable(now, window)
        self._hand_off(request.game_id, game)
        game.settle(now, window)
        self._save_game(request.game_id, game)
        return self._create_game_response(request.game_id, game)

    def claim_prize(self, request: PlayerActionRequest) -> PrizeResponse:
        """The winner (or each player after a draw) collects. The first claim settles the game and hands it off."""
        game = self._load_game(request.game_id)
        was_settled = game.status == Status.SETTLED
        amount = game.claim_prize(
            request.player_name, self.now(), self.settings.challenge_window_seconds
        )
        if not was_settled:
            self._hand_off(request.game_id, game)
        self._save_game(request.game_id, game)
        return PrizeResponse(game_id=request.game_id, player_name=request.player_name, amount=amount)

    def override_outcome(self, request: OverrideOutcomeRequest) -> GameResponse:
        """Callback for the dispute service: record a different winner (or a draw) for a finished game."""

        def override(game: Game) -> None:
            winner = game.player_color(request.winner) if request.winner is not None else None
            game.override_outcome(winner)

        game = self._act(request.game_id, override)
        return self._create_game_response(request.game_id, game)

    def list_games(self) -> list[UUID]:
        """Show all recorded games."""
        return self.repo.list_game_ids()

    def delete_game(self, request: DeleteGameRequest) -> None:
        """Handle a request to delete a Game record. Games in progress / awaiting settlement cannot be deleted."""
        game = self._load_game(request.game_id)
        if game.status not in DELETABLE_STATUSES:
            raise GameStateError(
                f"Cannot delete a game that is not finished and settled. status: {game.status}"
            )
        self.repo.delete_game(request.game_id)

    # -- Internal helpers --
    def _act(self, game_id: UUID, action: Callable[[Game], object]) -> Game:
        """Load the game, let it perform the action, store it. Nothing is stored if the action raises."""
        game = self._load_game(game_id)
        was_over = game.is_over
        action(game)
        self._save_game(game_id, game)
        if game.is_over and not was_over:
            self._open_challenge(game_id, game)
        return game

    def _open_challenge(self, game_id: UUID, game: Game) -> None:
        if self.dispute_service is not None:
            self.dispute_service.open_challenge(game_id, self._outcome(game_id, game))

    def _hand_off(self, game_id: UUID, game: Game) -> None:
        """Settlement handoff. Keyed by game ID, so a retry after a failure is recognisable downstream."""
        outcome = self._outcome(game_id, game)
        if self.escrow is not None:
            self.escrow.release(game_id, outcome)
        if self.rating_service is not None:
            self.rating_service.record(outcome.players, outcome)
        logger.info("Game %s handed off for settlement, winner: %s", game_id, outcome.winner or "draw")

    def _outcome(self, game_id: UUID, game: Game) -> GameOutcome:
        assert game.outcome is not None
        return GameOutcome(
            game_id=game_id,
            players={color.name.lower(): player for color, player in game.players.items()},
            winner=game.winner,
            reason=str(game.outcome.reason),
            stake=game.stake,
            overridden=game.outcome.overridden,
        )

    def _publish(self, game_id: UUID, game: Game) -> None:
        for event in game.pop_events():
            self.event_sink.publish(PublishedEvent(game_id, event))

    def _create_game_response(self, game_id: UUID, game: Game) -> GameResponse:
        """Convert info of the Game to a GameResponse (for game with given ID.)"""
        model = game.to_model()

        # Before the first turn gets played, the starting FEN equals the current FEN. Otherwise get it as first recorded FEN in history.
        starting_fen = (
            model.history_fen[0] if len(model.history_fen) > 0 else model.current_fen
        )
        draw_rules = game.draw_rule_status()
        return GameResponse(
            game_id=game_id,
            players=model.registered_players,
            fen_state=model.current_fen,
            starting_state=starting_fen,
            move_history=model.moves_uci,
            status=StatusCode(model.status),
            mode=GameMode(model.mode),
            time_control=TimeControl(model.time_control),
            stake=model.stake,
            clocks={
                color.name.lower(): seconds
                for color, seconds in game.clock_status(self.now()).items()
            },
            draw_offered_by=model.draw_offered_by,
            winner=game.winner,
            end_reason=EndReason(model.end_reason) if model.end_reason else None,
            outcome_overridden=model.outcome_overridden,
            half_moves_since_progress=draw_rules.half_moves,
            max_repetitions=draw_rules.max_repetitions,
        )

    def _load_game(self, game_id: UUID) -> Game:
        return Game.from_model(self._fetch_game(game_id))

    def _save_game(self, game_id: UUID, game: Game) -> None:
        if self.repo.update_game(game_id, game.to_model()) is None:
            raise RepositoryError(f"Game with {game_id=} not found.")
        self._publish(game_id, game)

    def _fetch_game(self, game_id: UUID) -> GameModel:
        """Attempt to find the game in the repository and raise error if it fails."""
        game_model = self.repo.get_game(game_id)
        if game_model is None:
            raise RepositoryError(f"Game with {game_id=} not found.")
        return game_model
