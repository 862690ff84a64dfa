"""Implementation of (Game)Repository using SQLAlchemy"""

import logging
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from referee.core.exceptions import RepositoryError
from referee.core.models import GameModel
from referee.db.schema import DBGame

logger = logging.getLogger(__name__)

# GameModel fields stored 1:1 in a column of the same name
_COLUMNS = (
    "current_fen",
    "history_fen",
    "moves_uci",
    "registered_players",
    "status",
    "stake",
    "mode",
    "time_control",
    "clocks",
    "clock_started_at",
    "draw_offered_by",
    "winner",
    "end_reason",
    "outcome_overridden",
    "ended_at",
    "prize_claimed_by",
)


class SQLGameRepository:
    """Data stored using SQL / methods implemented using SQLAlchemy"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        game_db = self._fetch_game(game_id)
        if game_db:
            return self._to_model(game_db)
        return None

    def create_game(self, game: GameModel) -> tuple[GameModel, UUID]:
        """Store new game and return the stored data + newly created game ID."""

        new_id = uuid4()
        game_db = DBGame(id=new_id, **{column: getattr(game, column) for column in _COLUMNS})
        self.db.add(game_db)
        self._commit()
        self.db.refresh(game_db)
        logger.debug("Stored new game %s", new_id)
        return self._to_model(game_db), new_id

    def update_game(self, game_id: UUID, game: GameModel) -> GameModel | None:
        """Add new info to existing record."""
        game_db = self._fetch_game(game_id)
        if not game_db:
            return None
        for column in _COLUMNS:
            # JSON columns: assign fresh containers so SQLAlchemy sees the change
            value = getattr(game, column)
            setattr(game_db, column, value.copy() if isinstance(value, (list, dict)) else value)
        self._commit()
        self.db.refresh(game_db)
        return self._to_model(game_db)

    def delete_game(self, game_id: UUID) -> GameModel | None:
        """Remove a game's record."""
        game_db = self._fetch_game(game_id)
        if not game_db:
            return None
        game_model = self._to_model(game_db)
        self.db.delete(game_db)
        self._commit()
        return game_model

    def list_game_ids(self) -> list[UUID]:
        return list(self.db.scalars(select(DBGame.id)))

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Database commit failed: %s", e)
            raise RepositoryError("Could not store the game.") from e

    def _fetch_game(self, game_id: UUID) -> DBGame | None:
        query = select(DBGame).where(DBGame.id == game_id)
        return self.db.scalar(query)

    def _to_model(self, game_db: DBGame) -> GameModel:
        """Convert SQLAlchemy model to data transfer model."""
        return GameModel(
            current_fen=game_db.current_fen,
            history_fen=list(game_db.history_fen),
            moves_uci=list(game_db.moves_uci),
            registered_players=dict(game_db.registered_players),
            status=game_db.status,
            stake=game_db.stake,
            mode=game_db.mode,
            time_control=game_db.time_control,
            clocks=dict(game_db.clocks),
            clock_started_at=game_db.clock_started_at,
            draw_offered_by=game_db.draw_offered_by,
            winner=game_db.winner,
            end_reason=game_db.end_reason,
            outcome_overridden=game_db.outcome_overridden,
            ended_at=game_db.ended_at,
            prize_claimed_by=list(game_db.prize_claimed_by),
        )
