"""Database tables / schema"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DBGame(Base):
    __tablename__ = "games"
    id: Mapped[UUID] = mapped_column(primary_key=True)
    current_fen: Mapped[str]
    history_fen: Mapped[list[str]] = mapped_column(JSON, default=list)
    moves_uci: Mapped[list[str]] = mapped_column(JSON, default=list)
    registered_players: Mapped[dict[str, str]] = mapped_column(JSON)
    status: Mapped[str]
    stake: Mapped[int] = mapped_column(default=0)
    mode: Mapped[str] = mapped_column(default="friendly")
    time_control: Mapped[str] = mapped_column(default="classical")
    clocks: Mapped[dict[str, float]] = mapped_column(JSON, default=dict)
    clock_started_at: Mapped[Optional[float]]
    draw_offered_by: Mapped[Optional[str]]
    winner: Mapped[Optional[str]]
    end_reason: Mapped[Optional[str]]
    outcome_overridden: Mapped[bool] = mapped_column(default=False)
    ended_at: Mapped[Optional[float]]
    prize_claimed_by: Mapped[list[str]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)
