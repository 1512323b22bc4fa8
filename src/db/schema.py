"""Database tables / schema"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.core.models import utc_now


class Base(DeclarativeBase):
    pass


class DBGame(Base):
    """One row per game session. Columns mirror GameModel; the moves are the source of truth on restore."""

    __tablename__ = "games"
    id: Mapped[UUID] = mapped_column(primary_key=True)
    player_id: Mapped[Optional[str]] = mapped_column(index=True)
    starting_fen: Mapped[str]
    current_fen: Mapped[str]
    moves_uci: Mapped[list[str]] = mapped_column(JSON, default=list)
    moves_san: Mapped[list[str]] = mapped_column(JSON, default=list)
    history_fen: Mapped[list[str]] = mapped_column(JSON, default=list)
    player_color: Mapped[str]
    difficulty: Mapped[str]
    status: Mapped[str]
    status_color: Mapped[Optional[str]]
    draw_reason: Mapped[Optional[str]]
    ply: Mapped[int] = mapped_column(default=0)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)
