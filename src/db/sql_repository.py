"""Implementation of (Game)Repository using SQLAlchemy"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.core.models import GameModel
from src.db.schema import DBGame

# columns that are copied one to one between DBGame and GameModel
GAME_COLUMNS = (
    "starting_fen",
    "current_fen",
    "moves_uci",
    "moves_san",
    "history_fen",
    "player_color",
    "difficulty",
    "status",
    "status_color",
    "draw_reason",
    "ply",
    "player_id",
    "started_at",
    "ended_at",
)


class SQLGameRepository:
    """Data stored using SQL / methods implemented using SQLAlchemy"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_game(self, game_id: UUID) -> GameModel | None:
        game_db = self._fetch_game(game_id)
        if game_db:
            return self._to_model(game_db)
        return None

    def create_game(self, game: GameModel) -> tuple[GameModel, UUID]:
        new_id = uuid4()
        game_db = DBGame(id=new_id, **self._columns(game))
        self.db.add(game_db)
        self.db.commit()
        self.db.refresh(game_db)
        return self._to_model(game_db), new_id

    def update_game(self, game_id: UUID, game: GameModel) -> GameModel | None:
        game_db = self._fetch_game(game_id)
        if not game_db:
            return None
        for name, value in self._columns(game).items():
            setattr(game_db, name, value)
        self.db.commit()
        self.db.refresh(game_db)
        return self._to_model(game_db)

    def delete_game(self, game_id: UUID) -> GameModel | None:
        game_db = self._fetch_game(game_id)
        if not game_db:
            return None
        game_model = self._to_model(game_db)
        self.db.delete(game_db)
        self.db.commit()
        return game_model

    def list_games(
        self,
        player_id: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[tuple[UUID, GameModel]]:
        query = select(DBGame)
        if player_id is not None:
            query = query.where(DBGame.player_id == player_id)
        query = query.order_by(DBGame.started_at.desc(), DBGame.created_at.desc()).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [(game_db.id, self._to_model(game_db)) for game_db in self.db.scalars(query)]

    def _fetch_game(self, game_id: UUID) -> DBGame | None:
        query = select(DBGame).where(DBGame.id == game_id)
        return self.db.scalar(query)

    @staticmethod
    def _columns(game: GameModel) -> dict:
        # JSON columns get their own list, so later changes to the model do not leak into the session
        return {
            name: list(value) if isinstance(value, list) else value
            for name, value in ((name, getattr(game, name)) for name in GAME_COLUMNS)
        }

    def _to_model(self, game_db: DBGame) -> GameModel:
        """Convert SQLAlchemy model to data transfer model."""
        return GameModel(
            **{
                name: _from_column(value)
                for name, value in ((name, getattr(game_db, name)) for name in GAME_COLUMNS)
            }
        )


def _from_column(value):
    if isinstance(value, list):
        return list(value)
    # SQLite hands back naive datetimes, even for columns declared with a timezone. They were stored in UTC.
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
