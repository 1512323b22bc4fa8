"""
Repository protocol, plus a dict backed implementation.

The SQLAlchemy implementation lives in sql_repository.py. The in-memory one keeps games for the lifetime of the process
(single process use, tests).
"""

from copy import deepcopy
from typing import Optional, Protocol
from uuid import UUID, uuid4

from src.core.models import GameModel


class GameRepository(Protocol):
    """Persistence layer orchestration"""

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        ...

    def create_game(self, game: GameModel) -> tuple[GameModel, UUID]:
        """Store new game and return the stored data + newly created game ID."""
        ...

    def update_game(self, game_id: UUID, game: GameModel) -> GameModel | None:
        """Replace the stored state of an existing game. None if there is no such game."""
        ...

    def delete_game(self, game_id: UUID) -> GameModel | None:
        """Remove a game's record."""
        ...

    def list_games(
        self,
        player_id: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[tuple[UUID, GameModel]]:
        """Games (of one player, if given) with their IDs, most recently started first."""
        ...


class InMemoryGameRepository:
    """Stores copies: a caller changing its GameModel afterwards does not change what is stored."""

    def __init__(self) -> None:
        self._games: dict[UUID, GameModel] = {}

    def get_game(self, game_id: UUID) -> GameModel | None:
        game = self._games.get(game_id)
        return deepcopy(game) if game else None

    def create_game(self, game: GameModel) -> tuple[GameModel, UUID]:
        new_id = uuid4()
        self._games[new_id] = deepcopy(game)
        return deepcopy(game), new_id

    def update_game(self, game_id: UUID, game: GameModel) -> GameModel | None:
        if game_id not in self._games:
            return None
        self._games[game_id] = deepcopy(game)
        return deepcopy(game)

    def delete_game(self, game_id: UUID) -> GameModel | None:
        return self._games.pop(game_id, None)

    def list_games(
        self,
        player_id: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[tuple[UUID, GameModel]]:
        # newest first, also among games started at the same moment
        games = sorted(
            reversed(self._games.items()),
            key=lambda item: item[1].started_at,
            reverse=True,
        )
        if player_id is not None:
            games = [(game_id, game) for game_id, game in games if game.player_id == player_id]
        end = None if limit is None else offset + limit
        return [(game_id, deepcopy(game)) for game_id, game in games[offset:end]]
