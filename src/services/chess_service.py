"""Orchestration of communication from API router to business logic and persistence layers (and the reverse direction)."""

import asyncio
import logging
import threading
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Iterator, Optional
from uuid import UUID

from src.ai.orchestrator import AIMoveOrchestrator
from src.ai.service import ServiceHealth, ServiceStatus, SupportsHealthCheck
from src.api.models import (
    AIMoveResponse,
    AIMoveTurnRequest,
    AIServiceStatusResponse,
    CreateGameRequest,
    DeleteGameRequest,
    GameHistoryRequest,
    GameHistoryResponse,
    GameResponse,
    GameResultResponse,
    GameSummaryResponse,
    GetGameRequest,
    LegalMovesRequest,
    LegalMovesResponse,
    MoveRequest,
    PlayerStatsRequest,
    PlayerStatsResponse,
    ResetGameRequest,
    UndoRequest,
)
from src.chess.game import GameResult, GameSession, game_result
from src.chess.moves import Move
from src.chess.notation import parse_move
from src.chess.square import Square
from src.chess.status import status_from_parts
from src.core.exceptions import (
    GameStateError,
    IllegalMoveError,
    IllegalMoveReason,
    NotYourTurnError,
    RepositoryError,
)
from src.core.models import GameModel
from src.db.repository import GameRepository
from src.services.statistics import compute_player_stats

log = logging.getLogger(__name__)

LOCK_POLL_INTERVAL_S = 0.01


class ChessService:
    """
    Orchestration of layers for chess game.

    Every call loads the game fresh from the repository: the service itself keeps no game state, only a lock per game
    so that two requests for the same game cannot interleave their read-modify-write.
    """

    def __init__(
        self,
        repository: GameRepository,
        orchestrator: Optional[AIMoveOrchestrator] = None,
    ) -> None:
        self.repo = repository
        self.orchestrator = orchestrator
        self._locks: dict[UUID, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # -- API routes logic ---
    def create_new_game(self, request: CreateGameRequest) -> GameResponse:
        """Player requested to create a new game against the AI."""
        session = GameSession.new_game(
            player_color=request.player_color,
            difficulty=request.difficulty,
            starting_fen=request.starting_fen,
            player_id=request.player_id,
        )
        _, game_id = self.repo.create_game(session.to_model())
        log.info("Game %s created", game_id)
        return self._create_game_response(game_id, session)

    def get_game_state(self, request: GetGameRequest) -> GameResponse:
        """
        Retrieve current game state.
        ----
        Used in "polling" loop by frontend, e.g. to check whether the AI has moved.
        """
        session = self._load_session(request.game_id)
        return self._create_game_response(request.game_id, session)

    def legal_moves(self, request: LegalMovesRequest) -> LegalMovesResponse:
        """Legal moves of the color to move (optionally only those of the piece on one square)."""
        session = self._load_session(request.game_id)
        if request.square is None:
            moves = session.legal_moves()
        else:
            moves = session.legal_moves_from(Square.from_algebraic(request.square))
        return LegalMovesResponse(
            game_id=request.game_id,
            color=session.whose_turn(),
            legal_moves=[move.to_uci() for move in moves],
        )

    def make_move(self, request: MoveRequest) -> GameResponse:
        """The human player's move. Rejected when it is the AI's turn."""
        with self._game_lock(request.game_id):
            session = self._load_session(request.game_id)
            if session.is_over:
                raise IllegalMoveError(
                    f"Game is over ({session.status.kind}). No more moves accepted.",
                    reason=IllegalMoveReason.GAME_ENDED,
                )
            if not session.is_players_turn():
                raise NotYourTurnError(f"It is the AI's turn ({session.ai_color}).")

            session.propose_move(self._requested_move(session, request))
            self._save(request.game_id, session)
        return self._create_game_response(request.game_id, session)

    async def request_ai_move(self, request: AIMoveTurnRequest) -> AIMoveResponse:
        """
        Let the AI play its move
        ---

        The AI may take a while (up to the orchestrator deadline), so the game lock is not held while waiting for it.
        The move is only applied if the game did not change in the meantime.
        """
        if self.orchestrator is None:
            raise GameStateError("No AI opponent configured.")

        session = self._load_session(request.game_id)
        fen_before = session.position.to_fen()
        ply_before = session.ply
        ai_move = await self.orchestrator.choose_move(session)

        async with self._game_lock_async(request.game_id):
            session = self._load_session(request.game_id)
            if session.position.to_fen() != fen_before or session.ply != ply_before:
                raise GameStateError("Game changed while the AI was thinking.")
            session.propose_move(ai_move.move)
            self._save(request.game_id, session)

        return AIMoveResponse(
            game=self._create_game_response(request.game_id, session),
            move=ai_move.move.to_uci(),
            san=ai_move.san,
            attempts=ai_move.attempts,
            used_fallback=ai_move.used_fallback,
            fallback_reason=ai_move.fallback_reason,
        )

    def undo_move(self, request: UndoRequest) -> GameResponse:
        with self._game_lock(request.game_id):
            session = self._load_session(request.game_id)
            if request.count is None:
                session.undo_last_player_move()
            else:
                session.undo(request.count)
            self._save(request.game_id, session)
        return self._create_game_response(request.game_id, session)

    def reset_game(self, request: ResetGameRequest) -> GameResponse:
        with self._game_lock(request.game_id):
            session = self._load_session(request.game_id)
            session.reset()
            self._save(request.game_id, session)
        return self._create_game_response(request.game_id, session)

    def delete_game(self, request: DeleteGameRequest) -> None:
        """Handle a request to delete a Game record."""
        with self._game_lock(request.game_id):
            if self.repo.delete_game(request.game_id) is None:
                raise RepositoryError(f"Game with game_id={request.game_id} not found.")
        with self._locks_guard:
            self._locks.pop(request.game_id, None)

    def game_history(self, request: GameHistoryRequest) -> GameHistoryResponse:
        """Stored games, most recently started first (one page of them)."""
        games = self.repo.list_games(
            player_id=request.player_id, limit=request.limit, offset=request.offset
        )
        return GameHistoryResponse(
            games=[self._create_summary(game_id, game) for game_id, game in games]
        )

    def player_stats(self, request: PlayerStatsRequest) -> PlayerStatsResponse:
        games = [game for _, game in self.repo.list_games(player_id=request.player_id)]
        return compute_player_stats(request.player_id, games)

    async def ai_service_status(self) -> AIServiceStatusResponse:
        """
        Health of the move generation service.
        ---
        Moves can be made either way: without the service the AI falls back to the local move generator.
        """
        if self.orchestrator is None:
            health = ServiceHealth(
                ServiceStatus.UNAVAILABLE, "No AI opponent configured.", can_retry=False
            )
        elif not isinstance(self.orchestrator.generator, SupportsHealthCheck):
            health = ServiceHealth(
                ServiceStatus.AVAILABLE, "Move generator has no health check.", can_retry=True
            )
        else:
            try:
                health = await asyncio.wait_for(
                    self.orchestrator.generator.check_health(),
                    timeout=self.orchestrator.config.attempt_timeout_s,
                )
            except TimeoutError:
                log.warning("AI service health check timed out")
                health = ServiceHealth(
                    ServiceStatus.UNAVAILABLE, "AI service did not answer in time.", can_retry=True
                )
        return AIServiceStatusResponse(
            status=health.status,
            message=health.message,
            can_retry=health.can_retry,
            fallback_available=health.fallback_available,
        )

    # -- Internal helpers --
    def _lock_for(self, game_id: UUID) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(game_id, threading.Lock())

    @contextmanager
    def _game_lock(self, game_id: UUID) -> Iterator[None]:
        with self._lock_for(game_id):
            yield

    @asynccontextmanager
    async def _game_lock_async(self, game_id: UUID) -> AsyncIterator[None]:
        """The same per-game lock, polled so the event loop keeps running while another request holds it."""
        lock = self._lock_for(game_id)
        while not lock.acquire(blocking=False):
            await asyncio.sleep(LOCK_POLL_INTERVAL_S)
        try:
            yield
        finally:
            lock.release()

    @staticmethod
    def _requested_move(session: GameSession, request: MoveRequest) -> Move:
        if request.notation is not None:
            return parse_move(session.position, request.notation)
        return Move(
            Square.from_algebraic(request.from_square),
            Square.from_algebraic(request.to_square),
            request.promote_to,
        )

    def _create_game_response(self, game_id: UUID, session: GameSession) -> GameResponse:
        """Convert the state of a session to a GameResponse (for game with given ID.)"""
        model = session.to_model()
        return GameResponse(
            game_id=game_id,
            player_id=session.player_id,
            fen=model.current_fen,
            starting_fen=model.starting_fen,
            status=model.status,
            status_color=model.status_color,
            draw_reason=model.draw_reason,
            turn=session.whose_turn(),
            player_color=session.player_color,
            difficulty=session.difficulty,
            move_history=model.moves_uci,
            move_history_san=model.moves_san,
            result=self._create_result_response(session.result),
        )

    def _create_summary(self, game_id: UUID, game: GameModel) -> GameSummaryResponse:
        """Summary of a stored game, without replaying its moves."""
        status = status_from_parts(game.status, game.status_color, game.draw_reason)
        return GameSummaryResponse(
            game_id=game_id,
            player_id=game.player_id,
            player_color=game.player_color,
            difficulty=game.difficulty,
            status=game.status,
            move_count=len(game.moves_uci),
            started_at=game.started_at,
            ended_at=game.ended_at,
            result=self._create_result_response(
                game_result(status, len(game.moves_uci), game.started_at, game.ended_at)
            ),
        )

    @staticmethod
    def _create_result_response(result: Optional[GameResult]) -> Optional[GameResultResponse]:
        if result is None:
            return None
        return GameResultResponse(
            winner=result.winner,
            reason=result.reason,
            move_count=result.move_count,
            duration_s=result.duration_s,
        )

    def _save(self, game_id: UUID, session: GameSession) -> None:
        if self.repo.update_game(game_id, session.to_model()) is None:
            raise RepositoryError(f"Game with {game_id=} not found.")

    def _load_session(self, game_id: UUID) -> GameSession:
        return GameSession.from_model(self._fetch_game(game_id))

    def _fetch_game(self, game_id: UUID) -> GameModel:
        """Attempt to find the game in the repository and raise error if it fails."""
        game_model = self.repo.get_game(game_id)
        if game_model is None:
            raise RepositoryError(f"Game with {game_id=} not found.")
        return game_model
