"""
The GameSession is the entrypoint into the domain layer for the service layer.
It holds one game (position, history, status, the human player's color) and is the ONLY thing that changes it:
every position change goes through `propose_move` (or `undo` / `reset`, which rewind along the same history).

Legality questions are all delegated to the rules engine (src/chess/rules.py).
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Self

from src.chess import rules
from src.chess.fen import STARTING_FEN
from src.chess.moves import Move
from src.chess.notation import to_san
from src.chess.position import Position
from src.chess.square import Square
from src.chess.status import (
    Checkmate,
    Draw,
    GameStatus,
    Stalemate,
    status_from_parts,
    status_to_parts,
)
from src.core.exceptions import (
    ChessError,
    CorruptStateError,
    GameStateError,
    IllegalMoveError,
    IllegalMoveReason,
)
from src.core.models import GameModel, utc_now
from src.core.shared_types import Color, Difficulty, DrawReason

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class MoveRecord:
    """One entry of the move history: the move, how it is written, who made it, and where it led."""

    move: Move
    san: str
    color: Color
    position_after: Position


@dataclass(frozen=True)
class GameResult:
    """Outcome of a finished game. `winner` is None for draws (stalemate included)."""

    winner: Optional[Color]
    reason: str
    move_count: int
    # whole seconds from the start of the game until it ended
    duration_s: int = 0


def game_result(
    status: GameStatus,
    move_count: int,
    started_at: datetime,
    ended_at: Optional[datetime],
) -> Optional[GameResult]:
    """
    The result for a game with this status. None while it is still being played.
    With checkmate, the color that just got mated is the color to move, so the winner is its opponent (stored in the status).
    """
    duration_s = int((ended_at - started_at).total_seconds()) if ended_at else 0
    match status:
        case Checkmate(winner=winner):
            return GameResult(winner, "checkmate", move_count, duration_s)
        case Stalemate():
            return GameResult(None, "stalemate", move_count, duration_s)
        case Draw(reason=reason):
            return GameResult(None, f"draw ({reason})", move_count, duration_s)
        case _:
            return None


@dataclass
class GameSession:
    # --- DOMAIN LAYER API CALLED BY SERVICE---

    starting_position: Position
    position: Position
    history: list[MoveRecord]
    status: GameStatus
    player_color: Color
    difficulty: Difficulty = Difficulty.MEDIUM
    # moves played over the lifetime of the session. Never goes down: undo and reset leave it alone.
    ply: int = 0
    # bumped on every change of the session. Lets a caller detect it is looking at an outdated copy.
    revision: int = 0
    player_id: Optional[str] = None
    started_at: datetime = field(default_factory=utc_now)
    ended_at: Optional[datetime] = None
    _lock: threading.RLock = field(
        default_factory=threading.RLock, repr=False, compare=False
    )

    @classmethod
    def new_game(
        cls,
        player_color: Color | str,
        difficulty: Difficulty | str = Difficulty.MEDIUM,
        starting_fen: Optional[str] = None,
        player_id: Optional[str] = None,
    ) -> Self:
        """To start a new game with the human player using the pieces with the indicated color."""
        try:
            color = Color(player_color)
            level = Difficulty(difficulty)
        except ValueError as e:
            raise GameStateError(f"Cannot create new game: {e}") from e

        start = Position.from_fen(starting_fen or STARTING_FEN)
        session = cls(
            starting_position=start,
            position=start,
            history=[],
            status=rules.classify(start),
            player_color=color,
            difficulty=level,
            player_id=player_id,
        )
        session._track_end()
        log.info(
            "New game: player=%s difficulty=%s start=%s", color, level, start.to_fen()
        )
        return session

    # --- TURN (always derived from the current position, never stored) ---
    def whose_turn(self) -> Color:
        return self.position.color_to_move

    @property
    def ai_color(self) -> Color:
        return self.player_color.opponent

    def is_players_turn(self, player_color: Optional[Color] = None) -> bool:
        return self.whose_turn() == (player_color or self.player_color)

    def is_ai_turn(self, ai_color: Optional[Color] = None) -> bool:
        return self.whose_turn() == (ai_color or self.ai_color)

    # --- STATE ---
    @property
    def is_active(self) -> bool:
        return not self.status.is_terminal

    @property
    def is_over(self) -> bool:
        return self.status.is_terminal

    @property
    def result(self) -> Optional[GameResult]:
        """For ended games only."""
        return game_result(self.status, len(self.history), self.started_at, self.ended_at)

    @property
    def moves_uci(self) -> list[str]:
        return [record.move.to_uci() for record in self.history]

    @property
    def moves_san(self) -> list[str]:
        return [record.san for record in self.history]

    def legal_moves(self) -> list[Move]:
        """
        Computed from the current position on every call: do not hold on to the result across moves.
        An ended game has no legal moves.
        """
        if self.is_over:
            return []
        return rules.legal_moves(self.position)

    def legal_moves_from(self, square: Square) -> list[Move]:
        return [move for move in self.legal_moves() if move.from_square == square]

    # --- MUTATIONS ---
    def propose_move(self, move: Move) -> MoveRecord:
        """
        Attempt to make a move
        -----

        1. make sure the game is still active
        2. make sure the move is legal (the rules engine fills in what kind of move it is)
        3. update the position, the history and the ply counter
        4. recompute the status (and end the game if needed)

        Raises IllegalMoveError without changing anything when the move is rejected.
        """
        with self._lock:
            if self.is_over:
                raise IllegalMoveError(
                    f"Game is over ({self.status.kind}). No more moves accepted.",
                    reason=IllegalMoveReason.GAME_ENDED,
                )

            legal_move = rules.find_legal_move(self.position, move)
            san = to_san(self.position, legal_move)
            position_after = rules.apply_move(self.position, legal_move)
            record = MoveRecord(
                legal_move, san, self.position.color_to_move, position_after
            )

            earlier_positions = self._positions()
            self.history.append(record)
            self.position = position_after
            self.ply += 1
            self.revision += 1
            self.status = rules.classify(position_after, earlier_positions)
            self._track_end()

            if self.is_over:
                log.info("Game ended after %s: %s", san, self.status)
            return record

    def agree_draw(self) -> None:
        with self._lock:
            if self.is_over:
                raise GameStateError(f"Game is already over ({self.status.kind}).")
            self.status = Draw(DrawReason.AGREEMENT)
            self._track_end()
            self.revision += 1

    def can_undo(self, count: int = 1) -> bool:
        return self.is_active and 1 <= count <= len(self.history)

    def undo(self, count: int = 1) -> list[MoveRecord]:
        """
        Take back the last `count` plies. Not allowed once the game has ended.
        Returns the removed records (most recent last).
        """
        with self._lock:
            if not self.can_undo(count):
                raise GameStateError(
                    f"Cannot undo {count} move(s): {len(self.history)} played, status {self.status.kind}."
                )
            removed = self.history[-count:]
            del self.history[-count:]
            self._rewind()
            return removed

    def undo_last_player_move(self) -> list[MoveRecord]:
        """
        Take back the human player's last move.

        When the AI has already replied (it is the player's turn again), both the AI move and the player's move are taken back.
        When it is still the AI's turn, only the player's move is taken back.
        """
        with self._lock:
            count = 2 if self.is_players_turn() else 1
            if self.is_players_turn() and len(self.history) == 1:
                # the AI moved first (player plays black) and there is no player move yet to take back.
                raise GameStateError("No player move to undo.")
            return self.undo(count)

    def reset(self) -> None:
        """Back to the starting position of this session."""
        with self._lock:
            self.history.clear()
            self._rewind()

    # --- PRIVATE HELPERS ---
    def _positions(self) -> list[Position]:
        """All positions of the game so far, the current one included."""
        return [self.starting_position] + [
            record.position_after for record in self.history
        ]

    def _rewind(self) -> None:
        """Recompute position and status after the history got shortened."""
        positions = self._positions()
        self.position = positions[-1]
        self.revision += 1
        self.status = rules.classify(self.position, positions[:-1])
        self._track_end()

    def _track_end(self) -> None:
        """Stamp the moment the game ended (and clear it again when undo / reset reopen the game)."""
        if self.is_active:
            self.ended_at = None
        elif self.ended_at is None:
            self.ended_at = utc_now()

    # --- CONVERSION TO/FROM THE TRANSPORT MODEL ---
    def to_model(self) -> GameModel:
        """Encode into the format the Service layer (and persistence) uses"""
        kind, color, draw_reason = status_to_parts(self.status)
        return GameModel(
            starting_fen=self.starting_position.to_fen(),
            current_fen=self.position.to_fen(),
            moves_uci=self.moves_uci,
            moves_san=self.moves_san,
            player_color=self.player_color.value,
            difficulty=self.difficulty.value,
            status=kind,
            status_color=color,
            draw_reason=draw_reason,
            ply=self.ply,
            history_fen=[record.position_after.to_fen() for record in self.history],
            player_id=self.player_id,
            started_at=self.started_at,
            ended_at=self.ended_at,
        )

    @classmethod
    def from_model(cls, model: GameModel) -> Self:
        """
        Rebuild a session from its transport model by replaying the recorded moves from the starting position.
        ---

        Every move goes through the rules engine again, so a record can never smuggle in an illegal position.
        Raises CorruptStateError when the model does not describe a game that can be replayed to the stored state.
        """
        try:
            session = cls.new_game(
                player_color=model.player_color,
                difficulty=model.difficulty,
                starting_fen=model.starting_fen,
                player_id=model.player_id,
            )
            for uci in model.moves_uci:
                session.propose_move(Move.from_uci(uci))
            stored_status = status_from_parts(
                model.status, model.status_color, model.draw_reason
            )
        except (ChessError, ValueError) as e:
            raise CorruptStateError(f"Cannot restore game: {e}") from e

        # a draw by agreement is the only status that does not follow from the moves themselves
        if stored_status == Draw(DrawReason.AGREEMENT) and session.is_active:
            session.status = stored_status

        mismatches = [
            name
            for name, stored, replayed in [
                ("current_fen", model.current_fen, session.position.to_fen()),
                ("moves_san", model.moves_san, session.moves_san),
                ("status", stored_status, session.status),
                (
                    "history_fen",
                    model.history_fen,
                    [record.position_after.to_fen() for record in session.history],
                ),
            ]
            if stored != replayed
        ]
        # ply also counts moves that were taken back since
        if model.ply < session.ply:
            mismatches.append("ply")
        if session.is_over != (model.ended_at is not None):
            mismatches.append("ended_at")
        if mismatches:
            raise CorruptStateError(
                f"Stored game does not match its own move list: {', '.join(mismatches)}"
            )
        session.ply = model.ply
        session.started_at = model.started_at
        session.ended_at = model.ended_at
        session.revision = 0
        return session
