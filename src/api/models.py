"""Requests and Response models"""

from datetime import datetime
from typing import Optional, Self
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from src.ai.service import ServiceStatus
from src.chess.position import Position
from src.chess.square import is_algebraic_square
from src.core.exceptions import InvalidFENError, InvalidRequestError
from src.core.shared_types import Color, Difficulty, DrawReason, PieceType, StatusKind


# --- REQUEST MODELS ---
class CreateGameRequest(BaseModel):
    player_color: Color
    difficulty: Difficulty = Difficulty.MEDIUM
    starting_fen: Optional[str] = None
    # who is playing: games and statistics are kept per player
    player_id: Optional[str] = None

    @field_validator("starting_fen")
    @classmethod
    def validate_starting_fen(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value

        value = " ".join(value.split())
        try:
            Position.from_fen(value)
        except InvalidFENError as e:
            raise InvalidRequestError(f"Not a valid FEN string: {value!r} ({e})") from e
        return value


class GameIdRequest(BaseModel):
    game_id: UUID


class GetGameRequest(GameIdRequest):
    pass


class DeleteGameRequest(GameIdRequest):
    pass


class ResetGameRequest(GameIdRequest):
    pass


class AIMoveTurnRequest(GameIdRequest):
    """Ask the AI to play its move."""


class LegalMovesRequest(GameIdRequest):
    # only the moves of the piece on this square (to highlight the options of a selected piece)
    square: Optional[str] = None

    @field_validator("square")
    @classmethod
    def validate_square(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_algebraic_square(value):
            raise InvalidRequestError(f"Cannot interpret {value!r} as a valid square name.")
        return value


class MoveRequest(GameIdRequest):
    """
    A move by the human player. Either the squares (from / to / promotion) or a move written in SAN or UCI.
    """

    from_square: Optional[str] = None
    to_square: Optional[str] = None
    promote_to: Optional[PieceType] = None
    notation: Optional[str] = None

    @field_validator(*["from_square", "to_square"])
    @classmethod
    def validate_square(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if not is_algebraic_square(value):
            raise InvalidRequestError(f"Cannot interpret {value!r} as a valid square name.")
        return value

    @field_validator("promote_to")
    @classmethod
    def validate_promotion(cls, value: Optional[PieceType]) -> Optional[PieceType]:
        if value in (PieceType.PAWN, PieceType.KING):
            raise InvalidRequestError(f"Cannot promote into a {value}.")
        return value

    @model_validator(mode="after")
    def squares_or_notation(self) -> Self:
        has_squares = self.from_square is not None and self.to_square is not None
        if has_squares == (self.notation is not None):
            raise InvalidRequestError(
                "Give either both from_square and to_square, or the move notation."
            )
        return self


class UndoRequest(GameIdRequest):
    # None: take back the player's last move (and the AI reply to it)
    count: Optional[int] = Field(default=None, ge=1)


class GameHistoryRequest(BaseModel):
    player_id: Optional[str] = None
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class PlayerStatsRequest(BaseModel):
    player_id: str


# --- RESPONSE MODELS ---
class GameResultResponse(BaseModel):
    winner: Optional[Color]
    reason: str
    move_count: int
    duration_s: int = 0


class GameResponse(BaseModel):
    game_id: UUID
    player_id: Optional[str] = None
    fen: str
    starting_fen: str
    status: StatusKind
    status_color: Optional[Color] = None
    draw_reason: Optional[DrawReason] = None
    turn: Color
    player_color: Color
    difficulty: Difficulty
    move_history: list[str]
    move_history_san: list[str]
    result: Optional[GameResultResponse] = None


class LegalMovesResponse(BaseModel):
    game_id: UUID
    color: Color
    legal_moves: list[str]


class AIMoveResponse(BaseModel):
    game: GameResponse
    move: str
    san: str
    attempts: int
    used_fallback: bool
    fallback_reason: Optional[str] = None


class GameSummaryResponse(BaseModel):
    game_id: UUID
    player_id: Optional[str] = None
    player_color: Color
    difficulty: Difficulty
    status: StatusKind
    move_count: int
    started_at: datetime
    ended_at: Optional[datetime] = None
    result: Optional[GameResultResponse] = None


class GameHistoryResponse(BaseModel):
    games: list[GameSummaryResponse]


class DifficultyStatsResponse(BaseModel):
    games: int = 0
    wins: int = 0
    win_rate: float = 0.0


class PlayerStatsResponse(BaseModel):
    """Finished games only. Rates are percentages, durations in seconds."""

    player_id: str
    total_games: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    win_rate: float = 0.0
    average_game_duration_s: float = 0.0
    average_moves_per_game: float = 0.0
    difficulty_stats: dict[Difficulty, DifficultyStatsResponse]


class AIServiceStatusResponse(BaseModel):
    status: ServiceStatus
    message: str
    can_retry: bool
    fallback_available: bool = True
