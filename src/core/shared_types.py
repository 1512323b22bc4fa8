"""
Type definitions used across layers
"""

from enum import StrEnum


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self == Color.WHITE else Color.WHITE


class PieceType(StrEnum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"


class Difficulty(StrEnum):
    """Strength requested from the AI opponent. Also steers the fallback heuristic."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class StatusKind(StrEnum):
    """Flat tag of a GameStatus. Used when a status has to cross a boundary as a string."""

    IN_PROGRESS = "in progress"
    CHECK = "check"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    DRAW = "draw"


class DrawReason(StrEnum):
    FIFTY_MOVE = "fifty-move"
    INSUFFICIENT_MATERIAL = "insufficient-material"
    REPETITION = "repetition"
    AGREEMENT = "agreement"
