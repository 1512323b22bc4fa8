"""
Exceptions raised by the different layers.

Everything derives from ChessError, so a caller that does not care about the details can catch a single type.
"""

from enum import StrEnum


class ChessError(Exception):
    """Base class for all errors raised by this package."""


# --- DOMAIN ---
class GameError(ChessError):
    """Something went wrong while playing a game."""


class IllegalMoveReason(StrEnum):
    NOT_LEGAL = "not a legal move"
    GAME_ENDED = "game already ended"


class IllegalMoveError(GameError):
    """A proposed (or AI suggested) move is not accepted. The game state is never touched when this is raised."""

    def __init__(
        self, message: str, reason: IllegalMoveReason = IllegalMoveReason.NOT_LEGAL
    ) -> None:
        super().__init__(message)
        self.reason = reason


class NotYourTurnError(GameError):
    pass


class GameStateError(GameError):
    """The requested operation does not fit the current state of the game."""


class InvalidFENError(ChessError):
    pass


class MoveParseError(ChessError):
    """A move written in some notation could not be interpreted in the given position."""


# --- AI MOVE SERVICE ---
class ServiceUnavailableError(ChessError):
    """
    The external move generation service failed.

    `retryable` is False for failures that will not go away by asking again (quota, authentication, ...).
    `kind` is a short tag of what went wrong (see src/ai/service.py: ServiceErrorKind).
    """

    def __init__(
        self, message: str, retryable: bool = True, kind: str = "unknown"
    ) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.kind = kind


class AllAttemptsExhausted(ChessError):
    """Not even the local fallback produced a move. Indicates a bug: should be unreachable for an active game."""


# --- PERSISTENCE ---
class CorruptStateError(ChessError):
    """Persisted state cannot be turned back into a valid game."""


class RepositoryError(ChessError):
    pass


# --- API ---
class InvalidRequestError(ChessError):
    """Raised from request validators. Not a ValueError, so pydantic lets it through instead of wrapping it."""
