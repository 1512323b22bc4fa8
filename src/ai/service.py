"""
Boundary with the external move generation service (an AI).

The rest of the code only talks to a `MoveGenerator`: hand it a request (the position + some context), get back a move
written in some notation. Whatever comes back is untrusted input: the orchestrator validates it with the rules engine.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

from src.core.shared_types import Color, Difficulty

if TYPE_CHECKING:
    from src.chess.game import GameSession

# Only the last few moves are sent along, as context
HISTORY_CONTEXT_PLIES = 10


class ServiceErrorKind(StrEnum):
    QUOTA_EXCEEDED = "quota_exceeded"
    AUTHENTICATION = "authentication"
    NETWORK = "network_error"
    UNAVAILABLE = "api_unavailable"
    INVALID_RESPONSE = "invalid_response"
    UNKNOWN = "unknown"


class ServiceStatus(StrEnum):
    AVAILABLE = "available"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class ServiceHealth:
    """
    Outcome of a health check of the move generation service.
    The local fallback generator works without the service, so a move can always be made.
    """

    status: ServiceStatus
    message: str
    can_retry: bool
    fallback_available: bool = True


@dataclass(frozen=True)
class AIMoveRequest:
    """Everything the service gets to see. Exists only for the duration of one orchestration."""

    fen: str
    color: Color
    difficulty: Difficulty
    history_san: tuple[str, ...] = ()

    @classmethod
    def from_session(cls, session: "GameSession") -> Self:
        return cls(
            fen=session.position.to_fen(),
            color=session.whose_turn(),
            difficulty=session.difficulty,
            history_san=tuple(session.moves_san[-HISTORY_CONTEXT_PLIES:]),
        )


class MoveGenerator(Protocol):
    """Anything that can propose a move for a position."""

    async def generate_move(self, request: AIMoveRequest) -> str:
        """
        Return a move in SAN or UCI (surrounding prose is tolerated, the first move-like token is used).

        Raise ServiceUnavailableError when no answer can be produced. The answer may still be an illegal move.
        """
        ...


@runtime_checkable
class SupportsHealthCheck(Protocol):
    async def check_health(self) -> ServiceHealth:
        """Cheap request to find out whether the service answers at all. Never raises for service failures."""
        ...
