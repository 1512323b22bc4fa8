"""
Status of a game as a closed set of variants.

Every variant is a small frozen dataclass. Code that needs to branch on the status uses `match`:

    match status:
        case Checkmate(winner=winner): ...
        case Draw(reason=DrawReason.REPETITION): ...

`Checkmate`, `Stalemate` and `Draw` are terminal: no moves are accepted afterwards.
"""

from dataclasses import dataclass
from typing import ClassVar, Optional

from src.core.shared_types import Color, DrawReason, StatusKind


@dataclass(frozen=True)
class InProgress:
    kind: ClassVar[StatusKind] = StatusKind.IN_PROGRESS
    is_terminal: ClassVar[bool] = False


@dataclass(frozen=True)
class Check:
    """The color to move has its king attacked, but can still get out of it."""

    color: Color
    kind: ClassVar[StatusKind] = StatusKind.CHECK
    is_terminal: ClassVar[bool] = False


@dataclass(frozen=True)
class Checkmate:
    winner: Color
    kind: ClassVar[StatusKind] = StatusKind.CHECKMATE
    is_terminal: ClassVar[bool] = True


@dataclass(frozen=True)
class Stalemate:
    kind: ClassVar[StatusKind] = StatusKind.STALEMATE
    is_terminal: ClassVar[bool] = True


@dataclass(frozen=True)
class Draw:
    reason: DrawReason
    kind: ClassVar[StatusKind] = StatusKind.DRAW
    is_terminal: ClassVar[bool] = True


GameStatus = InProgress | Check | Checkmate | Stalemate | Draw


def status_color(status: GameStatus) -> Optional[Color]:
    """The color attached to a status (checked side / winner), if any."""
    match status:
        case Check(color=color):
            return color
        case Checkmate(winner=winner):
            return winner
        case _:
            return None


def status_from_parts(
    kind: str, color: Optional[str] = None, draw_reason: Optional[str] = None
) -> GameStatus:
    """
    Rebuild a status from its flat representation (see GameModel). Raises ValueError on anything that does not describe a status.
    """
    match StatusKind(kind):
        case StatusKind.IN_PROGRESS:
            return InProgress()
        case StatusKind.CHECK:
            return Check(Color(color))
        case StatusKind.CHECKMATE:
            return Checkmate(Color(color))
        case StatusKind.STALEMATE:
            return Stalemate()
        case StatusKind.DRAW:
            return Draw(DrawReason(draw_reason))


def status_to_parts(status: GameStatus) -> tuple[str, Optional[str], Optional[str]]:
    """Flatten a status into (kind, color, draw reason) strings."""
    color = status_color(status)
    draw_reason = status.reason.value if isinstance(status, Draw) else None
    return status.kind.value, color.value if color else None, draw_reason
