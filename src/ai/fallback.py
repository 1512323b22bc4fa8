"""
Local fallback move generator
---

Used when the AI service does not come up with a legal move in time. Cheap and deterministic:
the same position and difficulty always give the same move.

Every legal move gets a score tuple (higher is better, compared left to right). Moves are sorted by UCI first,
so ties are broken by the alphabetically first move.

* easy: captures before quiet moves
* medium: mate, then the most valuable capture, then checks, then castling
* hard: mate, promotions, captures by "most valuable victim / least valuable attacker", checks,
  and in the opening castling, the centre and development

When the side to move is in check, every legal move already gets out of check (the rules engine guarantees that).
"""

import logging
from typing import Callable, Optional

from src.chess import rules
from src.chess.moves import Move
from src.chess.pieces import PIECE_POINTS
from src.chess.position import Position
from src.chess.square import Square
from src.chess.status import Check, Checkmate
from src.core.shared_types import Color, Difficulty, PieceType

log = logging.getLogger(__name__)

Score = tuple[int, ...]

CENTRE_SQUARES = frozenset(
    Square.from_algebraic(name) for name in ("d4", "e4", "d5", "e5")
)
# up to and including this full move number, opening preferences apply
OPENING_MOVES = 10
KING_VALUE = 100


def choose_fallback_move(
    position: Position, difficulty: Difficulty = Difficulty.MEDIUM
) -> Optional[Move]:
    """The best move according to the heuristic of `difficulty`. None only if there is no legal move at all."""
    moves = sorted(rules.legal_moves(position), key=lambda move: move.to_uci())
    if not moves:
        return None

    score = SCORERS[difficulty]
    best = max(moves, key=lambda move: score(position, move))
    log.debug("Fallback (%s) picked %s in %s", difficulty, best, position.to_fen())
    return best


# --- SCORING ---
def score_easy(position: Position, move: Move) -> Score:
    return (int(move.is_capture),)


def score_medium(position: Position, move: Move) -> Score:
    gives_mate, gives_check = _check_effect(position, move)
    return (
        int(gives_mate),
        captured_value(position, move),
        int(gives_check),
        int(move.castling_direction is not None),
    )


def score_hard(position: Position, move: Move) -> Score:
    gives_mate, gives_check = _check_effect(position, move)
    in_opening = position.full_move_number <= OPENING_MOVES
    return (
        int(gives_mate),
        PIECE_POINTS.get(move.promote_to, 0) if move.promote_to else 0,
        mvv_lva(position, move),
        int(gives_check),
        int(in_opening and move.castling_direction is not None),
        int(in_opening and move.to_square in CENTRE_SQUARES),
        int(in_opening and is_development(position, move)),
    )


SCORERS: dict[Difficulty, Callable[[Position, Move], Score]] = {
    Difficulty.EASY: score_easy,
    Difficulty.MEDIUM: score_medium,
    Difficulty.HARD: score_hard,
}


# --- HELPERS ---
def captured_value(position: Position, move: Move) -> int:
    """Points of the piece taken by `move` (en passant takes a pawn from a square that is not the target)."""
    if move.is_en_passant:
        return PIECE_POINTS[PieceType.PAWN]
    victim = position.board.piece(move.to_square)
    if victim is None or not move.is_capture:
        return 0
    return victim.points


def mvv_lva(position: Position, move: Move) -> int:
    """Most valuable victim, least valuable attacker. 0 for non captures."""
    victim_value = captured_value(position, move)
    if not victim_value:
        return 0
    attacker = position.board.piece(move.from_square)
    attacker_value = KING_VALUE if attacker.type == PieceType.KING else attacker.points
    return victim_value * 10 * KING_VALUE - attacker_value


def is_development(position: Position, move: Move) -> bool:
    """A knight or bishop leaving its home rank."""
    piece = position.board.piece(move.from_square)
    if piece is None or piece.type not in (PieceType.KNIGHT, PieceType.BISHOP):
        return False
    home_rank = 1 if piece.color == Color.WHITE else 8
    return move.from_square.rank == home_rank and move.to_square.rank != home_rank


def _check_effect(position: Position, move: Move) -> tuple[bool, bool]:
    """(gives mate, gives check)"""
    status = rules.classify(rules.apply_move(position, move))
    match status:
        case Checkmate():
            return True, True
        case Check():
            return False, True
        case _:
            return False, False
