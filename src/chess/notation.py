"""
Move notations
---

* UCI (long algebraic): "e2e4", "e7e8q". Parsed by `Move.from_uci`.
* SAN (Standard Algebraic Notation): "e4", "Nf3", "exd5", "O-O", "e8=Q+", "Qh4#". What humans (and language models) write.

SAN only makes sense relative to a position: "Nf3" does not say where the knight comes from.
"""

import re

from src.chess import rules
from src.chess.moves import Move
from src.chess.pieces import PIECE_TO_SAN, SAN_TO_PIECE
from src.chess.position import Position
from src.chess.square import Square
from src.core.exceptions import IllegalMoveError, MoveParseError
from src.core.shared_types import PieceType

UCI_RE = re.compile(r"^[a-h][1-8][a-h][1-8][nbrq]?$")
SAN_RE = re.compile(
    r"^(?P<piece>[NBRQK])?(?P<from_file>[a-h])?(?P<from_rank>[1-8])?(?P<capture>x)?"
    r"(?P<to>[a-h][1-8])(?:=?(?P<promotion>[NBRQ]))?$"
)
CASTLE_KING_SIDE = "O-O"
CASTLE_QUEEN_SIDE = "O-O-O"
CASTLE_ALIASES = {
    "0-0": CASTLE_KING_SIDE,
    "0-0-0": CASTLE_QUEEN_SIDE,
    "o-o": CASTLE_KING_SIDE,
    "o-o-o": CASTLE_QUEEN_SIDE,
}


# --- WRITING SAN ---
def to_san(position: Position, move: Move) -> str:
    """
    Write a legal move in SAN.
    ---

    1. castling is written as O-O / O-O-O
    2. piece letter (nothing for pawns)
    3. disambiguation: origin file, rank, or both when another piece of the same type can reach the same square
    4. 'x' for captures (pawn captures are prefixed with the file the pawn came from)
    5. target square, '=X' for promotions
    6. '+' for check, '#' for checkmate
    """
    move = rules.find_legal_move(position, move)
    piece = position.board.piece(move.from_square)
    assert piece is not None

    if move.castling_direction is not None:
        san = CASTLE_KING_SIDE if move.is_castle_king_side else CASTLE_QUEEN_SIDE
    elif piece.type == PieceType.PAWN:
        san = f"{move.from_square.file_name}x" if move.is_capture else ""
        san += move.to_square.to_algebraic()
        if move.promote_to is not None:
            san += f"={PIECE_TO_SAN[move.promote_to]}"
    else:
        san = PIECE_TO_SAN[piece.type]
        san += _disambiguation(position, move, piece.type)
        san += "x" if move.is_capture else ""
        san += move.to_square.to_algebraic()

    return san + _check_suffix(rules.apply_move(position, move))


def _disambiguation(position: Position, move: Move, piece_type: PieceType) -> str:
    """Extra origin information needed when other pieces of the same type can move to the same square."""
    rivals = [
        other.from_square
        for other in rules.legal_moves(position)
        if other.to_square == move.to_square
        and other.from_square != move.from_square
        and position.board.piece(other.from_square).type == piece_type
    ]
    if not rivals:
        return ""
    if all(square.file != move.from_square.file for square in rivals):
        return move.from_square.file_name
    if all(square.rank != move.from_square.rank for square in rivals):
        return str(move.from_square.rank)
    return move.from_square.to_algebraic()


def _check_suffix(position_after: Position) -> str:
    if not rules.is_check(position_after):
        return ""
    return "+" if rules.has_legal_move(position_after) else "#"


# --- READING SAN / UCI ---
def clean_san(text: str) -> str:
    """Strip annotations that do not change which move is meant: check marks, '!?' comments, 'e.p.'"""
    token = text.strip().rstrip("+#!?").strip()
    token = token.replace("e.p.", "").strip()
    return CASTLE_ALIASES.get(token.lower(), token)


def parse_san(position: Position, san: str) -> Move:
    """
    Find the legal move meant by `san`.

    Raises MoveParseError if the text is not SAN at all (or matches more than one move),
    IllegalMoveError if it is readable but no legal move fits.
    """
    token = clean_san(san)
    legal = rules.legal_moves(position)

    if token in (CASTLE_KING_SIDE, CASTLE_QUEEN_SIDE):
        want_king_side = token == CASTLE_KING_SIDE
        for move in legal:
            if move.castling_direction is not None and move.is_castle_king_side == want_king_side:
                return move
        raise IllegalMoveError(f"Castling ({token}) is not allowed in {position.to_fen()}")

    match = SAN_RE.match(token)
    if match is None:
        raise MoveParseError(f"Cannot interpret {san!r} as a move in SAN.")

    piece_type = SAN_TO_PIECE[match["piece"]] if match["piece"] else PieceType.PAWN
    to_square = Square.from_algebraic(match["to"])
    promote_to = SAN_TO_PIECE[match["promotion"]] if match["promotion"] else None

    candidates = [
        move
        for move in legal
        if move.to_square == to_square
        and move.castling_direction is None
        and position.board.piece(move.from_square).type == piece_type
        and move.promote_to == promote_to
        and (match["from_file"] is None or move.from_square.file_name == match["from_file"])
        and (match["from_rank"] is None or str(move.from_square.rank) == match["from_rank"])
    ]
    if not candidates:
        raise IllegalMoveError(f"No legal move matches {san!r} in {position.to_fen()}")
    if len(candidates) > 1:
        raise MoveParseError(
            f"{san!r} is ambiguous: {', '.join(move.to_uci() for move in candidates)}"
        )
    return candidates[0]


def parse_move(position: Position, text: str) -> Move:
    """
    Read a move written either in UCI or in SAN, resolved against `position`.

    The result is always one of `rules.legal_moves(position)` (flags filled in).
    """
    token = text.strip()
    if not token:
        raise MoveParseError("Empty move.")
    if UCI_RE.match(token.lower()):
        return rules.find_legal_move(position, Move.from_uci(token))
    return parse_san(position, token)
