"""
The rules engine: pure functions over a Position.
---

* `legal_moves(position)`: every move the color to move is allowed to make
* `apply_move(position, move)`: the position after a legal move (the input is never modified)
* `classify(position, history)`: InProgress / Check / Checkmate / Stalemate / Draw

No I/O, no state beyond the positions handed in. Safe to call from multiple games at once.
"""

from typing import Optional, Sequence

from src.chess.board import Board
from src.chess.castling import CASTLING_RULES, CastlingDirection
from src.chess.moves import (
    Move,
    candidate_castling_move,
    en_passant_moves,
    en_passant_victim_square,
    is_pawn_move_to_promotion_square,
    pawn_direction,
    pawn_moves_w_promotion,
)
from src.chess.pieces import Piece
from src.chess.position import Position
from src.chess.square import Square
from src.chess.status import (
    Check,
    Checkmate,
    Draw,
    GameStatus,
    InProgress,
    Stalemate,
)
from src.core.exceptions import IllegalMoveError
from src.core.shared_types import Color, DrawReason, PieceType

# 50 moves by each player without a capture or pawn move
FIFTY_MOVE_RULE_HALF_MOVES = 100
REPETITIONS_FOR_DRAW = 3


# --- LEGAL MOVE GENERATION ---
def legal_moves(position: Position) -> list[Move]:
    """
    List of legal moves for the color to move
    ----

    ----
    **Combines the following**

    1. generate candidate moves, using the basic movement rules for all pieces (the board does this calculation)
    2. add candidate castling moves
    3. add candidate en passant moves
    4. remove illegal options --> a move that would put you in check or you are in check and the move does not get you out of it.
    5. Pawn move to promotion square? --> expand the set of moves to include one for every choice of piece type to promote into.
    """
    color = position.color_to_move
    board = position.board

    candidate_moves = board.generate_candidate_moves(color)
    candidate_moves.extend(_castling_moves(position))
    if position.en_passant_square is not None:
        candidate_moves.extend(
            en_passant_moves(position.en_passant_square, color, board)
        )

    # keep those moves that do not put (or leave) you in check
    moves: list[Move] = []
    for move in candidate_moves:
        if _board_after(board, move, color).is_check(color):
            continue
        if is_pawn_move_to_promotion_square(move, board):
            moves.extend(pawn_moves_w_promotion(move))
        else:
            moves.append(move)
    return moves


def legal_moves_from(position: Position, square: Square) -> list[Move]:
    """The legal moves of the piece on a single square (used to highlight the options of a selected piece)."""
    return [move for move in legal_moves(position) if move.from_square == square]


def has_legal_move(position: Position) -> bool:
    return len(legal_moves(position)) > 0


def find_legal_move(position: Position, move: Move) -> Move:
    """
    Look up `move` among the legal moves, returning the generated move (with all flags filled in).
    Raises IllegalMoveError if it is not there.
    """
    for legal in legal_moves(position):
        if legal == move:
            return legal
    raise IllegalMoveError(f"Move not allowed: {move.to_uci()} in {position.to_fen()}")


def is_legal(position: Position, move: Move) -> bool:
    return move in legal_moves(position)


def is_check(position: Position) -> bool:
    """Is the color to move in check?"""
    return position.board.is_check(position.color_to_move)


# --- APPLYING MOVES ---
def apply_move(position: Position, move: Move) -> Position:
    """
    The position after making `move`.
    -----

    1. update the board (NOTE: if castling, move the king and the rook. En passant removes the pawn that got taken)
    2. revoke castling rights if needed
    3. set the en passant square (only right after a double pawn push)
    4. update the move counters
    5. flip the color to move
    """
    legal_move = find_legal_move(position, move)
    color = position.color_to_move
    moving_piece = position.board.piece(legal_move.from_square)
    assert moving_piece is not None

    board = _board_after(position.board, legal_move, color)

    is_pawn_move = moving_piece.type == PieceType.PAWN
    half_move_clock = (
        0 if (is_pawn_move or legal_move.is_capture) else position.half_move_clock + 1
    )
    full_move_number = position.full_move_number + (1 if color == Color.BLACK else 0)

    return Position(
        board=board,
        color_to_move=color.opponent,
        castling_rights=_remaining_castling_rights(position, legal_move, moving_piece),
        en_passant_square=_en_passant_square_after(legal_move, color),
        half_move_clock=half_move_clock,
        full_move_number=full_move_number,
    )


def _board_after(board: Board, move: Move, color: Color) -> Board:
    """Board update only. Does not check legality."""
    if move.castling_direction is not None:
        squares = CASTLING_RULES[move.castling_direction]
        return board.move_piece(squares.king_from, squares.king_to).move_piece(
            squares.rook_from, squares.rook_to
        )

    new_board = board.move_piece(move.from_square, move.to_square)
    if move.is_en_passant:
        new_board = new_board.remove_piece(en_passant_victim_square(move))
    if move.promote_to is not None:
        new_board = new_board.place_piece(Piece(move.promote_to, color), move.to_square)
    return new_board


def _remaining_castling_rights(
    position: Position, move: Move, moving_piece: Piece
) -> frozenset[CastlingDirection]:
    """
    Checks which rights should get revoked
    ----

    1. If you are moving your king (castling included) --> revoke both
    2. If you are moving a rook from its starting square --> revoke the right in that direction
    3. If anything lands on a rook's starting square (i.e. captures it) --> revoke the opponent's right in that direction
    """
    rights = set(position.castling_rights)
    if moving_piece.type == PieceType.KING:
        rights -= set(position.castling_options(moving_piece.color))

    for direction in list(rights):
        rook_starting_square = CASTLING_RULES[direction].rook_from
        if rook_starting_square in (move.from_square, move.to_square):
            rights.discard(direction)
    return frozenset(rights)


def _en_passant_square_after(move: Move, color: Color) -> Optional[Square]:
    """The possible en passant square for the next turn: the square the pawn skipped over."""
    if not move.is_double_push:
        return None
    return move.from_square.offset(0, pawn_direction(color))


# -- CASTLING RULE HELPERS ---
def _castling_moves(position: Position) -> list[Move]:
    """
    Find the legal castling moves for the color to move
    ---

    **you are allowed to castle if**

    * You are not currently in check (you cannot castle out of check).
    * Castling rights are not yet revoked (and king / rook actually stand on their starting squares).
    * All squares in between the king and the rook are empty.
    * No square the king crosses or lands on is under attack.
    """
    color = position.color_to_move
    board = position.board
    if board.is_check(color):
        return []

    moves: list[Move] = []
    for direction in position.castling_options(color):
        squares = CASTLING_RULES[direction]
        if board.piece(squares.king_from) != Piece(PieceType.KING, color):
            continue
        if board.piece(squares.rook_from) != Piece(PieceType.ROOK, color):
            continue
        if board.is_any_occupied(squares.squares_between()):
            continue
        if board.is_any_under_attack(squares.king_path(), color.opponent):
            continue
        moves.append(candidate_castling_move(direction))
    return moves


# --- CLASSIFICATION / ENDING THE GAME ---
def classify(position: Position, history: Sequence[Position] = ()) -> GameStatus:
    """
    Status of the game in `position`.

    `history` holds the earlier positions of the game (not including `position` itself); only needed for the repetition rule.
    A position without legal moves is decided first: checkmate (or stalemate) takes precedence over any draw rule.
    """
    in_check = is_check(position)
    if not has_legal_move(position):
        if in_check:
            return Checkmate(winner=position.color_to_move.opponent)
        return Stalemate()

    if is_fifty_move_draw(position):
        return Draw(DrawReason.FIFTY_MOVE)
    if has_insufficient_material(position.board):
        return Draw(DrawReason.INSUFFICIENT_MATERIAL)
    if is_threefold_repetition(position, history):
        return Draw(DrawReason.REPETITION)

    if in_check:
        return Check(position.color_to_move)
    return InProgress()


def is_fifty_move_draw(position: Position) -> bool:
    return position.half_move_clock >= FIFTY_MOVE_RULE_HALF_MOVES


def is_threefold_repetition(position: Position, history: Sequence[Position]) -> bool:
    """Check if the position occurs 3 times, counting itself and all earlier positions"""
    key = position.repetition_key()
    occurrences = 1 + sum(1 for previous in history if previous.repetition_key() == key)
    return occurrences >= REPETITIONS_FOR_DRAW


def has_insufficient_material(board: Board) -> bool:
    """
    Neither side can possibly deliver mate:

    * king versus king
    * king and a single minor piece versus king
    * kings and bishops only, with all bishops on squares of the same color
    """
    non_kings = [
        (square, piece)
        for square, piece in board.squares.items()
        if piece.type != PieceType.KING
    ]
    if any(
        piece.type not in (PieceType.KNIGHT, PieceType.BISHOP) for _, piece in non_kings
    ):
        return False

    if len(non_kings) <= 1:
        return True

    if all(piece.type == PieceType.BISHOP for _, piece in non_kings):
        square_colors = {(square.file + square.rank) % 2 for square, _ in non_kings}
        return len(square_colors) == 1
    return False

