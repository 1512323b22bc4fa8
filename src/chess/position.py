"""
Representation of a single position. The part that can be encoded in a FEN string.
"""

from dataclasses import dataclass
from typing import Optional, Self

from src.chess.board import Board
from src.chess.castling import (
    CastlingDirection,
    castling_directions,
    castling_from_fen,
    castling_to_fen,
)
from src.chess.fen import STARTING_FEN, is_valid_fen
from src.chess.moves import pawn_direction
from src.chess.pieces import Piece
from src.chess.square import Square
from src.core.exceptions import InvalidFENError
from src.core.shared_types import Color, PieceType


@dataclass(frozen=True)
class Position:
    """
    Immutable snapshot of a game of chess.
    ----

    * The board: which piece stands where
    * The color to move
    * Castling rights. Rights will only ever be revoked during the game.
    * The en passant square: the square a pawn can take on (after a double pawn push). None if not available.
    * The half move clock counts the number of moves made since the last pawn move or capture. (Used for the fifty-move rule)
    * The full move number starts at 1 and increments after every move black makes.
    """

    board: Board
    color_to_move: Color
    castling_rights: frozenset[CastlingDirection]
    en_passant_square: Optional[Square]
    half_move_clock: int
    full_move_number: int

    @classmethod
    def from_fen(cls, fen: str) -> Self:
        """Parse the FEN into data"""

        # raise an exception if invalid FEN:
        fen = fen.strip()
        if not is_valid_fen(fen):
            raise InvalidFENError(f"Cannot interpret supplied string as FEN: {fen!r}")

        # extract the different components. FEN is space separated
        (
            placement,
            active_color,
            castling_str,
            en_passant_algebraic,
            half_move_clock,
            full_move_number,
        ) = fen.split(" ")

        # parse en passant target square
        en_passant_square = (
            Square.from_algebraic(en_passant_algebraic)
            if en_passant_algebraic != "-"
            else None
        )

        board = Board.from_fen(placement)
        color_to_move = Color.WHITE if active_color == "w" else Color.BLACK
        validate_setup(board, color_to_move, en_passant_square)
        return cls(
            board=board,
            color_to_move=color_to_move,
            castling_rights=castling_from_fen(castling_str),
            en_passant_square=en_passant_square,
            half_move_clock=int(half_move_clock),
            full_move_number=int(full_move_number),
        )

    def to_fen(self) -> str:
        """reverse operation: write a FEN from the given data"""
        return f"{self.repetition_key()} {self.half_move_clock} {self.full_move_number}"

    def repetition_key(self) -> str:
        """
        The parts of the FEN that decide if two positions are 'the same' for the threefold repetition rule.
        (Piece placement, color to move, castling rights and en passant square. The move counters are ignored.)
        """
        active_color = "w" if self.color_to_move == Color.WHITE else "b"
        en_passant_algebraic = (
            self.en_passant_square.to_algebraic()
            if self.en_passant_square is not None
            else "-"
        )
        return f"{self.board.to_fen()} {active_color} {castling_to_fen(self.castling_rights)} {en_passant_algebraic}"

    @classmethod
    def starting_position(cls) -> Self:
        return cls.from_fen(STARTING_FEN)

    def castling_options(self, color: Color) -> list[CastlingDirection]:
        """The castling directions that `color` still holds the rights to."""
        return [
            direction
            for direction in castling_directions(color)
            if direction in self.castling_rights
        ]

    def __str__(self) -> str:
        return self.to_fen()


def validate_setup(
    board: Board, color_to_move: Color, en_passant_square: Optional[Square]
) -> None:
    """
    Reject boards that cannot come up in a game, even though the FEN string itself is well formed.
    Raises InvalidFENError.
    """
    for color in Color:
        if any(
            square.rank in (1, 8)
            for square in board.locate_pieces(PieceType.PAWN, color)
        ):
            raise InvalidFENError(f"{color} pawn on the first or last rank")

    # the side that just moved cannot have left its own king in check
    if board.is_check(color_to_move.opponent):
        raise InvalidFENError(f"{color_to_move.opponent} is in check, but it is not their move")

    if en_passant_square is None:
        return
    forward = pawn_direction(color_to_move)
    pushed_pawn = board.piece(en_passant_square.offset(0, -forward))
    if (
        pushed_pawn != Piece(PieceType.PAWN, color_to_move.opponent)
        or board.piece(en_passant_square) is not None
        or board.piece(en_passant_square.offset(0, forward)) is not None
    ):
        raise InvalidFENError(
            f"No pawn of {color_to_move.opponent} can just have passed {en_passant_square.to_algebraic()}"
        )
