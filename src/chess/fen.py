"""
Validation of FEN strings.

FEN, or Forsyth-Edwards Notation, is a standard notation for describing a particular board position of a chess game.
The purpose of FEN is to provide all the necessary information to restart a game from a particular position.

<board position string> <active color> <castling rights> <en passant square> <# half move clock> <full move number>

ex) The standard starting position has a FEN
rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1
i.e. it is white to move, all castling options available, no en passant square, no half moves and we are in the first turn.
"""

from typing import Optional

from src.chess.pieces import FEN_TO_PIECE
from src.chess.square import BOARD_DIMENSIONS, is_algebraic_square

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
# rank of the en passant square, by the color that may capture there
EN_PASSANT_RANK_FOR = {"w": "6", "b": "3"}
VALID_CASTLING_ENCODINGS = [
    "-",
    "K",
    "Q",
    "k",
    "q",
    "KQ",
    "Kk",
    "Kq",
    "Qk",
    "Qq",
    "kq",
    "KQk",
    "KQq",
    "Kkq",
    "Qkq",
    "KQkq",
]


def is_valid_fen(fen: str) -> bool:
    """
    Check if given string follows proper FEN notation.
    """

    # there should be 6 parts to the string
    parts = fen.split(" ")
    if len(parts) != 6:
        return False

    position, color, castling, en_passant, half_move_clock, full_move_number = parts
    if not is_valid_position(position):
        return False

    if not is_valid_color_code(color):
        return False

    if not is_valid_castling_rights(castling):
        return False

    if not is_valid_en_passant(en_passant, color):
        return False

    if not (
        is_valid_move_counter(half_move_clock)
        and is_valid_move_counter(full_move_number)
    ):
        return False

    # the full move number starts at 1
    return int(full_move_number) >= 1


def rank_width(rank_fen: str) -> int | None:
    """Number of files one rank of the board string covers. None if it holds anything but piece letters and digits."""
    width = 0
    for character in rank_fen:
        if character.isdigit():
            width += int(character)
        elif character.lower() in FEN_TO_PIECE:
            width += 1
        else:
            return None
    return width


def is_valid_position(position: str) -> bool:
    """Only check the part of the FEN encoding for the board position."""
    num_files, num_ranks = BOARD_DIMENSIONS
    rank_fens = position.split("/")
    if len(rank_fens) != num_ranks:
        return False
    if any(rank_width(rank_fen) != num_files for rank_fen in rank_fens):
        return False

    # a game of chess needs exactly one king per side
    return position.count("K") == 1 and position.count("k") == 1


def is_valid_color_code(color: str) -> bool:
    return color in {"w", "b"}


def is_valid_castling_rights(castling: str) -> bool:
    """A valid castling encoding has either KQkq, KQk, etc. or a '-' if all rights have been revoked."""
    return castling in VALID_CASTLING_ENCODINGS


def is_valid_en_passant(en_passant: str, color: Optional[str] = None) -> bool:
    """
    Valid en passant square encoding should be a square on the 3rd or 6th rank or a '-'.
    With the color to move given: white can only take on the 6th rank, black only on the 3rd.
    """
    if en_passant == "-":
        return True
    if not is_algebraic_square(en_passant):
        return False
    if color is None:
        return en_passant[1:] in {"3", "6"}
    return en_passant[1:] == EN_PASSANT_RANK_FOR.get(color)


def is_valid_move_counter(counter: str) -> bool:
    return counter.isdigit()
