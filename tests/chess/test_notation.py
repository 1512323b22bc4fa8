"""Unit tests for /src/chess/notation.py"""

import pytest

from src.chess.fen import STARTING_FEN
from src.chess.moves import Move
from src.chess.notation import clean_san, parse_move, parse_san, to_san
from src.chess.position import Position
from src.chess import rules
from src.core.exceptions import IllegalMoveError, MoveParseError

CASTLING_FEN = "r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1"
PROMOTION_FEN = "8/4P3/8/8/8/8/k7/4K3 w - - 0 1"
TWO_KNIGHTS_FEN = "4k3/8/8/8/8/8/8/1N2KN2 w - - 0 1"
TWO_ROOKS_FEN = "4k3/8/8/R7/8/8/8/R3K3 w - - 0 1"
THREE_QUEENS_FEN = "4k3/8/3Q4/8/3Q1Q2/8/8/4K3 w - - 0 1"


def play(fen: str, *ucis: str) -> Position:
    position = Position.from_fen(fen)
    for uci in ucis:
        position = rules.apply_move(position, Move.from_uci(uci))
    return position


# --- WRITING SAN ---
@pytest.mark.parametrize(
    "fen, uci, san",
    [
        (STARTING_FEN, "e2e4", "e4"),
        (STARTING_FEN, "g1f3", "Nf3"),
        (CASTLING_FEN, "e1g1", "O-O"),
        (CASTLING_FEN, "e1c1", "O-O-O"),
        (CASTLING_FEN, "a1a8", "Rxa8+"),
        (PROMOTION_FEN, "e7e8q", "e8=Q"),
        (PROMOTION_FEN, "e7e8n", "e8=N"),
        (TWO_KNIGHTS_FEN, "b1d2", "Nbd2"),
        (TWO_KNIGHTS_FEN, "f1d2", "Nfd2"),
        (TWO_ROOKS_FEN, "a1a3", "R1a3"),
        (TWO_ROOKS_FEN, "a5a3", "R5a3"),
        (THREE_QUEENS_FEN, "d4e5", "Qd4e5#"),
    ],
)
def test_to_san(fen: str, uci: str, san: str) -> None:
    assert to_san(Position.from_fen(fen), Move.from_uci(uci)) == san


def test_pawn_capture_and_en_passant() -> None:
    position = play(STARTING_FEN, "e2e4", "d7d5")
    assert to_san(position, Move.from_uci("e4d5")) == "exd5"

    en_passant = play(STARTING_FEN, "e2e4", "a7a6", "e4e5", "d7d5")
    assert to_san(en_passant, Move.from_uci("e5d6")) == "exd6"


def test_checkmate_suffix() -> None:
    position = play(STARTING_FEN, "f2f3", "e7e5", "g2g4")
    assert to_san(position, Move.from_uci("d8h4")) == "Qh4#"


def test_to_san_rejects_illegal_moves() -> None:
    with pytest.raises(IllegalMoveError):
        _ = to_san(Position.from_fen(STARTING_FEN), Move.from_uci("e2e5"))


# --- READING SAN / UCI ---
@pytest.mark.parametrize(
    "text, cleaned",
    [("Nf3+", "Nf3"), ("Qh4#", "Qh4"), ("e4!?", "e4"), ("exd6e.p.", "exd6"), ("0-0", "O-O"), ("o-o-o", "O-O-O")],
)
def test_clean_san(text: str, cleaned: str) -> None:
    assert clean_san(text) == cleaned


@pytest.mark.parametrize(
    "fen, text, uci",
    [
        (STARTING_FEN, "e4", "e2e4"),
        (STARTING_FEN, "Nf3", "g1f3"),
        (STARTING_FEN, "  Nf3+ ", "g1f3"),
        (STARTING_FEN, "e2e4", "e2e4"),
        (STARTING_FEN, "G1F3", "g1f3"),
        (CASTLING_FEN, "O-O", "e1g1"),
        (CASTLING_FEN, "0-0-0", "e1c1"),
        (CASTLING_FEN, "Rxa8", "a1a8"),
        (CASTLING_FEN, "Ra8", "a1a8"),
        (PROMOTION_FEN, "e8=Q", "e7e8q"),
        (PROMOTION_FEN, "e8R", "e7e8r"),
        (PROMOTION_FEN, "e7e8b", "e7e8b"),
        (TWO_KNIGHTS_FEN, "Nbd2", "b1d2"),
        (TWO_ROOKS_FEN, "R5a3", "a5a3"),
        (THREE_QUEENS_FEN, "Qd4e5", "d4e5"),
    ],
)
def test_parse_move(fen: str, text: str, uci: str) -> None:
    move = parse_move(Position.from_fen(fen), text)
    assert move.to_uci() == uci


def test_parsed_move_is_the_generated_legal_move() -> None:
    move = parse_move(Position.from_fen(STARTING_FEN), "e4")
    assert move.is_double_push


@pytest.mark.parametrize("text", ["", "   ", "hello", "Zf3", "e9", "Nd2"])
def test_unreadable_or_ambiguous_moves(text: str) -> None:
    """'Nd2' fits two knights: ambiguity is reported as a parse problem."""
    fen = TWO_KNIGHTS_FEN if text == "Nd2" else STARTING_FEN
    with pytest.raises(MoveParseError):
        _ = parse_move(Position.from_fen(fen), text)


@pytest.mark.parametrize("text", ["Ke2", "e5", "O-O", "Nf6", "e2e5", "e8=Q"])
def test_readable_but_illegal_moves(text: str) -> None:
    with pytest.raises(IllegalMoveError):
        _ = parse_move(Position.from_fen(STARTING_FEN), text)


def test_promotion_requires_the_piece() -> None:
    with pytest.raises(IllegalMoveError):
        _ = parse_san(Position.from_fen(PROMOTION_FEN), "e8")
