"""Unit tests for /src/chess/rules.py"""

import pytest

from src.chess import rules
from src.chess.castling import CastlingDirection
from src.chess.fen import STARTING_FEN
from src.chess.moves import Move
from src.chess.pieces import Piece
from src.chess.position import Position
from src.chess.square import Square
from src.chess.status import Check, Checkmate, Draw, InProgress, Stalemate
from src.core.exceptions import IllegalMoveError
from src.core.shared_types import Color, DrawReason, PieceType

KIWIPETE_FEN = "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1"
ENDGAME_FEN = "8/2p5/3p4/KP5r/1R3p1k/8/4P1P1/8 w - - 0 1"
PROMOTION_FEN = "r3k2r/Pppp1ppp/1b3nbN/nP6/BBP1P3/q4N2/Pp1P2PP/R2Q1RK1 w kq - 0 1"


def sq(name: str) -> Square:
    return Square.from_algebraic(name)


def play(fen: str, *ucis: str) -> Position:
    position = Position.from_fen(fen)
    for uci in ucis:
        position = rules.apply_move(position, Move.from_uci(uci))
    return position


def perft(position: Position, depth: int) -> int:
    """Number of leaf positions `depth` plies deep. Well known reference values exist for several positions."""
    moves = rules.legal_moves(position)
    if depth == 1:
        return len(moves)
    return sum(perft(rules.apply_move(position, move), depth - 1) for move in moves)


# --- MOVE GENERATION (PERFT) ---
@pytest.mark.parametrize(
    "fen, depth, expected",
    [
        (STARTING_FEN, 1, 20),
        (STARTING_FEN, 2, 400),
        (STARTING_FEN, 3, 8902),
        (KIWIPETE_FEN, 1, 48),
        (KIWIPETE_FEN, 2, 2039),
        (ENDGAME_FEN, 1, 14),
        (ENDGAME_FEN, 2, 191),
        (PROMOTION_FEN, 1, 6),
        (PROMOTION_FEN, 2, 264),
    ],
)
def test_perft(fen: str, depth: int, expected: int) -> None:
    assert perft(Position.from_fen(fen), depth) == expected


@pytest.mark.parametrize("fen", [STARTING_FEN, KIWIPETE_FEN, ENDGAME_FEN, PROMOTION_FEN])
def test_legal_moves_never_leave_own_king_in_check(fen: str) -> None:
    position = Position.from_fen(fen)
    for move in rules.legal_moves(position):
        after = rules.apply_move(position, move)
        assert not after.board.is_check(position.color_to_move), move


def test_legal_moves_from_one_square() -> None:
    position = Position.from_fen(STARTING_FEN)
    moves = rules.legal_moves_from(position, sq("g1"))
    assert {move.to_uci() for move in moves} == {"g1f3", "g1h3"}
    assert rules.legal_moves_from(position, sq("e4")) == []


def test_pinned_piece_cannot_move() -> None:
    position = Position.from_fen("4r1k1/8/8/8/8/8/4N3/4K3 w - - 0 1")
    assert rules.legal_moves_from(position, sq("e2")) == []


# --- APPLYING MOVES ---
def test_apply_move_updates_counters() -> None:
    after_knight = play(STARTING_FEN, "g1f3")
    assert after_knight.to_fen() == "rnbqkbnr/pppppppp/8/8/8/5N2/PPPPPPPP/RNBQKB1R b KQkq - 1 1"
    after_reply = play(STARTING_FEN, "g1f3", "d7d5")
    assert after_reply.to_fen() == "rnbqkbnr/ppp1pppp/8/3p4/8/5N2/PPPPPPPP/RNBQKB1R w KQkq d6 0 2"


def test_apply_move_does_not_modify_input() -> None:
    position = Position.from_fen(STARTING_FEN)
    _ = rules.apply_move(position, Move.from_uci("e2e4"))
    assert position.to_fen() == STARTING_FEN


@pytest.mark.parametrize("uci", ["e2e5", "e1e2", "g1g3", "a7a6"])
def test_illegal_move_is_rejected(uci: str) -> None:
    position = Position.from_fen(STARTING_FEN)
    with pytest.raises(IllegalMoveError):
        _ = rules.apply_move(position, Move.from_uci(uci))
    assert not rules.is_legal(position, Move.from_uci(uci))


def test_find_legal_move_fills_in_flags() -> None:
    position = Position.from_fen(STARTING_FEN)
    move = rules.find_legal_move(position, Move.from_uci("e2e4"))
    assert move.is_double_push


# --- CASTLING ---
CASTLING_FEN = "r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1"


def test_castling_king_side() -> None:
    position = Position.from_fen(CASTLING_FEN)
    move = rules.find_legal_move(position, Move.from_uci("e1g1"))
    assert move.castling_direction == CastlingDirection.WHITE_KING_SIDE

    after = rules.apply_move(position, move)
    assert after.board.piece(sq("g1")) == Piece(PieceType.KING, Color.WHITE)
    assert after.board.piece(sq("f1")) == Piece(PieceType.ROOK, Color.WHITE)
    assert after.board.piece(sq("h1")) is None
    assert after.castling_rights == frozenset(
        [CastlingDirection.BLACK_KING_SIDE, CastlingDirection.BLACK_QUEEN_SIDE]
    )


def test_castling_queen_side_black() -> None:
    after = play(CASTLING_FEN, "a1b1", "e8c8")
    assert after.board.piece(sq("c8")) == Piece(PieceType.KING, Color.BLACK)
    assert after.board.piece(sq("d8")) == Piece(PieceType.ROOK, Color.BLACK)
    assert after.castling_rights == frozenset([CastlingDirection.WHITE_KING_SIDE])


def test_cannot_castle_through_attacked_square() -> None:
    position = Position.from_fen("r3kr2/8/8/8/8/8/8/R3K2R w KQq - 0 1")
    assert not rules.is_legal(position, Move.from_uci("e1g1"))
    assert rules.is_legal(position, Move.from_uci("e1c1"))


def test_queen_side_castling_with_attacked_b_file() -> None:
    """The king never crosses b1: an attack on it does not matter."""
    position = Position.from_fen("1r2k3/8/8/8/8/8/8/R3K2R w KQ - 0 1")
    assert rules.is_legal(position, Move.from_uci("e1c1"))


def test_cannot_castle_out_of_check() -> None:
    position = Position.from_fen("4r1k1/8/8/8/8/8/8/R3K2R w KQ - 0 1")
    assert not rules.is_legal(position, Move.from_uci("e1g1"))
    assert not rules.is_legal(position, Move.from_uci("e1c1"))


def test_cannot_castle_through_pieces() -> None:
    position = Position.from_fen("r3k2r/8/8/8/8/8/8/RN2K1NR w KQkq - 0 1")
    assert not rules.is_legal(position, Move.from_uci("e1g1"))
    assert not rules.is_legal(position, Move.from_uci("e1c1"))


def test_capturing_a_rook_revokes_castling_right() -> None:
    after = play(CASTLING_FEN, "a1a8")
    assert after.castling_rights == frozenset(
        [CastlingDirection.WHITE_KING_SIDE, CastlingDirection.BLACK_KING_SIDE]
    )


# --- EN PASSANT ---
def test_en_passant_capture() -> None:
    before = play(STARTING_FEN, "e2e4", "a7a6", "e4e5", "d7d5")
    assert before.en_passant_square == sq("d6")

    after = rules.apply_move(before, Move.from_uci("e5d6"))
    assert after.to_fen() == "rnbqkbnr/1pp1pppp/p2P4/8/8/8/PPPP1PPP/RNBQKBNR b KQkq - 0 3"


def test_en_passant_only_right_after_double_push() -> None:
    position = play(STARTING_FEN, "e2e4", "a7a6", "e4e5", "d7d5", "h2h3", "h7h6")
    assert position.en_passant_square is None
    assert not rules.is_legal(position, Move.from_uci("e5d6"))


def test_en_passant_that_exposes_king_is_illegal() -> None:
    position = Position.from_fen("8/8/8/K2pP2r/8/8/8/7k w - d6 0 1")
    assert not rules.is_legal(position, Move.from_uci("e5d6"))


# --- PROMOTION ---
def test_promotion_options() -> None:
    position = Position.from_fen("8/4P3/8/8/8/8/k7/4K3 w - - 0 1")
    promotions = {move.to_uci() for move in rules.legal_moves_from(position, sq("e7"))}
    assert promotions == {"e7e8q", "e7e8r", "e7e8b", "e7e8n"}
    # the promotion piece is required
    assert not rules.is_legal(position, Move.from_uci("e7e8"))

    after = rules.apply_move(position, Move.from_uci("e7e8n"))
    assert after.board.piece(sq("e8")) == Piece(PieceType.KNIGHT, Color.WHITE)
    assert after.board.piece(sq("e7")) is None


# --- CLASSIFICATION ---
def test_fools_mate() -> None:
    position = play(STARTING_FEN, "f2f3", "e7e5", "g2g4", "d8h4")
    assert rules.classify(position) == Checkmate(winner=Color.BLACK)
    assert rules.legal_moves(position) == []


def test_stalemate() -> None:
    position = Position.from_fen("4k3/4P3/4K3/8/8/8/8/8 b - - 0 1")
    assert rules.classify(position) == Stalemate()


def test_king_with_escape_squares_is_not_stalemate() -> None:
    """Black king e7 in front of the pawn: d8, e8 and f8 are still free."""
    position = Position.from_fen("8/4k3/4P3/4K3/8/8/8/8 b - - 0 1")
    assert rules.classify(position) == InProgress()


def test_check() -> None:
    position = play(STARTING_FEN, "e2e4", "e7e5", "f1c4", "b8c6", "c4f7")
    assert rules.classify(position) == Check(Color.BLACK)


@pytest.mark.parametrize(
    "fen",
    [
        "8/8/8/4k3/8/8/8/4K3 w - - 0 1",  # K v K
        "8/8/8/4k3/8/8/8/4KN2 w - - 0 1",  # K+N v K
        "8/8/8/4k3/8/8/8/4KB2 b - - 0 1",  # K+B v K
        "2b5/8/8/4k3/8/8/8/4KB2 w - - 0 1",  # bishops on the same square color (c8, f1)
    ],
)
def test_insufficient_material(fen: str) -> None:
    assert rules.classify(Position.from_fen(fen)) == Draw(DrawReason.INSUFFICIENT_MATERIAL)


@pytest.mark.parametrize(
    "fen",
    [
        "8/8/8/4k3/8/8/8/4KR2 w - - 0 1",  # rook
        "8/8/8/4k3/8/8/4P3/4K3 w - - 0 1",  # pawn
        "1b6/8/8/4k3/8/8/8/4KB2 w - - 0 1",  # bishops on different square colors (b8, f1)
        "8/8/8/4k3/8/8/8/3NKN2 w - - 0 1",  # two knights
    ],
)
def test_sufficient_material(fen: str) -> None:
    assert rules.classify(Position.from_fen(fen)) == InProgress()


def test_fifty_move_rule() -> None:
    assert rules.classify(Position.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 99 80")) == InProgress()
    assert rules.classify(Position.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 100 80")) == Draw(
        DrawReason.FIFTY_MOVE
    )


def test_checkmate_takes_precedence_over_fifty_move_rule() -> None:
    position = Position.from_fen("4k3/4Q3/4K3/8/8/8/8/8 b - - 100 80")
    assert rules.classify(position) == Checkmate(winner=Color.WHITE)


def test_threefold_repetition() -> None:
    knight_dance = ["g1f3", "g8f6", "f3g1", "f6g8"]
    positions = [Position.from_fen(STARTING_FEN)]
    for uci in knight_dance * 2:
        positions.append(rules.apply_move(positions[-1], Move.from_uci(uci)))

    # after one round: the starting position occurred twice
    assert rules.classify(positions[4], positions[:4]) == InProgress()
    # after two rounds: three times
    assert rules.classify(positions[8], positions[:8]) == Draw(DrawReason.REPETITION)
    # without the history, no repetition can be seen
    assert rules.classify(positions[8]) == InProgress()
