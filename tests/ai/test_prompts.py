"""Unit tests for src/ai/prompts.py"""

import pytest

from src.ai.prompts import (
    DIFFICULTY_PROMPTS,
    SYSTEM_INSTRUCTION,
    build_messages,
    extract_move_text,
    strip_code_fence,
)
from src.ai.service import HISTORY_CONTEXT_PLIES, AIMoveRequest
from src.chess.fen import STARTING_FEN
from src.chess.game import GameSession
from src.chess.moves import Move
from src.core.shared_types import Color, Difficulty


def test_messages_at_game_start() -> None:
    request = AIMoveRequest(fen=STARTING_FEN, color=Color.WHITE, difficulty=Difficulty.EASY)
    system, user = build_messages(request)
    assert system == {"role": "system", "content": SYSTEM_INSTRUCTION}
    assert user["role"] == "user"
    assert DIFFICULTY_PROMPTS[Difficulty.EASY] in user["content"]
    assert STARTING_FEN in user["content"]
    assert "Side to move: white" in user["content"]
    assert "Recent moves: Game start" in user["content"]


def test_messages_include_recent_moves() -> None:
    request = AIMoveRequest(
        fen=STARTING_FEN, color=Color.BLACK, difficulty=Difficulty.HARD, history_san=("e4", "e5", "Nf3")
    )
    _, user = build_messages(request)
    assert "Recent moves: e4 e5 Nf3" in user["content"]
    assert DIFFICULTY_PROMPTS[Difficulty.HARD] in user["content"]


def test_request_from_session_keeps_only_recent_history() -> None:
    session = GameSession.new_game(Color.BLACK, Difficulty.MEDIUM)
    giuoco_piano = ["e2e4", "e7e5", "g1f3", "b8c6", "f1c4", "f8c5", "c2c3", "g8f6", "d2d4", "e5d4", "c3d4", "c5b4"]
    for uci in giuoco_piano:
        session.propose_move(Move.from_uci(uci))
    request = AIMoveRequest.from_session(session)
    assert len(request.history_san) == HISTORY_CONTEXT_PLIES
    assert request.history_san[0] == "Nf3"
    assert request.history_san[-1] == "Bb4+"
    assert request.fen == session.position.to_fen()
    assert request.color == Color.WHITE
    assert request.difficulty == Difficulty.MEDIUM


@pytest.mark.parametrize(
    "raw, move",
    [
        ("Nf3", "Nf3"),
        ("  e4\n", "e4"),
        ("I'll play **Nf3**.", "Nf3"),
        ("Best move: Qxd7+", "Qxd7+"),
        ("```\ne2e4\n```", "e2e4"),
        ("```san\nO-O-O\n```", "O-O-O"),
        ("O-O is the safest", "O-O"),
        ("1. e4", "e4"),
        ("e7e8q", "e7e8q"),
        ("exd8=Q#", "exd8=Q#"),
        ("resign", "resign"),
        ("", ""),
    ],
)
def test_extract_move_text(raw: str, move: str) -> None:
    assert extract_move_text(raw) == move


def test_strip_code_fence() -> None:
    assert strip_code_fence("```Nf3```") == "Nf3"
    assert strip_code_fence("```\nNf3\n```") == "Nf3"
    assert strip_code_fence("Nf3") == "Nf3"
