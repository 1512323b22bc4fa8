from uuid import UUID, uuid4

import pytest
from pydantic import ValidationError

from src.api.models import (
    CreateGameRequest,
    GameHistoryRequest,
    LegalMovesRequest,
    MoveRequest,
    UndoRequest,
)
from src.core.exceptions import InvalidRequestError
from src.core.shared_types import Color, Difficulty, PieceType


@pytest.fixture
def mock_id() -> UUID:
    return uuid4()


# -- Validation - CreateGameRequest --
def test_valid_fen() -> None:
    """Test that CreateGameRequest accepts a valid FEN string."""
    valid_fen = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
    request = CreateGameRequest(player_color=Color.BLACK, starting_fen=valid_fen)
    assert request.starting_fen == valid_fen
    assert request.difficulty == Difficulty.MEDIUM


def test_starting_fen_is_optional() -> None:
    """Should be able to not supply a starting FEN, and validator just returns None."""
    request = CreateGameRequest(player_color=Color.BLACK, starting_fen=None)
    assert request.starting_fen is None


def test_fen_whitespace_is_normalised() -> None:
    request = CreateGameRequest(
        player_color=Color.WHITE,
        starting_fen="  4k3/8/8/8/8/8/8/4K2R   w K - 0 1 ",
    )
    assert request.starting_fen == "4k3/8/8/8/8/8/8/4K2R w K - 0 1"


@pytest.mark.parametrize(
    "invalid_fen",
    [
        "",
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR",
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP w KQkq - 0 1",
        "rnbqkbnr/pppppppp/9/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1",
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR x KQkq - 0 1",
        "rnbqxbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1",
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq e9 0 1",
        "8/8/8/8/8/8/8/8 w - - 0 1",
        "4k3/8/8/8/8/8/8/r3K3 b - - 0 1",
        "4k3/8/8/8/8/8/3PP3/4K3 w - e3 0 1",
    ],
)
def test_invalid_fen(invalid_fen: str) -> None:
    with pytest.raises(InvalidRequestError):
        CreateGameRequest(player_color=Color.WHITE, starting_fen=invalid_fen)


def test_unknown_difficulty() -> None:
    with pytest.raises(ValidationError):
        CreateGameRequest(player_color=Color.WHITE, difficulty="grandmaster")


# -- Validation - MoveRequest --
def test_move_by_squares(mock_id: UUID) -> None:
    request = MoveRequest(game_id=mock_id, from_square="e7", to_square="e8", promote_to=PieceType.QUEEN)
    assert request.from_square == "e7"
    assert request.promote_to == PieceType.QUEEN
    assert request.notation is None


def test_move_by_notation(mock_id: UUID) -> None:
    request = MoveRequest(game_id=mock_id, notation="Nf3")
    assert request.notation == "Nf3"


@pytest.mark.parametrize("invalid_square", ["i1", "a9", "a0", "e", "e22", "E4 "])
def test_invalid_square(mock_id: UUID, invalid_square: str) -> None:
    with pytest.raises(InvalidRequestError):
        MoveRequest(game_id=mock_id, from_square=invalid_square, to_square="e4")


@pytest.mark.parametrize(
    "fields",
    [
        {},
        {"from_square": "e2"},
        {"to_square": "e4"},
        {"from_square": "e2", "to_square": "e4", "notation": "e4"},
    ],
)
def test_squares_or_notation(mock_id: UUID, fields: dict) -> None:
    with pytest.raises(InvalidRequestError):
        MoveRequest(game_id=mock_id, **fields)


@pytest.mark.parametrize("piece_type", [PieceType.PAWN, PieceType.KING])
def test_invalid_promotion(mock_id: UUID, piece_type: PieceType) -> None:
    with pytest.raises(InvalidRequestError):
        MoveRequest(game_id=mock_id, from_square="e7", to_square="e8", promote_to=piece_type)


# -- Validation - LegalMovesRequest / UndoRequest --
def test_legal_moves_square(mock_id: UUID) -> None:
    assert LegalMovesRequest(game_id=mock_id).square is None
    assert LegalMovesRequest(game_id=mock_id, square="g1").square == "g1"
    with pytest.raises(InvalidRequestError):
        LegalMovesRequest(game_id=mock_id, square="z9")


def test_undo_count(mock_id: UUID) -> None:
    assert UndoRequest(game_id=mock_id).count is None
    assert UndoRequest(game_id=mock_id, count=2).count == 2
    with pytest.raises(ValidationError):
        UndoRequest(game_id=mock_id, count=0)


# -- Validation - GameHistoryRequest --
def test_history_page_defaults() -> None:
    request = GameHistoryRequest()
    assert request.player_id is None
    assert (request.limit, request.offset) == (20, 0)


@pytest.mark.parametrize("page", [{"limit": 0}, {"limit": 101}, {"offset": -1}])
def test_history_page_out_of_range(page: dict) -> None:
    with pytest.raises(ValidationError):
        GameHistoryRequest(**page)


def test_player_id_of_new_game() -> None:
    assert CreateGameRequest(player_color=Color.WHITE).player_id is None
    assert CreateGameRequest(player_color=Color.WHITE, player_id="alice").player_id == "alice"
