"""
Per player statistics, computed from the stored games of the player.

Only finished games count. A game is won when the player's color gave checkmate, lost when it got mated,
and drawn for stalemate and every kind of draw.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Iterable, Optional

from src.api.models import DifficultyStatsResponse, PlayerStatsResponse
from src.chess.game import game_result
from src.chess.status import status_from_parts
from src.core.models import GameModel
from src.core.shared_types import Color, Difficulty


class Outcome(StrEnum):
    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"


@dataclass
class Tally:
    games: int = 0
    wins: int = 0

    def add(self, outcome: Outcome) -> None:
        self.games += 1
        if outcome == Outcome.WIN:
            self.wins += 1

    @property
    def win_rate(self) -> float:
        return percentage(self.wins, self.games)


def percentage(part: int, total: int) -> float:
    return 100 * part / total if total else 0.0


def outcome_for_player(game: GameModel) -> Optional[Outcome]:
    """Win / loss / draw from the point of view of the human player. None while the game is still going."""
    status = status_from_parts(game.status, game.status_color, game.draw_reason)
    result = game_result(status, len(game.moves_uci), game.started_at, game.ended_at)
    if result is None:
        return None
    if result.winner is None:
        return Outcome.DRAW
    return Outcome.WIN if result.winner == Color(game.player_color) else Outcome.LOSS


def compute_player_stats(player_id: str, games: Iterable[GameModel]) -> PlayerStatsResponse:
    overall = Tally()
    outcomes = {outcome: 0 for outcome in Outcome}
    per_difficulty = {difficulty: Tally() for difficulty in Difficulty}
    total_duration_s = 0.0
    total_moves = 0

    for game in games:
        outcome = outcome_for_player(game)
        if outcome is None:
            continue
        overall.add(outcome)
        outcomes[outcome] += 1
        per_difficulty[Difficulty(game.difficulty)].add(outcome)
        if game.ended_at is not None:
            total_duration_s += (game.ended_at - game.started_at).total_seconds()
        total_moves += len(game.moves_uci)

    return PlayerStatsResponse(
        player_id=player_id,
        total_games=overall.games,
        wins=outcomes[Outcome.WIN],
        losses=outcomes[Outcome.LOSS],
        draws=outcomes[Outcome.DRAW],
        win_rate=overall.win_rate,
        average_game_duration_s=total_duration_s / overall.games if overall.games else 0.0,
        average_moves_per_game=total_moves / overall.games if overall.games else 0.0,
        difficulty_stats={
            difficulty: DifficultyStatsResponse(
                games=tally.games, wins=tally.wins, win_rate=tally.win_rate
            )
            for difficulty, tally in per_difficulty.items()
        },
    )
