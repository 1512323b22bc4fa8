"""
Boundary layer data model(s).

These objects can be used to communicate with the Service.
Hence, the API layer (higher) and the domain/db layers (lower) use the model(s) defined here to send to/receive from the Service
(Decouples the data model specific to the DB layer, API layer, or domain layer from the information needed to send across boundaries)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class GameModel:
    """
    Transport-safe representation of a game session used between API, Service, DB, and Game layers.

    `moves_uci` replayed from `starting_fen` must lead to `current_fen`. The other fields are kept redundantly so that
    a restore can verify the stored state has not been tampered with or truncated.
    """

    starting_fen: str
    current_fen: str
    moves_uci: list[str]
    moves_san: list[str]
    player_color: str
    difficulty: str
    status: str
    status_color: str | None = None
    draw_reason: str | None = None
    ply: int = 0
    history_fen: list[str] = field(default_factory=list)
    player_id: str | None = None
    started_at: datetime = field(default_factory=utc_now)
    # only set once the game has ended
    ended_at: datetime | None = None
