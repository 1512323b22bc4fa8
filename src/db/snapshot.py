"""
Save / restore a game session as an opaque blob (JSON bytes).

The blob holds the GameModel of the session plus a format version. Restoring replays the recorded moves through the
rules engine (GameSession.from_model), so a blob that was tampered with or truncated is rejected, never half-loaded.
"""

import logging

from pydantic import BaseModel, ValidationError

from src.chess.game import GameSession
from src.core.exceptions import CorruptStateError
from src.core.models import GameModel

log = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class Snapshot(BaseModel):
    version: int = SNAPSHOT_VERSION
    game: GameModel


def save(session: GameSession) -> bytes:
    return Snapshot(game=session.to_model()).model_dump_json().encode("utf-8")


def restore(blob: bytes) -> GameSession:
    """Raises CorruptStateError for anything that is not a snapshot of a valid game."""
    try:
        snapshot = Snapshot.model_validate_json(blob)
    except ValidationError as e:
        raise CorruptStateError(f"Not a game snapshot: {e}") from e

    if snapshot.version != SNAPSHOT_VERSION:
        raise CorruptStateError(f"Unsupported snapshot version {snapshot.version}")

    session = GameSession.from_model(snapshot.game)
    log.info("Game restored at ply %s (%s)", session.ply, session.status.kind)
    return session
