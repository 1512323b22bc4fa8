"""
AI move orchestration
---

Ask the move generation service for a move, check it with the rules engine, retry within a budget,
and fall back to the local generator (src/ai/fallback.py) when the service does not deliver.

1. start a deadline timer (`deadline_s`)
2. up to `max_attempts` times (while time remains):
    a. ask the service, waiting at most `attempt_timeout_s` (and never past the deadline)
    b. service failure / timeout --> record it, next attempt
    c. parse the answer (SAN or UCI). Unparsable or illegal --> record it, next attempt
    d. legal --> done
3. switch to the fallback right away when the side to move is in check, after `failures_before_fallback` failures,
   or on a failure that asking again will not fix (quota, authentication)
4. deadline reached --> the in-flight call is cancelled and discarded, the fallback move is used

The orchestrator never changes the session: the caller applies the move with `GameSession.propose_move`.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Optional, Self

from src.ai.fallback import choose_fallback_move
from src.ai.prompts import extract_move_text
from src.ai.service import AIMoveRequest, MoveGenerator
from src.chess import rules
from src.chess.moves import Move
from src.chess.notation import parse_move, to_san
from src.chess.position import Position
from src.core.config import SETTINGS, Settings
from src.core.exceptions import (
    AllAttemptsExhausted,
    GameStateError,
    IllegalMoveError,
    MoveParseError,
    NotYourTurnError,
    ServiceUnavailableError,
)

if TYPE_CHECKING:
    from src.chess.game import GameSession

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrchestratorConfig:
    max_attempts: int = 3
    attempt_timeout_s: float = 3.0
    deadline_s: float = 10.0
    retry_delay_s: float = 0.1
    failures_before_fallback: int = 2

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if not 0 < self.attempt_timeout_s <= self.deadline_s:
            raise ValueError("attempt_timeout_s must be positive and not exceed deadline_s")

    @classmethod
    def from_settings(cls, settings: Settings = SETTINGS) -> Self:
        return cls(
            max_attempts=settings.ai_max_attempts,
            attempt_timeout_s=min(settings.ai_attempt_timeout_s, settings.ai_deadline_s),
            deadline_s=settings.ai_deadline_s,
            retry_delay_s=settings.ai_retry_delay_s,
        )


class FailureKind(StrEnum):
    SERVICE_ERROR = "service_error"
    TIMEOUT = "timeout"
    UNPARSABLE = "unparsable"
    ILLEGAL = "illegal"


class FallbackReason(StrEnum):
    IN_CHECK = "in check"
    REPEATED_FAILURES = "repeated failures"
    SERVICE_UNAVAILABLE = "service unavailable"
    DEADLINE = "deadline reached"
    ATTEMPTS_EXHAUSTED = "attempts exhausted"


@dataclass(frozen=True)
class AttemptFailure:
    attempt: int
    kind: FailureKind
    detail: str
    proposed: Optional[str] = None


@dataclass(frozen=True)
class AIMoveResult:
    """What the orchestrator came up with, and how."""

    move: Move
    san: str
    attempts: int
    used_fallback: bool = False
    fallback_reason: Optional[FallbackReason] = None
    failures: tuple[AttemptFailure, ...] = ()
    elapsed_s: float = 0.0


@dataclass
class AIMoveOrchestrator:
    generator: MoveGenerator
    config: OrchestratorConfig = field(default_factory=OrchestratorConfig)
    # calls that got cancelled at a timeout. Kept referenced until they are actually done.
    _abandoned: set[asyncio.Task] = field(default_factory=set, repr=False)

    async def choose_move(self, session: "GameSession") -> AIMoveResult:
        """A legal move for the AI side of `session`. Does not make the move."""
        if session.is_over:
            raise GameStateError(f"Game is over ({session.status.kind}).")
        if not session.is_ai_turn():
            raise NotYourTurnError(
                f"It is {session.whose_turn()}'s turn, the AI plays {session.ai_color}."
            )
        return await self.choose_move_for(
            session.position, AIMoveRequest.from_session(session)
        )

    async def choose_move_for(
        self, position: Position, request: AIMoveRequest
    ) -> AIMoveResult:
        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + self.config.deadline_s
        failures: list[AttemptFailure] = []
        attempts = 0

        def result(move: Move, reason: Optional[FallbackReason] = None) -> AIMoveResult:
            return AIMoveResult(
                move=move,
                san=to_san(position, move),
                attempts=attempts,
                used_fallback=reason is not None,
                fallback_reason=reason,
                failures=tuple(failures),
                elapsed_s=loop.time() - started,
            )

        in_check = rules.is_check(position)
        reason = FallbackReason.ATTEMPTS_EXHAUSTED
        while attempts < self.config.max_attempts:
            remaining = deadline - loop.time()
            if remaining <= 0:
                reason = FallbackReason.DEADLINE
                break

            attempts += 1
            try:
                answer = await self._ask(
                    request, min(self.config.attempt_timeout_s, remaining)
                )
            except TimeoutError:
                failures.append(
                    AttemptFailure(attempts, FailureKind.TIMEOUT, "no answer in time")
                )
                log.warning("AI attempt %s timed out for %s", attempts, request.fen)
            except ServiceUnavailableError as e:
                failures.append(
                    AttemptFailure(attempts, FailureKind.SERVICE_ERROR, str(e))
                )
                log.warning("AI attempt %s failed (%s): %s", attempts, e.kind, e)
                if not e.retryable:
                    reason = FallbackReason.SERVICE_UNAVAILABLE
                    break
            else:
                try:
                    move = parse_move(position, self._move_text(answer))
                except MoveParseError as e:
                    failures.append(
                        AttemptFailure(
                            attempts,
                            FailureKind.UNPARSABLE,
                            str(e),
                            answer if isinstance(answer, str) else None,
                        )
                    )
                    log.warning("AI attempt %s unparsable: %r", attempts, answer)
                except IllegalMoveError as e:
                    failures.append(
                        AttemptFailure(attempts, FailureKind.ILLEGAL, str(e), answer)
                    )
                    log.warning("AI attempt %s proposed an illegal move: %r", attempts, answer)
                else:
                    log.info("AI move accepted: %s (attempt %s)", move, attempts)
                    return result(move)

            if in_check:
                reason = FallbackReason.IN_CHECK
                break
            if len(failures) >= self.config.failures_before_fallback:
                reason = FallbackReason.REPEATED_FAILURES
                break

            remaining = deadline - loop.time()
            if remaining <= 0:
                reason = FallbackReason.DEADLINE
                break
            await asyncio.sleep(min(self.config.retry_delay_s, remaining))

        if reason == FallbackReason.DEADLINE:
            log.warning("AI deadline of %ss reached for %s", self.config.deadline_s, request.fen)

        move = choose_fallback_move(position, request.difficulty)
        if move is None:
            log.critical("No move at all for %s after %s attempt(s)", request.fen, attempts)
            raise AllAttemptsExhausted(f"No legal move available in {request.fen}")
        log.info("Fallback move %s used (%s)", move, reason)
        return result(move, reason)

    async def _ask(self, request: AIMoveRequest, timeout: float) -> str:
        """
        One call to the service, bounded by `timeout`.
        Raises TimeoutError (the call is cancelled and discarded) or ServiceUnavailableError.
        """
        task = asyncio.ensure_future(self.generator.generate_move(request))
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            # the caller gave up: the service call must not outlive it unreferenced
            self._discard(task)
            raise
        if not done:
            self._discard(task)
            raise TimeoutError()

        try:
            return task.result()
        except ServiceUnavailableError:
            raise
        except Exception as e:
            log.exception("Unexpected error from the move generation service")
            raise ServiceUnavailableError(f"Unexpected service error: {e}") from e

    @staticmethod
    def _move_text(answer: object) -> str:
        """The move-like part of a service answer. Anything but text is unparsable."""
        if not isinstance(answer, str):
            raise MoveParseError(f"Expected text from the service, got {type(answer).__name__}")
        return extract_move_text(answer)

    def _discard(self, task: asyncio.Task) -> None:
        """Cancel without waiting. A generator that ignores cancellation still cannot hold up the caller."""
        task.cancel()
        self._abandoned.add(task)
        task.add_done_callback(self._forget)

    def _forget(self, task: asyncio.Task) -> None:
        self._abandoned.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.debug("Discarded AI call failed late: %s", task.exception())
